# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Integration tests for booking API endpoints."""

from datetime import date

import pytest
from src.middleware.auth import USER_ID_HEADER
from src.models import BookingStatus, PropertyStatus

OWNER = {USER_ID_HEADER: "owner-1"}
GUEST = {USER_ID_HEADER: "guest-1"}
CONFIRMED = BookingStatus.CONFIRMED


def jan(day: int) -> date:
    """Day of January 2030."""
    return date(2030, 1, day)


@pytest.fixture
def seed_committed(session_factory, seed):
    """Insert a property in its own committed transaction."""

    async def _seed(**kwargs):
        async with session_factory() as session:
            prop = await seed(session, **kwargs)
            await session.commit()
            return prop

    return _seed


class TestBookingLifecycle:
    """Tests for request, confirmation and cancellation of a stay."""

    @pytest.mark.asyncio
    async def test_request_confirm_cancel(self, client, seed_committed):
        """Test a confirmed week cancelled again merges back into one listing."""
        prop = await seed_committed(listings=[(jan(1), jan(29))])

        response = await client.post(
            "/api/bookings",
            json={
                "property_id": prop.id,
                "check_in": "2030-01-08",
                "check_out": "2030-01-15",
                "guest_name": "Jane Doe",
            },
            headers=GUEST,
        )
        assert response.status_code == 201
        booking = response.json()
        assert booking["status"] == "pending"

        response = await client.post(
            f"/api/bookings/{booking['id']}/confirm", headers=OWNER
        )
        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"

        response = await client.get(f"/api/properties/{prop.id}", headers=OWNER)
        listings = response.json()["listings"]
        assert [(lst["start_date"], lst["end_date"]) for lst in listings] == [
            ("2030-01-01", "2030-01-08"),
            ("2030-01-15", "2030-01-29"),
        ]

        response = await client.post(
            f"/api/bookings/{booking['id']}/cancel",
            json={"property_id": prop.id, "reason": "Guest changed plans"},
            headers=GUEST,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["outcome"] == "merged"
        assert data["target_tab"] == "active"
        assert data["property_status"] == "active"
        assert data["booking"]["status"] == "cancelled"
        assert data["booking"]["cancel_reason"] == "Guest changed plans"
        assert data["message"] == (
            "The cancelled period has been merged with an existing ad. "
            "Your number of listings is unchanged."
        )

        response = await client.get(f"/api/properties/{prop.id}", headers=OWNER)
        listings = response.json()["listings"]
        assert [(lst["start_date"], lst["end_date"]) for lst in listings] == [
            ("2030-01-01", "2030-01-29")
        ]

    @pytest.mark.asyncio
    async def test_complete(self, client, seed_committed):
        """Test the owner can complete a confirmed stay."""
        prop = await seed_committed(bookings=[(jan(8), jan(15), CONFIRMED)])
        booking_id = prop.bookings[0].id

        response = await client.post(
            f"/api/bookings/{booking_id}/complete", headers=OWNER
        )

        assert response.status_code == 200
        assert response.json()["status"] == "completed"

    @pytest.mark.asyncio
    async def test_get_booking(self, client, seed_committed):
        """Test a booking can be read back."""
        prop = await seed_committed(bookings=[(jan(8), jan(15), CONFIRMED)])
        booking_id = prop.bookings[0].id

        response = await client.get(f"/api/bookings/{booking_id}", headers=GUEST)

        assert response.status_code == 200
        data = response.json()
        assert data["property_id"] == prop.id
        assert data["check_in"] == "2030-01-08"
        assert data["check_out"] == "2030-01-15"


class TestCreateBooking:
    """Tests for POST /api/bookings."""

    @pytest.mark.asyncio
    async def test_partial_week_refused(self, client, seed_committed):
        """Test stays must be whole weeks."""
        prop = await seed_committed(listings=[(jan(1), jan(29))])

        response = await client.post(
            "/api/bookings",
            json={
                "property_id": prop.id,
                "check_in": "2030-01-08",
                "check_out": "2030-01-12",
            },
            headers=GUEST,
        )

        assert response.status_code == 422
        assert response.json()["type"] == "invalid_range"

    @pytest.mark.asyncio
    async def test_unknown_property(self, client):
        """Test booking an unknown property."""
        response = await client.post(
            "/api/bookings",
            json={
                "property_id": 999,
                "check_in": "2030-01-08",
                "check_out": "2030-01-15",
            },
            headers=GUEST,
        )

        assert response.status_code == 404


class TestOwnerChecks:
    """Tests for actions reserved to the property owner."""

    @pytest.mark.asyncio
    async def test_confirm_by_other_user(self, client, seed_committed):
        """Test only the owner can confirm a stay."""
        prop = await seed_committed(
            listings=[(jan(1), jan(29))],
            bookings=[(jan(8), jan(15), BookingStatus.PENDING)],
        )

        response = await client.post(
            f"/api/bookings/{prop.bookings[0].id}/confirm", headers=GUEST
        )

        assert response.status_code == 404


class TestCancelBooking:
    """Tests for POST /api/bookings/{id}/cancel."""

    @pytest.mark.asyncio
    async def test_limit_exceeded_in_korean(self, client, seed_committed):
        """Test the limit message names the cap in the requested language."""
        for _ in range(5):
            await seed_committed()
        prop = await seed_committed(
            status=PropertyStatus.RENTED,
            bookings=[
                (jan(1), jan(8), CONFIRMED),
                (jan(8), jan(15), CONFIRMED),
                (jan(15), jan(29), CONFIRMED),
            ],
        )

        response = await client.post(
            f"/api/bookings/{prop.bookings[1].id}/cancel",
            headers={**OWNER, "Accept-Language": "ko-KR,ko;q=0.9"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["outcome"] == "limit_exceeded"
        assert data["target_tab"] == "expired"
        assert data["property_status"] == "expired"
        assert data["freed_ranges"] == [
            {"start": "2030-01-08", "end": "2030-01-15", "days": 7}
        ]
        assert "5개" in data["message"]

    @pytest.mark.asyncio
    async def test_short_term(self, client, seed_committed):
        """Test a stretch shorter than a week expires the property."""
        prop = await seed_committed(
            bookings=[
                (jan(1), jan(8), CONFIRMED),
                (jan(8), jan(12), CONFIRMED),
                (jan(12), jan(29), CONFIRMED),
            ],
        )

        response = await client.post(
            f"/api/bookings/{prop.bookings[1].id}/cancel", headers=GUEST
        )

        data = response.json()
        assert data["outcome"] == "short_term"
        assert data["message"] == (
            "Moved to Expired Listings as the available period is less than "
            "7 days."
        )

    @pytest.mark.asyncio
    async def test_relisted(self, client, seed_committed):
        """Test a free week under the cap is advertised again."""
        prop = await seed_committed(
            status=PropertyStatus.RENTED,
            bookings=[
                (jan(1), jan(8), CONFIRMED),
                (jan(8), jan(15), CONFIRMED),
                (jan(15), jan(29), CONFIRMED),
            ],
        )

        response = await client.post(
            f"/api/bookings/{prop.bookings[1].id}/cancel", headers=GUEST
        )

        assert response.json()["outcome"] == "relisted"
        response = await client.get("/api/properties", headers=OWNER)
        assert [p["id"] for p in response.json()["active"]] == [prop.id]

    @pytest.mark.asyncio
    async def test_cancel_twice(self, client, seed_committed):
        """Test a cancelled booking cannot be cancelled again."""
        prop = await seed_committed(bookings=[(jan(8), jan(15), CONFIRMED)])
        url = f"/api/bookings/{prop.bookings[0].id}/cancel"

        first = await client.post(url, headers=GUEST)
        second = await client.post(url, headers=GUEST)

        assert first.status_code == 200
        assert second.status_code == 409
        assert second.json()["type"] == "invalid_state_transition"

    @pytest.mark.asyncio
    async def test_wrong_property(self, client, seed_committed):
        """Test the booking must belong to the given property."""
        prop = await seed_committed(bookings=[(jan(8), jan(15), CONFIRMED)])

        response = await client.post(
            f"/api/bookings/{prop.bookings[0].id}/cancel",
            json={"property_id": prop.id + 1},
            headers=GUEST,
        )

        assert response.status_code == 404
