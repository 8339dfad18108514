# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Booking lifecycle: request, owner confirmation and completion."""

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import InvalidRange, InvalidStateTransition, NotFound
from src.models.booking import Booking
from src.models.enums import BookingStatus, PropertyAction, PropertyStatus
from src.models.property import Property
from src.repositories.booking_repository import BookingRepository
from src.repositories.listing_repository import ListingRepository
from src.repositories.property_event_repository import PropertyEventRepository
from src.repositories.property_repository import PropertyRepository
from src.services.availability_service import AvailabilityService
from src.utils.date_ranges import DateRange, subtract

logger = logging.getLogger(__name__)


class BookingService:
    """Service for booking operations other than cancellation.

    Works inside the caller's session; the caller commits.
    """

    def __init__(
        self,
        session: AsyncSession,
        availability: AvailabilityService | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize BookingService.

        Args:
            session: Async database session.
            availability: Availability service for feeds and cache.
            today: Clock for rejecting stays in the past.
        """
        self._session = session
        self._availability = availability or AvailabilityService()
        self._today = today
        self._booking_repo = BookingRepository(session)
        self._property_repo = PropertyRepository(session)
        self._listing_repo = ListingRepository(session)
        self._event_repo = PropertyEventRepository(session)

    async def get(self, booking_id: int) -> Booking:
        """Get a booking.

        Raises:
            NotFound: If the booking does not exist.
        """
        booking = await self._booking_repo.get_by_id(booking_id)
        if booking is None:
            msg = f"Booking {booking_id} not found"
            raise NotFound(msg)
        return booking

    async def create(
        self,
        property_id: int,
        check_in: date,
        check_out: date,
        guest_name: str | None = None,
    ) -> Booking:
        """Request a stay on a property.

        Args:
            property_id: Property to book.
            check_in: First night.
            check_out: Departure day.
            guest_name: Optional guest name.

        Returns:
            The pending booking.

        Raises:
            NotFound: If the property does not exist.
            InvalidStateTransition: If the property is not advertised.
            InvalidRange: If the stay is not a whole number of minimum stays,
                lies outside an active listing or overlaps another stay.
        """
        prop = await self._get_property(property_id)
        if prop.status != PropertyStatus.ACTIVE:
            msg = f"Property {property_id} is {prop.status} and cannot be booked"
            raise InvalidStateTransition(msg)

        stay = DateRange(check_in, check_out)
        stay_days = self._availability.segmenter.minimum_stay_days
        if stay.days % stay_days != 0:
            msg = f"Stay of {stay.days} days is not a multiple of {stay_days} days"
            raise InvalidRange(msg)
        if stay.start < self._today():
            msg = f"Check-in {stay.start} is in the past"
            raise InvalidRange(msg)

        window = prop.advertised_window
        if window is None or not window.contains(stay):
            msg = f"Stay {stay} is outside the advertised window"
            raise InvalidRange(msg)
        if not any(listing.window.contains(stay) for listing in prop.active_listings):
            msg = f"Stay {stay} is not covered by an active listing"
            raise InvalidRange(msg)

        if await self._booking_repo.get_overlapping(prop.id, stay):
            msg = f"Stay {stay} overlaps an existing booking"
            raise InvalidRange(msg)
        external = await self._availability.external_ranges(prop)
        if any(stay.overlaps(r) for r in external):
            msg = f"Stay {stay} is blocked on the external calendar"
            raise InvalidRange(msg)

        booking = await self._booking_repo.create(
            prop,
            Booking(
                guest_name=guest_name,
                check_in=check_in,
                check_out=check_out,
                status=BookingStatus.PENDING,
            ),
        )
        self._availability.invalidate(prop.id)
        logger.info(
            "Booking %s requested on property %s (%s)", booking.id, prop.id, stay
        )
        return booking

    async def confirm(self, booking_id: int) -> Booking:
        """Confirm a pending booking and trim the property's listings.

        Active listings lose the booked days; a listing split in two keeps
        the first piece and gets a new listing for the second. When nothing
        stays advertised the property is marked rented.

        Args:
            booking_id: Booking to confirm.

        Returns:
            The confirmed booking.

        Raises:
            NotFound: If the booking does not exist.
            InvalidStateTransition: If the booking is not pending.
        """
        booking = await self.get(booking_id)
        if booking.status != BookingStatus.PENDING:
            msg = f"Booking {booking_id} is {booking.status}, expected pending"
            raise InvalidStateTransition(msg)

        prop = await self._get_property(booking.property_id)
        booking.status = BookingStatus.CONFIRMED
        await self._booking_repo.update(booking)

        await self._trim_listings(prop, booking.stay)
        if not prop.active_listings:
            prop.status = PropertyStatus.RENTED
        prop.updated_at = datetime.now(UTC)
        await self._property_repo.update(prop)

        await self._event_repo.record(
            prop.id,
            PropertyAction.BOOKING_CONFIRMED,
            f"Booking {booking.id} confirmed ({booking.stay})",
        )
        self._availability.invalidate(prop.id)
        logger.info(
            "Booking %s confirmed, property %s now %s", booking.id, prop.id, prop.status
        )
        return booking

    async def complete(self, booking_id: int) -> Booking:
        """Mark a confirmed booking as completed.

        Raises:
            NotFound: If the booking does not exist.
            InvalidStateTransition: If the booking is not confirmed.
        """
        booking = await self.get(booking_id)
        if booking.status != BookingStatus.CONFIRMED:
            msg = f"Booking {booking_id} is {booking.status}, expected confirmed"
            raise InvalidStateTransition(msg)

        booking.status = BookingStatus.COMPLETED
        return await self._booking_repo.update(booking)

    async def _get_property(self, property_id: int) -> Property:
        prop = await self._property_repo.get_by_id(property_id)
        if prop is None:
            msg = f"Property {property_id} not found"
            raise NotFound(msg)
        return prop

    async def _trim_listings(self, prop: Property, stay: DateRange) -> None:
        """Remove ``stay`` from every active listing it overlaps."""
        for listing in list(prop.active_listings):
            if not listing.window.overlaps(stay):
                continue
            pieces = subtract(listing.window, [stay])
            if not pieces:
                await self._listing_repo.deactivate(listing)
                continue
            listing.window = pieces[0]
            for piece in pieces[1:]:
                await self._listing_repo.create(prop, piece)
