# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Persistence for guest stays and their overlap checks."""

from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.booking import Booking
from src.models.enums import BLOCKING_BOOKING_STATUSES, BookingStatus
from src.models.property import Property
from src.utils.date_ranges import DateRange


class BookingRepository:
    """Reads and writes bookings; overlap queries keep stays disjoint."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, booking_id: int) -> Booking | None:
        """Load one booking, or None when the id is unknown."""
        result = await self._session.execute(
            select(Booking).where(Booking.id == booking_id)
        )
        return result.scalar_one_or_none()

    async def get_for_property(self, property_id: int) -> Sequence[Booking]:
        """Get all bookings for a property.

        Args:
            property_id: Property ID to filter by.

        Returns:
            Sequence of bookings ordered by check-in.
        """
        result = await self._session.execute(
            select(Booking)
            .where(Booking.property_id == property_id)
            .order_by(Booking.check_in)
        )
        return result.scalars().all()

    async def get_overlapping(
        self, property_id: int, stay: DateRange
    ) -> Sequence[Booking]:
        """Get pending or confirmed bookings sharing a day with ``stay``.

        Args:
            property_id: Property ID to filter by.
            stay: Range to test.

        Returns:
            Sequence of blocking bookings overlapping the range.
        """
        result = await self._session.execute(
            select(Booking)
            .where(
                Booking.property_id == property_id,
                Booking.status.in_(BLOCKING_BOOKING_STATUSES),
                Booking.check_in < stay.end,
                Booking.check_out > stay.start,
            )
            .order_by(Booking.check_in)
        )
        return result.scalars().all()

    async def create(self, prop: Property, booking: Booking) -> Booking:
        """Create a new booking on a property.

        Args:
            prop: Property with its bookings loaded.
            booking: Booking entity to create.

        Returns:
            Created booking with ID.
        """
        prop.bookings.append(booking)
        await self._session.flush()
        await self._session.refresh(booking)
        return booking

    async def update(self, booking: Booking) -> Booking:
        """Flush pending changes and reload server defaults."""
        await self._session.flush()
        await self._session.refresh(booking)
        return booking

    async def mark_cancelled(
        self, booking: Booking, reason: str | None = None
    ) -> Booking:
        """Mark a booking as cancelled.

        Args:
            booking: Booking to mark as cancelled.
            reason: Optional cancellation reason.

        Returns:
            Updated booking with cancelled status.
        """
        booking.status = BookingStatus.CANCELLED
        booking.cancel_reason = reason
        booking.cancelled_at = datetime.now(UTC)
        return await self.update(booking)
