# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Transactional booking cancellation with relisting."""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from src.config import get_settings
from src.database import get_session_factory
from src.exceptions import ConcurrentModification, NotFound
from src.models.booking import Booking
from src.models.enums import PropertyAction
from src.models.property import Property
from src.repositories.booking_repository import BookingRepository
from src.repositories.listing_repository import ListingRepository
from src.repositories.owner_repository import OwnerRepository
from src.repositories.property_event_repository import PropertyEventRepository
from src.repositories.property_repository import PropertyRepository
from src.services.advertising_limiter import AdvertisingLimiter
from src.services.availability_service import AvailabilityService
from src.services.relist_service import (
    CancellationOutcome,
    CancellationRelistEngine,
    ListingChange,
    ListingTab,
    RelistContext,
    RelistDecision,
)
from src.utils.date_ranges import DateRange

logger = logging.getLogger(__name__)

# Backoff between conflicting attempts
BASE_DELAY_SECONDS = 0.05
MAX_DELAY_SECONDS = 1.0

OUTCOME_ACTIONS = {
    CancellationOutcome.MERGED: PropertyAction.MERGED_FROM_CANCELLATION,
    CancellationOutcome.RELISTED: PropertyAction.RELISTED,
    CancellationOutcome.LIMIT_EXCEEDED: PropertyAction.CLOSED_LIMIT_EXCEEDED,
    CancellationOutcome.SHORT_TERM: PropertyAction.CLOSED_SHORT_TERM,
}


@dataclass
class CancellationResult:
    """Committed cancellation."""

    booking: Booking
    rental: Property
    decision: RelistDecision
    cap: int


class CancellationService:
    """Cancels bookings and applies the relist decision atomically.

    The booking status change, the property mutation and the owner quota
    stamp are written in one transaction. Property and owner rows are
    versioned; when another writer got there first the whole decision is
    recomputed in a fresh session.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        availability: AvailabilityService | None = None,
        engine: CancellationRelistEngine | None = None,
        today: Callable[[], date] = date.today,
        max_retries: int | None = None,
        retry_delay: float = BASE_DELAY_SECONDS,
    ) -> None:
        """Initialize CancellationService.

        Args:
            session_factory: Factory for per-attempt sessions. Defaults to the
                global factory.
            availability: Availability service providing the segmenter and
                external feeds.
            engine: Decision engine.
            today: Clock used for the "bookable from today" rule.
            max_retries: Attempts before giving up on conflicts.
            retry_delay: Initial backoff between attempts in seconds.
        """
        self._session_factory = session_factory or get_session_factory()
        self._availability = availability or AvailabilityService()
        self._engine = engine or CancellationRelistEngine(
            self._availability.segmenter
        )
        self._today = today
        self._max_retries = max_retries or get_settings().cancellation_max_retries
        self._retry_delay = retry_delay

    async def cancel(
        self,
        booking_id: int,
        property_id: int | None = None,
        reason: str | None = None,
    ) -> CancellationResult:
        """Cancel a booking and relist, merge or expire its property.

        Args:
            booking_id: Booking to cancel.
            property_id: Property the caller expects the booking to belong to.
            reason: Optional cancellation reason.

        Returns:
            The committed cancellation.

        Raises:
            NotFound: If the booking or property does not exist.
            InvalidStateTransition: If the booking is not pending or confirmed.
            ConcurrentModification: If every attempt lost a race.
        """
        external = await self._load_external_ranges(booking_id, property_id)

        last_error: StaleDataError | None = None
        delay = self._retry_delay

        for attempt in range(1, self._max_retries + 1):
            try:
                return await self._attempt(booking_id, property_id, reason, external)
            except StaleDataError as e:
                last_error = e
                if attempt == self._max_retries:
                    break

                wait_time = min(delay, MAX_DELAY_SECONDS)
                logger.warning(
                    "Cancellation of booking %s conflicted, retrying in %.2fs "
                    "(attempt %d/%d)",
                    booking_id,
                    wait_time,
                    attempt,
                    self._max_retries,
                )
                await asyncio.sleep(wait_time)
                delay *= 2

        msg = (
            f"Cancellation of booking {booking_id} conflicted with another "
            f"change {self._max_retries} times"
        )
        raise ConcurrentModification(
            msg, retry_after=self._retry_delay
        ) from last_error

    async def _load_external_ranges(
        self, booking_id: int, property_id: int | None
    ) -> list[DateRange]:
        """Fetch the property's external feed before the transaction starts."""
        async with self._session_factory() as session:
            booking = await BookingRepository(session).get_by_id(booking_id)
            if booking is None:
                msg = f"Booking {booking_id} not found"
                raise NotFound(msg)
            prop = await PropertyRepository(session).get_by_id(booking.property_id)
            if prop is None or (
                property_id is not None and prop.id != property_id
            ):
                msg = f"Booking {booking_id} not found on property {property_id}"
                raise NotFound(msg)

        return await self._availability.external_ranges(prop)

    async def _attempt(
        self,
        booking_id: int,
        property_id: int | None,
        reason: str | None,
        external: list[DateRange],
    ) -> CancellationResult:
        """Run one read-decide-write cycle in its own transaction."""
        async with self._session_factory() as session:
            try:
                result = await self._decide_and_apply(
                    session, booking_id, property_id, reason, external
                )
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        self._availability.invalidate(result.rental.id)
        return result

    async def _decide_and_apply(
        self,
        session: AsyncSession,
        booking_id: int,
        property_id: int | None,
        reason: str | None,
        external: list[DateRange],
    ) -> CancellationResult:
        booking_repo = BookingRepository(session)
        property_repo = PropertyRepository(session)
        owner_repo = OwnerRepository(session)

        booking = await booking_repo.get_by_id(booking_id)
        if booking is None:
            msg = f"Booking {booking_id} not found"
            raise NotFound(msg)
        if property_id is not None and booking.property_id != property_id:
            msg = f"Booking {booking_id} not found on property {property_id}"
            raise NotFound(msg)

        prop = await property_repo.get_by_id(booking.property_id)
        if prop is None:
            msg = f"Property {booking.property_id} not found"
            raise NotFound(msg)

        owner = await owner_repo.get_or_create(prop.owner_id)
        today = self._today()
        limiter = AdvertisingLimiter.for_owner(
            owner, self._availability.segmenter, as_of=today
        )
        siblings = await property_repo.get_for_owner(owner.id)
        active_count = limiter.active_count(
            owner.id, limiter.snapshots(siblings), exclude_property_id=prop.id
        )

        context = RelistContext.for_cancellation(
            prop,
            booking,
            owner_active_count=active_count,
            cap=limiter.cap,
            external_ranges=external,
            as_of=today,
        )
        decision = self._engine.on_cancel(context)

        await booking_repo.mark_cancelled(booking, reason)
        await self._apply(session, prop, decision)
        await owner_repo.touch(owner)
        await PropertyEventRepository(session).record(
            prop.id,
            self._action_for(decision),
            f"Booking {booking.id} ({booking.stay}) cancelled; "
            f"freed {', '.join(map(str, decision.freed_ranges)) or 'nothing'}",
        )

        return CancellationResult(
            booking=booking, rental=prop, decision=decision, cap=limiter.cap
        )

    @staticmethod
    def _action_for(decision: RelistDecision) -> PropertyAction:
        # A short stretch on a property that stays listed closes nothing
        if (
            decision.outcome is CancellationOutcome.SHORT_TERM
            and decision.target_tab is ListingTab.ACTIVE
        ):
            return PropertyAction.FREED_TOO_SHORT
        return OUTCOME_ACTIONS[decision.outcome]

    @staticmethod
    async def _apply(
        session: AsyncSession, prop: Property, decision: RelistDecision
    ) -> None:
        """Write the decision's listing changes and status to the property."""
        await apply_listing_changes(
            ListingRepository(session), prop, decision.listing_changes
        )
        prop.status = decision.new_status
        # Always write the row so its version guards concurrent decisions
        prop.updated_at = datetime.now(UTC)
        await PropertyRepository(session).update(prop)


async def apply_listing_changes(
    listing_repo: ListingRepository,
    prop: Property,
    changes: Iterable[ListingChange],
) -> None:
    """Apply planned listing changes to a property.

    Args:
        listing_repo: Repository bound to the property's session.
        prop: Property with its listings loaded.
        changes: Changes to apply; ``listing_id=None`` creates a listing.
    """
    by_id = {listing.id: listing for listing in prop.listings}
    for change in changes:
        if change.listing_id is None:
            await listing_repo.create(prop, change.window)
            continue
        listing = by_id[change.listing_id]
        listing.window = change.window
        listing.active = change.active
