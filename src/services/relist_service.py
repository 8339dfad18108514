# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Decision rules for what happens to a property when a booking is cancelled.

The engine is pure: it receives a snapshot of the property, its remaining
bookings and the owner's advertising count, and returns the outcome together
with the mutation to apply. Persisting the mutation atomically with the
booking status change is the job of the cancellation service.

Rules are checked in order and the first match wins:

1. ``merged``: the property is active and the freed days touch one of its
   active listings, which is extended over them. The owner's quota is not
   involved.
2. ``relisted``: the freed stretch fits a minimum stay and the property
   either still advertises another week or the owner has a free slot; a
   listing is created or reactivated for it.
3. ``limit_exceeded``: the stretch fits a minimum stay but the owner is at
   the cap; the property expires.
4. ``short_term``: the stretch is too short to advertise. The property
   expires unless another of its listings still offers a full stay.

An expired property keeps no active listing, so it cannot come back through
a merge without passing the cap again.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from enum import StrEnum

from src.exceptions import InvalidStateTransition
from src.models.booking import Booking
from src.models.enums import BLOCKING_BOOKING_STATUSES, BookingStatus, PropertyStatus
from src.models.listing import Listing
from src.models.property import Property
from src.services.availability_service import AvailabilitySegmenter
from src.utils.date_ranges import DateRange, subtract

logger = logging.getLogger(__name__)


class CancellationOutcome(StrEnum):
    """Result of a cancellation for the property."""

    MERGED = "merged"
    RELISTED = "relisted"
    LIMIT_EXCEEDED = "limit_exceeded"
    SHORT_TERM = "short_term"


class ListingTab(StrEnum):
    """Owner dashboard tab a property ends up in."""

    ACTIVE = "active"
    EXPIRED = "expired"


@dataclass(frozen=True)
class ListingSlice:
    """Listing as seen by the engine."""

    listing_id: int
    window: DateRange

    @classmethod
    def of(cls, listing: Listing) -> "ListingSlice":
        """Build a slice from a listing row."""
        return cls(listing_id=listing.id, window=listing.window)


@dataclass(frozen=True)
class ListingChange:
    """Change to apply to one listing.

    ``listing_id`` is None for a listing that has to be created.
    """

    listing_id: int | None
    window: DateRange
    active: bool = True


@dataclass(frozen=True)
class RelistContext:
    """Everything the engine needs to decide one cancellation.

    ``booked_ranges`` must already exclude the cancelled booking and include
    ranges from the external feed. ``owner_active_count`` counts the owner's
    other advertised properties, without this one. ``property_status`` is the
    status before the cancellation.
    """

    property_id: int
    booking_id: int
    booking_status: BookingStatus
    cancelled_range: DateRange
    window: DateRange | None
    booked_ranges: tuple[DateRange, ...]
    owner_active_count: int
    cap: int
    active_listings: tuple[ListingSlice, ...] = ()
    inactive_listings: tuple[ListingSlice, ...] = ()
    as_of: date | None = None
    property_status: PropertyStatus = PropertyStatus.ACTIVE

    @classmethod
    def for_cancellation(
        cls,
        prop: Property,
        booking: Booking,
        *,
        owner_active_count: int,
        cap: int,
        external_ranges: Iterable[DateRange] = (),
        as_of: date | None = None,
    ) -> "RelistContext":
        """Build a context from loaded rows.

        Args:
            prop: Property with listings and bookings loaded.
            booking: Booking being cancelled.
            owner_active_count: Owner's advertised properties other than this.
            cap: Owner's advertising cap.
            external_ranges: Ranges from the property's external feed.
            as_of: First day that can still be advertised.

        Returns:
            Context for :meth:`CancellationRelistEngine.on_cancel`.
        """
        booked = AvailabilitySegmenter.booked_ranges(
            prop.bookings, external_ranges, exclude_booking_id=booking.id
        )
        return cls(
            property_id=prop.id,
            booking_id=booking.id,
            booking_status=booking.status,
            cancelled_range=booking.stay,
            window=prop.advertised_window,
            booked_ranges=tuple(booked),
            owner_active_count=owner_active_count,
            cap=cap,
            active_listings=tuple(
                ListingSlice.of(listing) for listing in prop.listings if listing.active
            ),
            inactive_listings=tuple(
                ListingSlice.of(listing)
                for listing in prop.listings
                if not listing.active
            ),
            as_of=as_of,
            property_status=prop.status,
        )


@dataclass(frozen=True)
class RelistDecision:
    """Outcome of a cancellation and the property mutation it implies."""

    outcome: CancellationOutcome
    property_id: int
    new_status: PropertyStatus
    freed_ranges: tuple[DateRange, ...] = ()
    listing_changes: tuple[ListingChange, ...] = ()

    @property
    def target_tab(self) -> ListingTab:
        """Get the dashboard tab the owner should be sent to."""
        if self.new_status is PropertyStatus.ACTIVE:
            return ListingTab.ACTIVE
        return ListingTab.EXPIRED

    @property
    def freed_days(self) -> int:
        """Get the total length of the freed ranges."""
        return sum(r.days for r in self.freed_ranges)


def plan_listings(
    ranges: Sequence[DateRange], reusable: Sequence[ListingSlice]
) -> tuple[ListingChange, ...]:
    """Plan active listings covering ranges.

    Inactive listings overlapping a range are reactivated for it; the rest
    of the ranges get new listings.

    Args:
        ranges: Ranges to advertise.
        reusable: Inactive listings of the property.

    Returns:
        One change per range.
    """
    spare = sorted(reusable, key=lambda s: s.window)
    changes = []
    for window in ranges:
        reused = next((s for s in spare if s.window.overlaps(window)), None)
        if reused is not None:
            spare.remove(reused)
            changes.append(ListingChange(reused.listing_id, window))
        else:
            changes.append(ListingChange(None, window))
    return tuple(changes)


def _touching(window: DateRange, ranges: Iterable[DateRange]) -> bool:
    return any(window.touches(r) for r in ranges)


def _deactivate(listings: Iterable[ListingSlice]) -> tuple[ListingChange, ...]:
    return tuple(ListingChange(s.listing_id, s.window, active=False) for s in listings)


class CancellationRelistEngine:
    """Decides merge, relist or expiry for a cancelled booking."""

    def __init__(self, segmenter: AvailabilitySegmenter | None = None) -> None:
        """Initialize engine.

        Args:
            segmenter: Segmenter holding the minimum stay. Defaults to settings.
        """
        self._segmenter = segmenter or AvailabilitySegmenter()

    def on_cancel(self, context: RelistContext) -> RelistDecision:
        """Decide what happens to the property after a cancellation.

        Args:
            context: Snapshot of the property and owner.

        Returns:
            Decision carrying the outcome and the mutation to apply.

        Raises:
            InvalidStateTransition: If the booking is not pending or confirmed.
        """
        if context.booking_status not in BLOCKING_BOOKING_STATUSES:
            msg = (
                f"Booking {context.booking_id} is {context.booking_status} "
                "and cannot be cancelled"
            )
            raise InvalidStateTransition(msg)

        segments = self._segmenter.segment(context.window, context.booked_ranges)
        freed_pieces = [
            piece
            for seg in segments
            if (piece := seg.clip(context.cancelled_range)) is not None
        ]

        # Listings left active on a property that is not advertised are stale
        if context.property_status is PropertyStatus.ACTIVE:
            live, stale = context.active_listings, ()
        else:
            live, stale = (), context.active_listings

        decision = self._try_merge(context, live, freed_pieces)
        if decision is None:
            decision = self._relist_or_expire(
                context, live, stale, segments, freed_pieces
            )

        logger.info(
            "Cancellation of booking %s on property %s: %s (freed %d days, %s)",
            context.booking_id,
            context.property_id,
            decision.outcome,
            decision.freed_days,
            decision.new_status,
        )
        return decision

    def _try_merge(
        self,
        context: RelistContext,
        live: Sequence[ListingSlice],
        freed_pieces: Sequence[DateRange],
    ) -> RelistDecision | None:
        """Extend the first live listing touching the freed days."""
        listings = sorted(live, key=lambda s: s.window)
        first = next(
            (s for s in listings if _touching(s.window, freed_pieces)), None
        )
        if first is None:
            return None

        merged = first.window
        pieces_left = list(freed_pieces)
        others_left = [s for s in listings if s is not first]
        absorbed: list[ListingSlice] = []

        # Grow over everything contiguous with the listing
        grew = True
        while grew:
            grew = False
            for piece in list(pieces_left):
                if merged.touches(piece):
                    merged = merged.hull(piece)
                    pieces_left.remove(piece)
                    grew = True
            for other in list(others_left):
                if merged.touches(other.window):
                    merged = merged.hull(other.window)
                    others_left.remove(other)
                    absorbed.append(other)
                    grew = True

        changes = (ListingChange(first.listing_id, merged, active=True),)
        return RelistDecision(
            outcome=CancellationOutcome.MERGED,
            property_id=context.property_id,
            new_status=PropertyStatus.ACTIVE,
            freed_ranges=(merged,),
            listing_changes=changes + _deactivate(absorbed),
        )

    def _still_advertised(
        self, context: RelistContext, live: Sequence[ListingSlice]
    ) -> bool:
        """Check whether a live listing still offers a full stay from today."""
        for listing in live:
            open_parts = subtract(listing.window, context.booked_ranges)
            if self._segmenter.has_bookable_segment(open_parts, context.as_of):
                return True
        return False

    def _relist_or_expire(
        self,
        context: RelistContext,
        live: Sequence[ListingSlice],
        stale: Sequence[ListingSlice],
        segments: Sequence[DateRange],
        freed_pieces: Sequence[DateRange],
    ) -> RelistDecision:
        """Advertise the freed stretch, or expire the property."""
        # Freed stretch: open days around the cancelled ones not yet advertised
        advertised = [s.window for s in live]
        freed = [
            stretch
            for seg in segments
            if _touching(seg, freed_pieces)
            for stretch in subtract(seg, advertised)
            if _touching(stretch, freed_pieces)
        ]
        bookable = self._segmenter.bookable_segments(freed, context.as_of)
        advertisable = [r for r in bookable if self._segmenter.is_advertisable(r)]

        # An advertised property already holds its slot in the owner's count
        holds_slot = self._still_advertised(context, live)

        if advertisable and (holds_slot or context.owner_active_count < context.cap):
            planned = plan_listings(
                advertisable, [*context.inactive_listings, *stale]
            )
            reused = {change.listing_id for change in planned}
            return RelistDecision(
                outcome=CancellationOutcome.RELISTED,
                property_id=context.property_id,
                new_status=PropertyStatus.ACTIVE,
                freed_ranges=tuple(advertisable),
                listing_changes=planned
                + _deactivate(s for s in stale if s.listing_id not in reused),
            )

        if advertisable:
            return RelistDecision(
                outcome=CancellationOutcome.LIMIT_EXCEEDED,
                property_id=context.property_id,
                new_status=PropertyStatus.EXPIRED,
                freed_ranges=tuple(advertisable),
                listing_changes=_deactivate(context.active_listings),
            )

        if holds_slot:
            return RelistDecision(
                outcome=CancellationOutcome.SHORT_TERM,
                property_id=context.property_id,
                new_status=PropertyStatus.ACTIVE,
                freed_ranges=tuple(bookable),
            )

        return RelistDecision(
            outcome=CancellationOutcome.SHORT_TERM,
            property_id=context.property_id,
            new_status=PropertyStatus.EXPIRED,
            freed_ranges=tuple(bookable),
            listing_changes=_deactivate(context.active_listings),
        )
