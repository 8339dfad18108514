# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Availability segmentation of advertised windows."""

import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, timedelta

from src.config import get_settings
from src.models.booking import Booking
from src.models.property import Property
from src.services.calendar_feed_service import CalendarFeedClient, CalendarFeedError
from src.utils.date_ranges import DateRange, subtract

logger = logging.getLogger(__name__)

# Cache TTL in seconds (5 minutes)
CACHE_TTL_SECONDS = 300


def segment(
    window: DateRange | None, booked_ranges: Iterable[DateRange]
) -> list[DateRange]:
    """Split an advertised window into its open segments.

    Booked ranges may come from internal bookings or external feeds; their
    origin makes no difference. Ranges outside the window are ignored.

    Args:
        window: Advertised window, or None when the property has none.
        booked_ranges: Unavailable ranges.

    Returns:
        Maximal open sub-ranges of the window, sorted and non-overlapping.
        Empty when there is no window.
    """
    if window is None:
        return []
    return subtract(window, booked_ranges)


class SegmentCache:
    """Simple in-memory cache for display segments.

    Only read paths that render availability use it; relisting decisions
    always recompute from current bookings.
    """

    def __init__(self, ttl_seconds: int = CACHE_TTL_SECONDS) -> None:
        """Initialize cache with TTL.

        Args:
            ttl_seconds: Time-to-live for cache entries.
        """
        self._cache: dict[int, tuple[list[DateRange], datetime]] = {}
        self._ttl = timedelta(seconds=ttl_seconds)

    def get(self, property_id: int) -> list[DateRange] | None:
        """Get cached segments if not expired.

        Args:
            property_id: Property the segments belong to.

        Returns:
            Copy of the cached segments or None if expired/missing.
        """
        if property_id not in self._cache:
            return None

        value, timestamp = self._cache[property_id]
        if datetime.now(UTC) - timestamp > self._ttl:
            del self._cache[property_id]
            return None

        return list(value)

    def set(self, property_id: int, segments: Sequence[DateRange]) -> None:
        """Store segments in cache.

        Args:
            property_id: Property the segments belong to.
            segments: Segments to cache.
        """
        self._cache[property_id] = (list(segments), datetime.now(UTC))

    def invalidate(self, property_id: int) -> None:
        """Remove entry from cache.

        Args:
            property_id: Property to invalidate.
        """
        self._cache.pop(property_id, None)

    def clear(self) -> None:
        """Clear all cache entries."""
        self._cache.clear()


# Global cache instance
_segment_cache = SegmentCache(ttl_seconds=get_settings().segment_cache_ttl_seconds)


def get_segment_cache() -> SegmentCache:
    """Get the global segment cache instance.

    Returns:
        SegmentCache singleton.
    """
    return _segment_cache


class AvailabilitySegmenter:
    """Computes open segments and judges whether they can be advertised.

    Stateless apart from the minimum stay length; safe to share.
    """

    def __init__(self, minimum_stay_days: int | None = None) -> None:
        """Initialize segmenter.

        Args:
            minimum_stay_days: Shortest advertisable stay. Defaults to settings.
        """
        self._minimum_stay_days = minimum_stay_days or get_settings().minimum_stay_days

    @property
    def minimum_stay_days(self) -> int:
        """Get the shortest advertisable stay in days."""
        return self._minimum_stay_days

    def segment(
        self, window: DateRange | None, booked_ranges: Iterable[DateRange]
    ) -> list[DateRange]:
        """Split a window into open segments. See :func:`segment`."""
        return segment(window, booked_ranges)

    @staticmethod
    def booked_ranges(
        bookings: Iterable[Booking],
        external_ranges: Iterable[DateRange] = (),
        exclude_booking_id: int | None = None,
    ) -> list[DateRange]:
        """Collect the ranges that make a property unavailable.

        Args:
            bookings: Bookings of the property; only pending and confirmed
                ones count.
            external_ranges: Ranges parsed from the external calendar feed.
            exclude_booking_id: Booking to treat as already released.

        Returns:
            Unavailable ranges sorted by start.
        """
        ranges = [
            booking.stay
            for booking in bookings
            if booking.is_blocking and booking.id != exclude_booking_id
        ]
        ranges.extend(external_ranges)
        return sorted(ranges)

    def segments_for(
        self,
        prop: Property,
        external_ranges: Iterable[DateRange] = (),
        exclude_booking_id: int | None = None,
    ) -> list[DateRange]:
        """Compute the open segments of a property.

        Args:
            prop: Property with its bookings loaded.
            external_ranges: Ranges parsed from the external calendar feed.
            exclude_booking_id: Booking to treat as already released.

        Returns:
            Open segments of the property's advertised window.
        """
        booked = self.booked_ranges(
            prop.bookings, external_ranges, exclude_booking_id
        )
        return self.segment(prop.advertised_window, booked)

    @staticmethod
    def bookable_segments(
        segments: Iterable[DateRange], as_of: date | None = None
    ) -> list[DateRange]:
        """Drop the past part of segments.

        Args:
            segments: Open segments.
            as_of: First day that can still be booked; None keeps everything.

        Returns:
            Segments clipped to start no earlier than ``as_of``.
        """
        if as_of is None:
            return list(segments)
        result = []
        for seg in segments:
            if seg.end <= as_of:
                continue
            result.append(DateRange(max(seg.start, as_of), seg.end))
        return result

    def is_advertisable(self, seg: DateRange) -> bool:
        """Check whether a segment is long enough to be offered on its own."""
        return seg.days >= self._minimum_stay_days

    def has_bookable_segment(
        self, segments: Iterable[DateRange], as_of: date | None = None
    ) -> bool:
        """Check whether any segment still fits a minimum stay.

        Args:
            segments: Open segments.
            as_of: First day that can still be booked.

        Returns:
            True if at least one segment is advertisable.
        """
        return any(
            self.is_advertisable(seg) for seg in self.bookable_segments(segments, as_of)
        )

    @staticmethod
    def segment_containing(
        segments: Iterable[DateRange], day: date
    ) -> DateRange | None:
        """Find the open segment a day falls in.

        Args:
            segments: Open segments.
            day: Day to look up.

        Returns:
            The segment containing ``day`` or None if the day is unavailable.
        """
        for seg in segments:
            if seg.contains_date(day):
                return seg
        return None


class AvailabilityService:
    """Loads booked ranges for a property and serves display segments.

    Combines internal bookings with the property's external calendar feed.
    A feed that cannot be fetched never blocks segmentation: the service
    logs a warning and continues with internal bookings only.
    """

    def __init__(
        self,
        segmenter: AvailabilitySegmenter | None = None,
        feed_client: CalendarFeedClient | None = None,
        cache: SegmentCache | None = None,
    ) -> None:
        """Initialize availability service.

        Args:
            segmenter: Segmenter to use. Defaults to one built from settings.
            feed_client: Client for external feeds.
            cache: Optional cache instance. Uses global cache if not provided.
        """
        self._segmenter = segmenter or AvailabilitySegmenter()
        self._feed_client = feed_client or CalendarFeedClient()
        self._cache = cache or get_segment_cache()

    @property
    def segmenter(self) -> AvailabilitySegmenter:
        """Get the segmenter used by the service."""
        return self._segmenter

    async def external_ranges(self, prop: Property) -> list[DateRange]:
        """Fetch the external feed of a property, if it has one.

        Args:
            prop: Property to fetch the feed for.

        Returns:
            Blocked ranges from the feed; empty if there is no feed or it failed.
        """
        if not prop.calendar_feed_url:
            return []

        try:
            return await self._feed_client.fetch_ranges(prop.calendar_feed_url)
        except CalendarFeedError as e:
            logger.warning(
                "Calendar feed for property %s unavailable, "
                "using internal bookings only: %s",
                prop.id,
                e,
            )
            return []

    async def display_segments(self, prop: Property) -> list[DateRange]:
        """Get open segments of a property for display.

        Args:
            prop: Property with its bookings loaded.

        Returns:
            Open segments, possibly served from cache.
        """
        cached = self._cache.get(prop.id)
        if cached is not None:
            logger.debug("Segment cache hit for property %s", prop.id)
            return cached

        external = await self.external_ranges(prop)
        segments = self._segmenter.segments_for(prop, external)
        self._cache.set(prop.id, segments)
        return segments

    def invalidate(self, property_id: int) -> None:
        """Drop cached segments of a property after it changed.

        Args:
            property_id: Property that changed.
        """
        self._cache.invalidate(property_id)
