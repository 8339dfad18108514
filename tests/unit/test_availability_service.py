# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Unit tests for availability segmentation and the segment cache."""

import random
from datetime import date, timedelta
from unittest.mock import AsyncMock

import pytest
from src.models import Booking, BookingStatus, Property
from src.services.availability_service import (
    AvailabilitySegmenter,
    AvailabilityService,
    SegmentCache,
    segment,
)
from src.services.calendar_feed_service import CalendarFeedClient, CalendarFeedError
from src.utils.date_ranges import DateRange, clip_all, merge_ranges, total_days


def jan(day: int) -> date:
    """Day of January 2030."""
    return date(2030, 1, day)


WINDOW = DateRange(jan(1), jan(29))
PENDING = BookingStatus.PENDING
CONFIRMED = BookingStatus.CONFIRMED
CANCELLED = BookingStatus.CANCELLED
COMPLETED = BookingStatus.COMPLETED


def _property(bookings=(), feed_url=None) -> Property:
    return Property(
        id=1,
        owner_id="owner-1",
        title="Cottage",
        window_start=WINDOW.start,
        window_end=WINDOW.end,
        calendar_feed_url=feed_url,
        listings=[],
        bookings=list(bookings),
    )


class TestSegment:
    """Tests for the segment function."""

    def test_single_booking_splits_window(self):
        """Test a mid-window week leaves the two sides open."""
        segments = segment(WINDOW, [DateRange(jan(8), jan(15))])

        assert segments == [DateRange(jan(1), jan(8)), DateRange(jan(15), jan(29))]

    def test_no_bookings_gives_window(self):
        """Test zero bookings yields exactly the window."""
        assert segment(WINDOW, []) == [WINDOW]

    def test_no_window_gives_nothing(self):
        """Test a property without a window has no segments."""
        assert segment(None, [DateRange(jan(8), jan(15))]) == []

    def test_repeatable(self):
        """Test identical inputs give identical output."""
        booked = [DateRange(jan(3), jan(6)), DateRange(jan(20), jan(22))]

        assert segment(WINDOW, booked) == segment(WINDOW, booked)

    def test_segments_and_bookings_rebuild_window(self):
        """Test segments plus clipped bookings cover the window exactly."""
        rng = random.Random(20300101)
        for _ in range(200):
            booked = []
            for _ in range(rng.randint(0, 6)):
                start = jan(1) + timedelta(days=rng.randint(-5, 30))
                booked.append(DateRange.of_days(start, rng.randint(1, 10)))

            segments = segment(WINDOW, booked)
            clipped = clip_all(booked, WINDOW)

            assert segments == sorted(segments)
            for first, second in zip(segments, segments[1:], strict=False):
                assert first.end < second.start
            assert all(WINDOW.contains(s) for s in segments)
            assert not any(s.overlaps(b) for s in segments for b in clipped)
            assert merge_ranges(segments + clipped) == [WINDOW]
            assert total_days(segments) + total_days(clipped) == WINDOW.days


class TestAvailabilitySegmenter:
    """Tests for AvailabilitySegmenter."""

    def test_only_blocking_bookings_count(self):
        """Test cancelled and completed bookings free their dates."""
        bookings = [
            Booking(id=1, check_in=jan(1), check_out=jan(8), status=PENDING),
            Booking(id=2, check_in=jan(8), check_out=jan(15), status=CONFIRMED),
            Booking(id=3, check_in=jan(15), check_out=jan(22), status=CANCELLED),
            Booking(id=4, check_in=jan(22), check_out=jan(29), status=COMPLETED),
        ]

        ranges = AvailabilitySegmenter.booked_ranges(bookings)

        assert ranges == [DateRange(jan(1), jan(8)), DateRange(jan(8), jan(15))]

    def test_booked_ranges_exclude_and_external(self):
        """Test a booking can be excluded and feed ranges are added."""
        bookings = [
            Booking(
                id=7, check_in=jan(8), check_out=jan(15), status=BookingStatus.CONFIRMED
            )
        ]
        external = [DateRange(jan(20), jan(23))]

        ranges = AvailabilitySegmenter.booked_ranges(
            bookings, external, exclude_booking_id=7
        )

        assert ranges == external

    def test_segments_for_property(self):
        """Test segments of a property with a confirmed booking."""
        prop = _property(
            [
                Booking(
                    id=1,
                    check_in=jan(8),
                    check_out=jan(15),
                    status=BookingStatus.CONFIRMED,
                )
            ]
        )
        segmenter = AvailabilitySegmenter(minimum_stay_days=7)

        assert segmenter.segments_for(prop) == [
            DateRange(jan(1), jan(8)),
            DateRange(jan(15), jan(29)),
        ]

    def test_bookable_segments_clip_past(self):
        """Test segments are cut to start no earlier than today."""
        segments = [DateRange(jan(1), jan(8)), DateRange(jan(15), jan(29))]

        bookable = AvailabilitySegmenter.bookable_segments(segments, jan(10))

        assert bookable == [DateRange(jan(15), jan(29))]
        assert AvailabilitySegmenter.bookable_segments(segments, jan(3)) == [
            DateRange(jan(3), jan(8)),
            DateRange(jan(15), jan(29)),
        ]

    def test_is_advertisable(self):
        """Test a segment must fit a minimum stay."""
        segmenter = AvailabilitySegmenter(minimum_stay_days=7)

        assert segmenter.is_advertisable(DateRange(jan(1), jan(8)))
        assert not segmenter.is_advertisable(DateRange(jan(1), jan(7)))

    def test_has_bookable_segment_respects_today(self):
        """Test a week in the past no longer counts."""
        segmenter = AvailabilitySegmenter(minimum_stay_days=7)
        segments = [DateRange(jan(1), jan(8))]

        assert segmenter.has_bookable_segment(segments)
        assert not segmenter.has_bookable_segment(segments, jan(2))

    def test_segment_containing(self):
        """Test finding the segment of a day."""
        segments = [DateRange(jan(1), jan(8)), DateRange(jan(15), jan(29))]

        find = AvailabilitySegmenter.segment_containing

        assert find(segments, jan(20)) == segments[1]
        assert find(segments, jan(10)) is None


class TestSegmentCache:
    """Tests for SegmentCache."""

    def test_set_get_invalidate(self):
        """Test cached segments can be read back and dropped."""
        cache = SegmentCache(ttl_seconds=60)
        cache.set(1, [WINDOW])

        assert cache.get(1) == [WINDOW]

        cache.invalidate(1)

        assert cache.get(1) is None

    def test_expired_entry(self):
        """Test entries past their TTL are dropped."""
        cache = SegmentCache(ttl_seconds=-1)
        cache.set(1, [WINDOW])

        assert cache.get(1) is None

    def test_clear(self):
        """Test clearing removes every entry."""
        cache = SegmentCache()
        cache.set(1, [WINDOW])
        cache.set(2, [WINDOW])

        cache.clear()

        assert cache.get(1) is None
        assert cache.get(2) is None


class TestAvailabilityService:
    """Tests for AvailabilityService."""

    @pytest.mark.asyncio
    async def test_external_ranges_block_dates(self):
        """Test feed ranges are treated like bookings."""
        feed = AsyncMock(spec=CalendarFeedClient)
        feed.fetch_ranges.return_value = [DateRange(jan(8), jan(15))]
        service = AvailabilityService(feed_client=feed, cache=SegmentCache())

        segments = await service.display_segments(
            _property(feed_url="https://example.com/cal.ics")
        )

        assert segments == [DateRange(jan(1), jan(8)), DateRange(jan(15), jan(29))]
        feed.fetch_ranges.assert_awaited_once_with("https://example.com/cal.ics")

    @pytest.mark.asyncio
    async def test_feed_failure_falls_back_to_bookings(self, caplog):
        """Test a broken feed is logged and ignored."""
        feed = AsyncMock(spec=CalendarFeedClient)
        feed.fetch_ranges.side_effect = CalendarFeedError("timeout")
        service = AvailabilityService(feed_client=feed, cache=SegmentCache())

        segments = await service.display_segments(
            _property(feed_url="https://example.com/cal.ics")
        )

        assert segments == [WINDOW]
        assert "using internal bookings only" in caplog.text

    @pytest.mark.asyncio
    async def test_no_feed_url_skips_fetch(self):
        """Test properties without a feed never hit the network."""
        feed = AsyncMock(spec=CalendarFeedClient)
        service = AvailabilityService(feed_client=feed, cache=SegmentCache())

        assert await service.external_ranges(_property()) == []
        feed.fetch_ranges.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_display_segments_cached_until_invalidated(self):
        """Test the second read is served from cache."""
        feed = AsyncMock(spec=CalendarFeedClient)
        feed.fetch_ranges.return_value = []
        service = AvailabilityService(feed_client=feed, cache=SegmentCache())
        prop = _property(feed_url="https://example.com/cal.ics")

        await service.display_segments(prop)
        await service.display_segments(prop)
        assert feed.fetch_ranges.await_count == 1

        service.invalidate(prop.id)
        await service.display_segments(prop)
        assert feed.fetch_ranges.await_count == 2
