# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Client for external iCal availability feeds."""

import logging
from datetime import date, datetime

import httpx
from icalendar import Calendar

from src.config import get_settings
from src.utils.date_ranges import DateRange

logger = logging.getLogger(__name__)

FEED_ACCEPT_HEADER = "text/calendar, text/plain, */*"


class CalendarFeedError(Exception):
    """Exception raised when a calendar feed cannot be fetched or parsed."""

    pass


def _to_date(value: date | datetime) -> date:
    """Reduce an iCal DATE or DATE-TIME value to its calendar day.

    Args:
        value: Decoded DTSTART/DTEND value.

    Returns:
        The day as written in the feed.
    """
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_calendar_feed(ics_text: str) -> list[DateRange]:
    """Extract blocked ranges from an iCal document.

    Each VEVENT becomes one ``[DTSTART, DTEND)`` range of days. Events
    without a usable end, or ending on or before their start day, are
    skipped.

    Args:
        ics_text: Raw text/calendar content.

    Returns:
        Blocked ranges sorted by start.

    Raises:
        CalendarFeedError: If the document is not valid iCal.
    """
    try:
        calendar = Calendar.from_ical(ics_text)
    except ValueError as e:
        msg = f"Invalid calendar feed: {e}"
        raise CalendarFeedError(msg) from e

    ranges: list[DateRange] = []
    for event in calendar.walk("VEVENT"):
        dtstart = event.get("dtstart")
        if dtstart is None:
            continue
        start = _to_date(dtstart.dt)

        dtend = event.get("dtend")
        if dtend is not None:
            end = _to_date(dtend.dt)
        elif event.get("duration") is not None:
            end = _to_date(dtstart.dt + event.get("duration").dt)
        else:
            logger.debug("Skipping event %s without end", event.get("uid"))
            continue

        if end <= start:
            logger.debug("Skipping event %s with empty range", event.get("uid"))
            continue
        ranges.append(DateRange(start, end))

    return sorted(ranges)


class CalendarFeedClient:
    """Fetches external calendar feeds (Airbnb, Booking.com exports, ...).

    Feeds are read-only sources of unavailable dates; their events are
    treated exactly like internal bookings by the segmenter.
    """

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize CalendarFeedClient.

        Args:
            timeout: Request timeout in seconds. Defaults to settings value.
            transport: Optional transport, used to stub HTTP in tests.
        """
        self._timeout = timeout or get_settings().calendar_feed_timeout_seconds
        self._transport = transport

    async def fetch_ranges(self, url: str) -> list[DateRange]:
        """Fetch and parse a feed.

        Args:
            url: Feed URL; ``webcal://`` is fetched over HTTPS.

        Returns:
            Blocked ranges from the feed.

        Raises:
            CalendarFeedError: If the feed cannot be fetched or parsed.
        """
        if url.startswith("webcal://"):
            url = "https://" + url.removeprefix("webcal://")

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(
                    url, headers={"Accept": FEED_ACCEPT_HEADER}
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            msg = f"Failed to fetch calendar feed: {e}"
            raise CalendarFeedError(msg) from e

        ranges = parse_calendar_feed(response.text)
        logger.debug("Fetched %d blocked ranges from %s", len(ranges), url)
        return ranges
