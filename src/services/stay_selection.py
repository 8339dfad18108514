# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Stay selection rules for calendar date pickers.

Stays are sold in whole units of the minimum stay (7, 14, 21 or 28 nights
by default). The validator is a small state machine that a picker feeds
with clicked dates; it only decides which transitions are legal and why a
date is refused. Rendering is left to the caller.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from enum import StrEnum
from typing import cast

from src.config import get_settings
from src.exceptions import InvalidRange, InvalidStateTransition, MinimumStayUnavailable
from src.services.availability_service import AvailabilitySegmenter, segment
from src.utils.date_ranges import DateRange

logger = logging.getLogger(__name__)


class SelectionState(StrEnum):
    """Picker state."""

    IDLE = "idle"
    SELECTING_CHECK_IN = "selecting_check_in"
    SELECTING_CHECK_OUT = "selecting_check_out"
    COMPLETE = "complete"


@dataclass(frozen=True)
class StaySelection:
    """Completed stay choice."""

    check_in: date
    check_out: date

    @property
    def nights(self) -> int:
        """Number of nights in the stay."""
        return (self.check_out - self.check_in).days

    def as_range(self) -> DateRange:
        """Get the stay as a date range."""
        return DateRange(self.check_in, self.check_out)


class BookingGranularityValidator:
    """State machine enforcing stays in multiples of the minimum stay.

    ``IDLE -> SELECTING_CHECK_IN -> SELECTING_CHECK_OUT -> COMPLETE``;
    ``reset()`` returns to ``IDLE`` from any state.
    """

    def __init__(
        self,
        window: DateRange,
        booked_ranges: Iterable[DateRange] = (),
        today: date | None = None,
        minimum_stay_days: int | None = None,
        max_stay_units: int | None = None,
    ) -> None:
        """Initialize validator for one property.

        Args:
            window: Advertised window of the property.
            booked_ranges: Unavailable ranges; a check-in needs a minimum stay
                before the next one starts.
            today: First selectable day. Defaults to the current date.
            minimum_stay_days: Stay unit in days. Defaults to settings.
            max_stay_units: Longest stay in units. Defaults to settings.
        """
        settings = get_settings()
        self._window = window
        self._segments = segment(window, booked_ranges)
        self._today = today or date.today()
        self._stay_days = minimum_stay_days or settings.minimum_stay_days
        self._max_units = max_stay_units or settings.max_stay_weeks

        self._state = SelectionState.IDLE
        self._check_in: date | None = None
        self._check_out: date | None = None

    @property
    def state(self) -> SelectionState:
        """Get current picker state."""
        return self._state

    @property
    def check_in(self) -> date | None:
        """Get the chosen check-in date, if any."""
        return self._check_in

    @property
    def check_out(self) -> date | None:
        """Get the chosen check-out date, if any."""
        return self._check_out

    @property
    def stay_lengths(self) -> tuple[int, ...]:
        """Get the allowed stay lengths in days, e.g. (7, 14, 21, 28)."""
        return tuple(self._stay_days * n for n in range(1, self._max_units + 1))

    def begin(self) -> None:
        """Start choosing a check-in date.

        Raises:
            InvalidStateTransition: If a selection is already in progress.
        """
        if self._state is not SelectionState.IDLE:
            msg = f"Cannot begin selection while {self._state}"
            raise InvalidStateTransition(msg)
        self._state = SelectionState.SELECTING_CHECK_IN

    def reset(self) -> None:
        """Return to ``IDLE`` and clear both dates."""
        self._state = SelectionState.IDLE
        self._check_in = None
        self._check_out = None

    def days_remaining(self, day: date) -> int:
        """Count open days from ``day`` up to the next unavailable day.

        Args:
            day: Candidate check-in.

        Returns:
            Days left in the open segment containing ``day``; 0 if unavailable.
        """
        seg = AvailabilitySegmenter.segment_containing(self._segments, day)
        if seg is None:
            return 0
        return (seg.end - day).days

    def can_check_in(self, day: date) -> bool:
        """Check whether ``day`` would be accepted as a check-in."""
        try:
            self._open_segment(day)
        except InvalidRange:
            return False
        return self.days_remaining(day) >= self._stay_days

    def valid_check_out_dates(self) -> list[date]:
        """List legal check-out dates for the current check-in.

        Returns:
            Check-in plus each allowed stay length, capped at the end of the
            open segment; empty when no check-in is chosen.
        """
        if self._check_in is None:
            return []
        seg = AvailabilitySegmenter.segment_containing(self._segments, self._check_in)
        if seg is None:
            return []
        candidates = (self._check_in + timedelta(days=n) for n in self.stay_lengths)
        return [d for d in candidates if d <= seg.end]

    def select(self, day: date) -> StaySelection | None:
        """Feed a clicked date into the picker.

        In ``SELECTING_CHECK_OUT`` a date that is not a legal check-out is
        taken as a new check-in instead of being refused.

        Args:
            day: Clicked date.

        Returns:
            The completed selection when ``day`` completed it, else None.

        Raises:
            InvalidRange: If the date is in the past, outside the window or
                already booked. State is unchanged.
            MinimumStayUnavailable: If a check-in leaves less than the
                minimum stay; the picker waits for another check-in.
            InvalidStateTransition: If the selection is already complete.
        """
        if self._state is SelectionState.IDLE:
            self.begin()

        if self._state is SelectionState.COMPLETE:
            msg = "Selection is complete; reset before choosing new dates"
            raise InvalidStateTransition(msg)

        if self._state is SelectionState.SELECTING_CHECK_IN:
            self.select_check_in(day)
            return None

        if day in self.valid_check_out_dates():
            return self.select_check_out(day)

        # Restart the range from the clicked day
        self._open_segment(day)
        self._state = SelectionState.SELECTING_CHECK_IN
        self._check_in = None
        self.select_check_in(day)
        return None

    def select_check_in(self, day: date) -> None:
        """Choose the check-in date.

        Args:
            day: Check-in date.

        Raises:
            InvalidStateTransition: If not choosing a check-in.
            InvalidRange: If the date cannot be booked at all.
            MinimumStayUnavailable: If fewer than the minimum stay days remain.
        """
        if self._state is not SelectionState.SELECTING_CHECK_IN:
            msg = f"Cannot choose a check-in while {self._state}"
            raise InvalidStateTransition(msg)

        seg = self._open_segment(day)
        remaining = (seg.end - day).days
        if remaining < self._stay_days:
            logger.debug("Rejected check-in %s with %d days left", day, remaining)
            msg = (
                f"Only {remaining} day(s) available from {day}; "
                f"a stay needs at least {self._stay_days}"
            )
            raise MinimumStayUnavailable(msg, selected=day, days_remaining=remaining)

        self._check_in = day
        self._state = SelectionState.SELECTING_CHECK_OUT

    def select_check_out(self, day: date) -> StaySelection:
        """Choose the check-out date and complete the selection.

        Args:
            day: Check-out date.

        Returns:
            The completed selection.

        Raises:
            InvalidStateTransition: If no check-in is awaiting its check-out.
            InvalidRange: If ``day`` is not one of the legal check-out dates.
        """
        if self._state is not SelectionState.SELECTING_CHECK_OUT:
            msg = f"Cannot choose a check-out while {self._state}"
            raise InvalidStateTransition(msg)

        if day not in self.valid_check_out_dates():
            msg = (
                f"Check-out {day} must be {', '.join(map(str, self.stay_lengths))} "
                f"days after check-in {self._check_in} and within availability"
            )
            raise InvalidRange(msg)

        self._check_out = day
        self._state = SelectionState.COMPLETE
        return StaySelection(cast("date", self._check_in), day)

    def _open_segment(self, day: date) -> DateRange:
        """Get the open segment ``day`` belongs to.

        Raises:
            InvalidRange: If the day is past, outside the window or booked.
        """
        if day < self._today:
            msg = f"{day} is in the past"
            raise InvalidRange(msg)
        if not self._window.contains_date(day):
            msg = f"{day} is outside the advertised window {self._window}"
            raise InvalidRange(msg)
        seg = AvailabilitySegmenter.segment_containing(self._segments, day)
        if seg is None:
            msg = f"{day} is already booked"
            raise InvalidRange(msg)
        return seg
