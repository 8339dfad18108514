# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Unit tests for the week-granular stay picker."""

from datetime import date, timedelta

import pytest
from src.exceptions import InvalidRange, InvalidStateTransition, MinimumStayUnavailable
from src.services.stay_selection import (
    BookingGranularityValidator,
    SelectionState,
    StaySelection,
)
from src.utils.date_ranges import DateRange


def jan(day: int) -> date:
    """Day of January 2030."""
    return date(2030, 1, day)


def feb(day: int) -> date:
    """Day of February 2030."""
    return date(2030, 2, day)


WINDOW = DateRange(jan(1), date(2030, 3, 1))


def _validator(window=WINDOW, booked=(), today=jan(1)) -> BookingGranularityValidator:
    return BookingGranularityValidator(
        window, booked, today=today, minimum_stay_days=7, max_stay_units=4
    )


class TestStateMachine:
    """Tests for picker state transitions."""

    def test_starts_idle(self):
        """Test a new picker has no dates."""
        validator = _validator()

        assert validator.state is SelectionState.IDLE
        assert validator.check_in is None
        assert validator.check_out is None

    def test_full_selection(self):
        """Test check-in then check-out completes the selection."""
        validator = _validator()
        validator.begin()

        assert validator.select(jan(5)) is None
        assert validator.state is SelectionState.SELECTING_CHECK_OUT

        selection = validator.select(jan(19))

        assert selection == StaySelection(jan(5), jan(19))
        assert selection.nights == 14
        assert selection.as_range() == DateRange(jan(5), jan(19))
        assert validator.state is SelectionState.COMPLETE

    def test_select_from_idle_begins(self):
        """Test the first click starts the selection."""
        validator = _validator()

        validator.select(jan(5))

        assert validator.check_in == jan(5)

    def test_begin_twice_rejected(self):
        """Test begin only works from idle."""
        validator = _validator()
        validator.begin()

        with pytest.raises(InvalidStateTransition):
            validator.begin()

    def test_complete_requires_reset(self):
        """Test no more dates are accepted after completion."""
        validator = _validator()
        validator.select(jan(5))
        validator.select(jan(12))

        with pytest.raises(InvalidStateTransition):
            validator.select(jan(20))

        validator.reset()

        assert validator.state is SelectionState.IDLE
        assert validator.check_in is None
        assert validator.check_out is None

    def test_check_out_before_check_in_rejected(self):
        """Test choosing a check-out while choosing a check-in."""
        validator = _validator()
        validator.begin()

        with pytest.raises(InvalidStateTransition):
            validator.select_check_out(jan(12))

    def test_check_in_while_choosing_check_out_rejected(self):
        """Test direct check-in calls need the check-in state."""
        validator = _validator()
        validator.select(jan(5))

        with pytest.raises(InvalidStateTransition):
            validator.select_check_in(jan(6))

    def test_illegal_check_out_via_direct_call(self):
        """Test select_check_out refuses off-grid dates."""
        validator = _validator()
        validator.select(jan(5))

        with pytest.raises(InvalidRange):
            validator.select_check_out(jan(10))
        assert validator.state is SelectionState.SELECTING_CHECK_OUT


class TestGranularity:
    """Tests for week-multiple stays."""

    def test_check_out_options(self):
        """Test check-outs are one to four weeks after check-in."""
        validator = _validator()
        validator.select(jan(5))

        assert validator.valid_check_out_dates() == [
            jan(12),
            jan(19),
            jan(26),
            feb(2),
        ]

    def test_check_out_options_capped_at_window_end(self):
        """Test options never pass the end of the window."""
        validator = _validator(window=DateRange(jan(1), jan(20)))
        validator.select(jan(1))

        assert validator.valid_check_out_dates() == [jan(8), jan(15)]

    def test_check_out_options_capped_at_next_booking(self):
        """Test options stop at the next booked day."""
        validator = _validator(booked=[DateRange(jan(19), jan(26))])
        validator.select(jan(5))

        assert validator.valid_check_out_dates() == [jan(12), jan(19)]

    def test_every_accepted_check_out_is_a_week_multiple(self):
        """Test accepted stays are 7, 14, 21 or 28 days inside the window."""
        window = DateRange(jan(1), feb(10))
        for offset in range(window.days):
            check_in = window.start + timedelta(days=offset)
            validator = _validator(window=window)
            if not validator.can_check_in(check_in):
                continue
            validator.select(check_in)
            for check_out in validator.valid_check_out_dates():
                assert (check_out - check_in).days in (7, 14, 21, 28)
                assert check_out <= window.end

    def test_stay_lengths(self):
        """Test stay lengths follow the configured units."""
        assert _validator().stay_lengths == (7, 14, 21, 28)

    def test_stay_lengths_from_settings(self):
        """Test defaults come from settings."""
        validator = BookingGranularityValidator(WINDOW, today=jan(1))

        assert validator.stay_lengths == (7, 14, 21, 28)


class TestRejections:
    """Tests for refused dates."""

    def test_four_days_before_window_end(self):
        """Test a check-in four days before the end is refused."""
        validator = _validator(window=DateRange(jan(1), jan(14)))
        validator.begin()

        with pytest.raises(MinimumStayUnavailable) as exc_info:
            validator.select(jan(10))

        assert exc_info.value.selected == jan(10)
        assert exc_info.value.days_remaining == 4
        assert validator.state is SelectionState.SELECTING_CHECK_IN
        assert validator.check_in is None

    def test_short_gap_before_booking(self):
        """Test a check-in squeezed before a booking is refused."""
        validator = _validator(booked=[DateRange(jan(10), jan(17))])

        with pytest.raises(MinimumStayUnavailable) as exc_info:
            validator.select(jan(5))

        assert exc_info.value.days_remaining == 5
        assert validator.days_remaining(jan(5)) == 5
        assert not validator.can_check_in(jan(5))
        assert validator.can_check_in(jan(3))

    @pytest.mark.parametrize(
        "day",
        [
            date(2029, 12, 31),  # before the window and in the past
            date(2030, 3, 5),  # after the window
            jan(12),  # booked
        ],
    )
    def test_unavailable_day(self, day):
        """Test past, outside and booked days are invalid."""
        validator = _validator(booked=[DateRange(jan(10), jan(17))])
        validator.begin()

        with pytest.raises(InvalidRange):
            validator.select(day)

        assert validator.state is SelectionState.SELECTING_CHECK_IN

    def test_past_day_inside_window(self):
        """Test days before today are refused."""
        validator = _validator(today=jan(10))

        with pytest.raises(InvalidRange):
            validator.select(jan(5))

    def test_days_remaining_on_booked_day(self):
        """Test a booked day has nothing left."""
        validator = _validator(booked=[DateRange(jan(10), jan(17))])

        assert validator.days_remaining(jan(12)) == 0


class TestRestart:
    """Tests for clicking a non-check-out date while choosing a check-out."""

    def test_click_becomes_new_check_in(self):
        """Test an off-grid click restarts the stay from that day."""
        validator = _validator()
        validator.select(jan(5))

        assert validator.select(jan(8)) is None

        assert validator.check_in == jan(8)
        assert validator.state is SelectionState.SELECTING_CHECK_OUT
        assert validator.valid_check_out_dates()[0] == jan(15)

    def test_restart_on_short_date_clears_check_in(self):
        """Test a restart that fails the minimum stay leaves no check-in."""
        validator = _validator(window=DateRange(jan(1), jan(20)))
        validator.select(jan(1))

        with pytest.raises(MinimumStayUnavailable):
            validator.select(jan(16))

        assert validator.state is SelectionState.SELECTING_CHECK_IN
        assert validator.check_in is None

    def test_restart_on_booked_day_keeps_selection(self):
        """Test an unavailable click changes nothing."""
        validator = _validator(booked=[DateRange(jan(20), jan(27))])
        validator.select(jan(5))

        with pytest.raises(InvalidRange):
            validator.select(jan(22))

        assert validator.state is SelectionState.SELECTING_CHECK_OUT
        assert validator.check_in == jan(5)
