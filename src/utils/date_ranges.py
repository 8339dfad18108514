# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Half-open date ranges and interval arithmetic.

All ranges are ``[start, end)``: the end date is the checkout day and is not
occupied, so a booking may check in on the day another one checks out.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

from src.exceptions import InvalidRange


@dataclass(frozen=True, order=True)
class DateRange:
    """Non-empty half-open range of calendar days."""

    start: date
    end: date

    def __post_init__(self) -> None:
        """Reject empty or inverted ranges."""
        if self.end <= self.start:
            msg = f"Range end {self.end} must be after start {self.start}"
            raise InvalidRange(msg)

    @classmethod
    def of_days(cls, start: date, days: int) -> "DateRange":
        """Build a range of ``days`` nights starting at ``start``."""
        return cls(start, start + timedelta(days=days))

    @property
    def days(self) -> int:
        """Number of nights covered by the range."""
        return (self.end - self.start).days

    def overlaps(self, other: "DateRange") -> bool:
        """Check whether the two ranges share at least one day."""
        return self.start < other.end and other.start < self.end

    def contains(self, other: "DateRange") -> bool:
        """Check whether ``other`` lies entirely inside this range."""
        return self.start <= other.start and other.end <= self.end

    def contains_date(self, day: date) -> bool:
        """Check whether ``day`` is one of the occupied days of the range."""
        return self.start <= day < self.end

    def is_adjacent(self, other: "DateRange") -> bool:
        """Check whether one range ends exactly where the other starts."""
        return self.end == other.start or other.end == self.start

    def touches(self, other: "DateRange") -> bool:
        """Check whether the ranges overlap or are adjacent."""
        return self.overlaps(other) or self.is_adjacent(other)

    def clip(self, bounds: "DateRange") -> "DateRange | None":
        """Restrict the range to ``bounds``.

        Returns:
            The intersection, or None when nothing of the range is inside.
        """
        start = max(self.start, bounds.start)
        end = min(self.end, bounds.end)
        if end <= start:
            return None
        return DateRange(start, end)

    def hull(self, other: "DateRange") -> "DateRange":
        """Smallest range covering both ranges."""
        return DateRange(min(self.start, other.start), max(self.end, other.end))

    def __str__(self) -> str:
        """Return ISO representation ``start~end``."""
        return f"{self.start.isoformat()}~{self.end.isoformat()}"


def overlaps(a: DateRange, b: DateRange) -> bool:
    """Check whether two ranges share at least one day."""
    return a.overlaps(b)


def contains(outer: DateRange, inner: DateRange) -> bool:
    """Check whether ``inner`` lies entirely inside ``outer``."""
    return outer.contains(inner)


def is_adjacent(a: DateRange, b: DateRange) -> bool:
    """Check whether one range ends on the day the other starts."""
    return a.is_adjacent(b)


def clip_all(ranges: Iterable[DateRange], bounds: DateRange) -> list[DateRange]:
    """Clip ranges to ``bounds``, dropping those entirely outside.

    Args:
        ranges: Ranges to clip.
        bounds: Bounding range.

    Returns:
        Clipped ranges sorted by start.
    """
    clipped = (r.clip(bounds) for r in ranges)
    return sorted(r for r in clipped if r is not None)


def merge_ranges(ranges: Iterable[DateRange]) -> list[DateRange]:
    """Coalesce overlapping or adjacent ranges.

    Args:
        ranges: Ranges in any order.

    Returns:
        Disjoint, non-adjacent ranges sorted by start.
    """
    merged: list[DateRange] = []
    for current in sorted(ranges):
        if merged and merged[-1].touches(current):
            merged[-1] = merged[-1].hull(current)
        else:
            merged.append(current)
    return merged


def subtract(base: DateRange, ranges: Iterable[DateRange]) -> list[DateRange]:
    """Remove ``ranges`` from ``base``.

    Args:
        base: Range to carve up.
        ranges: Ranges to remove; may overlap each other or fall outside base.

    Returns:
        Ordered, non-overlapping pieces of ``base`` not covered by any range.
    """
    pieces: list[DateRange] = []
    cursor = base.start

    for blocked in merge_ranges(clip_all(ranges, base)):
        if blocked.start > cursor:
            pieces.append(DateRange(cursor, blocked.start))
        cursor = max(cursor, blocked.end)

    if cursor < base.end:
        pieces.append(DateRange(cursor, base.end))

    return pieces


def total_days(ranges: Iterable[DateRange]) -> int:
    """Count the distinct days covered by ranges."""
    return sum(r.days for r in merge_ranges(ranges))
