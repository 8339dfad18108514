# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Status and action enumerations shared by models and services."""

from enum import StrEnum


class PropertyStatus(StrEnum):
    """Advertising state of a property."""

    ACTIVE = "active"
    RENTED = "rented"
    EXPIRED = "expired"
    DELETED = "deleted"


class BookingStatus(StrEnum):
    """Reservation lifecycle state."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Bookings in these states make their dates unavailable
BLOCKING_BOOKING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


class PropertyAction(StrEnum):
    """History entries recorded against a property."""

    CREATED = "created"
    BOOKING_CONFIRMED = "booking_confirmed"
    MERGED_FROM_CANCELLATION = "merged_from_cancellation"
    RELISTED = "relisted"
    CLOSED_LIMIT_EXCEEDED = "closed_limit_exceeded"
    CLOSED_SHORT_TERM = "closed_short_term"
    FREED_TOO_SHORT = "freed_too_short"
    SOFT_DELETED = "soft_deleted"
    REACTIVATED = "reactivated"
