# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Error taxonomy for availability and relisting operations."""

from datetime import date
from http import HTTPStatus


class RelistError(Exception):
    """Base exception for availability and relisting errors.

    Each subclass carries the error type identifier used in API responses
    and message lookup, and the HTTP status it maps to.
    """

    error_type = "error"
    status_code = HTTPStatus.BAD_REQUEST


class InvalidRange(RelistError):
    """Raised for empty, inverted or out-of-window date ranges."""

    error_type = "invalid_range"
    status_code = HTTPStatus.UNPROCESSABLE_ENTITY


class InvalidStateTransition(RelistError):
    """Raised when an entity or selection is not in a state allowing the action."""

    error_type = "invalid_state_transition"
    status_code = HTTPStatus.CONFLICT


class NotFound(RelistError):
    """Raised when a referenced property or booking does not exist."""

    error_type = "not_found"
    status_code = HTTPStatus.NOT_FOUND


class MinimumStayUnavailable(RelistError):
    """Raised when a check-in date leaves less than the minimum stay."""

    error_type = "minimum_stay_unavailable"
    status_code = HTTPStatus.UNPROCESSABLE_ENTITY

    def __init__(self, message: str, selected: date, days_remaining: int) -> None:
        """Initialize MinimumStayUnavailable.

        Args:
            message: Error message.
            selected: Date the user tried to check in on.
            days_remaining: Open days between that date and the next boundary.
        """
        super().__init__(message)
        self.selected = selected
        self.days_remaining = days_remaining


class ConcurrentModification(RelistError):
    """Raised when a cancellation lost a race with another writer."""

    error_type = "concurrent_modification"
    status_code = HTTPStatus.CONFLICT

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        """Initialize ConcurrentModification.

        Args:
            message: Error message.
            retry_after: Seconds the caller should wait before retrying.
        """
        super().__init__(message)
        self.retry_after = retry_after


class ListingLimitReached(RelistError):
    """Raised when an owner action would exceed the active-listing cap."""

    error_type = "listing_limit_reached"
    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str, limit: int) -> None:
        """Initialize ListingLimitReached.

        Args:
            message: Error message.
            limit: The cap that was hit.
        """
        super().__init__(message)
        self.limit = limit
