# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Shared FastAPI dependencies for the API routers."""

from collections.abc import Callable
from datetime import date

from fastapi import HTTPException, Request, status

from src.middleware.auth import get_current_user
from src.services.availability_service import AvailabilityService
from src.services.messages import resolve_language

# Shared so the segment cache and feed client are reused across requests
_availability_service: AvailabilityService | None = None


def get_availability_service() -> AvailabilityService:
    """Get the shared availability service.

    Returns:
        AvailabilityService singleton.
    """
    global _availability_service  # noqa: PLW0603
    if _availability_service is None:
        _availability_service = AvailabilityService()
    return _availability_service


def get_clock() -> Callable[[], date]:
    """Get the clock deciding which days are in the past.

    Returns:
        Callable returning today's date.
    """
    return date.today


def get_owner_id(request: Request) -> str:
    """Get the authenticated identity acting on the request.

    Raises:
        HTTPException: 401 if the request carries no identity.
    """
    user_id = get_current_user(request)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user_id


def get_language(request: Request) -> str:
    """Get the message language from ``lang`` or ``Accept-Language``."""
    return resolve_language(
        request.query_params.get("lang"), request.headers.get("Accept-Language")
    )
