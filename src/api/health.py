# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Health check API endpoint."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from src.config import get_settings

router = APIRouter(tags=["Health"])

VERSION = "0.1.0"


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint.

    Returns:
        Health status with timestamp, version and advertising policy.
    """
    settings = get_settings()
    return {
        "status": "healthy",
        "timestamp": datetime.now(tz=UTC).isoformat(),
        "version": VERSION,
        "max_active_listings": settings.max_active_listings,
        "minimum_stay_days": settings.minimum_stay_days,
    }
