# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Booking API endpoints, including cancellation with relisting."""

import logging
from collections.abc import Callable
from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.dependencies import (
    get_availability_service,
    get_clock,
    get_language,
    get_owner_id,
)
from src.database import get_db, get_session_factory
from src.models.booking import Booking
from src.services.availability_service import AvailabilityService
from src.services.booking_service import BookingService
from src.services.cancellation_service import CancellationService
from src.services.messages import outcome_message
from src.services.property_service import PropertyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])


class BookingResponse(BaseModel):
    """Response model for a booking."""

    id: int = Field(description="Booking ID")
    property_id: int = Field(description="Booked property")
    guest_name: str | None = Field(default=None, description="Guest name")
    check_in: date = Field(description="First night")
    check_out: date = Field(description="Departure day")
    status: str = Field(description="pending, confirmed, cancelled or completed")
    cancel_reason: str | None = Field(default=None, description="Cancel reason")
    cancelled_at: str | None = Field(default=None, description="Cancellation time")


class BookingCreateRequest(BaseModel):
    """Request model for requesting a stay."""

    property_id: int = Field(description="Property to book")
    check_in: date = Field(description="First night")
    check_out: date = Field(description="Departure day")
    guest_name: str | None = Field(
        default=None, max_length=255, description="Guest name"
    )


class CancelRequest(BaseModel):
    """Request model for cancelling a booking."""

    property_id: int | None = Field(
        default=None, description="Property the booking is expected on"
    )
    reason: str | None = Field(default=None, max_length=1000, description="Reason")


class FreedRangeResponse(BaseModel):
    """A range of days released by a cancellation."""

    start: date = Field(description="First day")
    end: date = Field(description="Day after the last day")
    days: int = Field(description="Number of days")


class CancelResponse(BaseModel):
    """Response model for a cancellation."""

    booking: BookingResponse = Field(description="The cancelled booking")
    outcome: str = Field(
        description="merged, relisted, limit_exceeded or short_term"
    )
    target_tab: str = Field(description="Dashboard tab showing the property")
    property_status: str = Field(description="Property status after the change")
    freed_ranges: list[FreedRangeResponse] = Field(
        description="Days made available again"
    )
    message: str = Field(description="Localized message for the owner")


def _booking_to_response(booking: Booking) -> dict[str, Any]:
    """Convert booking model to response dict."""
    return {
        "id": booking.id,
        "property_id": booking.property_id,
        "guest_name": booking.guest_name,
        "check_in": booking.check_in,
        "check_out": booking.check_out,
        "status": str(booking.status),
        "cancel_reason": booking.cancel_reason,
        "cancelled_at": (
            booking.cancelled_at.isoformat() if booking.cancelled_at else None
        ),
    }


async def _owned_booking(
    db: AsyncSession,
    availability: AvailabilityService,
    booking_id: int,
    owner_id: str,
) -> Booking:
    """Load a booking on one of the owner's properties."""
    booking = await BookingService(db, availability).get(booking_id)
    await PropertyService(db, availability).get(booking.property_id, owner_id)
    return booking


@router.post(
    "", response_model=BookingResponse, status_code=status.HTTP_201_CREATED
)
async def create_booking(
    request: BookingCreateRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    _user_id: Annotated[str, Depends(get_owner_id)],
    availability: Annotated[AvailabilityService, Depends(get_availability_service)],
    clock: Annotated[Callable[[], date], Depends(get_clock)],
) -> dict[str, Any]:
    """Request a stay on a property.

    Returns:
        The pending booking.
    """
    service = BookingService(db, availability, today=clock)
    booking = await service.create(
        request.property_id,
        request.check_in,
        request.check_out,
        guest_name=request.guest_name,
    )
    return _booking_to_response(booking)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    availability: Annotated[AvailabilityService, Depends(get_availability_service)],
) -> dict[str, Any]:
    """Get a booking."""
    booking = await BookingService(db, availability).get(booking_id)
    return _booking_to_response(booking)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    owner_id: Annotated[str, Depends(get_owner_id)],
    availability: Annotated[AvailabilityService, Depends(get_availability_service)],
) -> dict[str, Any]:
    """Confirm a pending booking on one of the owner's properties."""
    await _owned_booking(db, availability, booking_id, owner_id)
    booking = await BookingService(db, availability).confirm(booking_id)
    return _booking_to_response(booking)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    owner_id: Annotated[str, Depends(get_owner_id)],
    availability: Annotated[AvailabilityService, Depends(get_availability_service)],
) -> dict[str, Any]:
    """Mark a confirmed stay as completed."""
    await _owned_booking(db, availability, booking_id, owner_id)
    booking = await BookingService(db, availability).complete(booking_id)
    return _booking_to_response(booking)


@router.post("/{booking_id}/cancel", response_model=CancelResponse)
async def cancel_booking(
    booking_id: int,
    session_factory: Annotated[
        async_sessionmaker[AsyncSession], Depends(get_session_factory)
    ],
    _user_id: Annotated[str, Depends(get_owner_id)],
    availability: Annotated[AvailabilityService, Depends(get_availability_service)],
    clock: Annotated[Callable[[], date], Depends(get_clock)],
    lang: Annotated[str, Depends(get_language)],
    request: CancelRequest | None = None,
) -> dict[str, Any]:
    """Cancel a booking and relist, merge or expire its property.

    The cancellation runs in its own transaction and is retried when it
    races another change to the same property or owner.

    Returns:
        The cancelled booking, the relist outcome and a message for the
        owner.
    """
    request = request or CancelRequest()
    service = CancellationService(session_factory, availability, today=clock)
    result = await service.cancel(
        booking_id, property_id=request.property_id, reason=request.reason
    )

    decision = result.decision
    return {
        "booking": _booking_to_response(result.booking),
        "outcome": str(decision.outcome),
        "target_tab": str(decision.target_tab),
        "property_status": str(decision.new_status),
        "freed_ranges": [
            {"start": r.start, "end": r.end, "days": r.days}
            for r in decision.freed_ranges
        ],
        "message": outcome_message(
            decision.outcome,
            lang,
            limit=result.cap,
            minimum_stay=availability.segmenter.minimum_stay_days,
            tab=decision.target_tab,
        ),
    }
