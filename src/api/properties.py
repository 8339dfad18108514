# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Property management and availability API endpoints."""

import logging
from collections.abc import Callable, Iterable
from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_availability_service, get_clock, get_owner_id
from src.database import get_db
from src.exceptions import InvalidRange
from src.models.property import Property
from src.services.availability_service import AvailabilityService
from src.services.property_service import PropertyService
from src.services.stay_selection import BookingGranularityValidator
from src.utils.date_ranges import DateRange

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/properties", tags=["Properties"])


class DateRangeResponse(BaseModel):
    """Half-open range of days."""

    start: date = Field(description="First day")
    end: date = Field(description="Day after the last day")
    days: int = Field(description="Number of days")


class ListingResponse(BaseModel):
    """Response model for an advertised range."""

    id: int = Field(description="Listing ID")
    start_date: date = Field(description="First advertised day")
    end_date: date = Field(description="Day after the last advertised day")
    active: bool = Field(description="Whether the listing is advertised")


class PropertyResponse(BaseModel):
    """Response model for a property."""

    id: int = Field(description="Property ID")
    owner_id: str = Field(description="Owner identity")
    title: str = Field(description="Display title")
    address: str | None = Field(default=None, description="Address")
    window_start: date | None = Field(default=None, description="Window start")
    window_end: date | None = Field(default=None, description="Window end")
    status: str = Field(description="active, rented, expired or deleted")
    calendar_feed_url: str | None = Field(
        default=None, description="External iCal feed"
    )
    listings: list[ListingResponse] = Field(description="Active listings")
    deleted_at: str | None = Field(default=None, description="Soft delete time")
    updated_at: str | None = Field(default=None, description="Last update time")


class PropertyTabsResponse(BaseModel):
    """Response model for the owner dashboard tabs."""

    active: list[PropertyResponse] = Field(description="Advertised properties")
    expired: list[PropertyResponse] = Field(
        description="Deleted, expired, rented and unadvertisable properties"
    )
    active_count: int = Field(description="Number of advertised properties")
    expired_count: int = Field(description="Number of other properties")
    cap: int = Field(description="Owner's advertising cap")


class PropertyCreateRequest(BaseModel):
    """Request model for registering a property."""

    title: str = Field(min_length=1, max_length=255, description="Display title")
    address: str | None = Field(default=None, max_length=500, description="Address")
    window_start: date | None = Field(default=None, description="Window start")
    window_end: date | None = Field(default=None, description="Window end")
    calendar_feed_url: str | None = Field(
        default=None, max_length=2048, description="External iCal feed"
    )


class AvailabilityResponse(BaseModel):
    """Response model for a property's open segments."""

    property_id: int = Field(description="Property ID")
    window: DateRangeResponse | None = Field(
        default=None, description="Advertised window"
    )
    segments: list[DateRangeResponse] = Field(description="All open segments")
    bookable: list[DateRangeResponse] = Field(
        description="Open segments from today that fit a minimum stay"
    )
    minimum_stay_days: int = Field(description="Stay unit in days")


class CheckoutOptionsResponse(BaseModel):
    """Response model for legal check-out dates."""

    property_id: int = Field(description="Property ID")
    check_in: date = Field(description="Chosen check-in")
    days_remaining: int = Field(description="Open days from check-in")
    check_out_dates: list[date] = Field(description="Legal check-out dates")


class DeleteResponse(BaseModel):
    """Response model for delete operations."""

    success: bool = Field(description="Whether operation succeeded")
    permanent: bool = Field(description="Whether the row was removed")
    message: str = Field(description="Status message")


def _range_to_response(window: DateRange) -> dict[str, Any]:
    return {"start": window.start, "end": window.end, "days": window.days}


def _ranges_to_response(ranges: Iterable[DateRange]) -> list[dict[str, Any]]:
    return [_range_to_response(r) for r in ranges]


def _property_to_response(prop: Property) -> dict[str, Any]:
    """Convert property model to response dict."""
    return {
        "id": prop.id,
        "owner_id": prop.owner_id,
        "title": prop.title,
        "address": prop.address,
        "window_start": prop.window_start,
        "window_end": prop.window_end,
        "status": str(prop.status),
        "calendar_feed_url": prop.calendar_feed_url,
        "listings": [
            {
                "id": listing.id,
                "start_date": listing.start_date,
                "end_date": listing.end_date,
                "active": listing.active,
            }
            for listing in prop.active_listings
        ],
        "deleted_at": prop.deleted_at.isoformat() if prop.deleted_at else None,
        "updated_at": prop.updated_at.isoformat() if prop.updated_at else None,
    }


@router.get("", response_model=PropertyTabsResponse)
async def list_properties(
    db: Annotated[AsyncSession, Depends(get_db)],
    owner_id: Annotated[str, Depends(get_owner_id)],
    availability: Annotated[AvailabilityService, Depends(get_availability_service)],
    clock: Annotated[Callable[[], date], Depends(get_clock)],
) -> dict[str, Any]:
    """Get the owner's properties split into dashboard tabs.

    Returns:
        Active and expired tabs with counts and the owner's cap.
    """
    service = PropertyService(db, availability, today=clock)
    tabs = await service.tabs(owner_id)
    return {
        "active": [_property_to_response(p) for p in tabs.active],
        "expired": [_property_to_response(p) for p in tabs.expired],
        "active_count": tabs.active_count,
        "expired_count": len(tabs.expired),
        "cap": tabs.cap,
    }


@router.post(
    "", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED
)
async def create_property(
    request: PropertyCreateRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    owner_id: Annotated[str, Depends(get_owner_id)],
    availability: Annotated[AvailabilityService, Depends(get_availability_service)],
    clock: Annotated[Callable[[], date], Depends(get_clock)],
) -> dict[str, Any]:
    """Register a property and advertise its window.

    Returns:
        The created property.
    """
    service = PropertyService(db, availability, today=clock)
    prop = await service.create(
        owner_id,
        title=request.title,
        window_start=request.window_start,
        window_end=request.window_end,
        address=request.address,
        calendar_feed_url=request.calendar_feed_url,
    )
    return _property_to_response(prop)


@router.get("/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    availability: Annotated[AvailabilityService, Depends(get_availability_service)],
) -> dict[str, Any]:
    """Get a property with its active listings."""
    prop = await PropertyService(db, availability).get(property_id)
    return _property_to_response(prop)


@router.get("/{property_id}/availability", response_model=AvailabilityResponse)
async def get_availability(
    property_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    availability: Annotated[AvailabilityService, Depends(get_availability_service)],
    clock: Annotated[Callable[[], date], Depends(get_clock)],
) -> dict[str, Any]:
    """Get the open segments of a property for display.

    Returns:
        All open segments, and those still bookable from today.
    """
    prop = await PropertyService(db, availability).get(property_id)
    segmenter = availability.segmenter
    segments = await availability.display_segments(prop)
    bookable = [
        seg
        for seg in segmenter.bookable_segments(segments, clock())
        if segmenter.is_advertisable(seg)
    ]
    window = prop.advertised_window
    return {
        "property_id": prop.id,
        "window": _range_to_response(window) if window else None,
        "segments": _ranges_to_response(segments),
        "bookable": _ranges_to_response(bookable),
        "minimum_stay_days": segmenter.minimum_stay_days,
    }


@router.get(
    "/{property_id}/checkout-options", response_model=CheckoutOptionsResponse
)
async def get_checkout_options(
    property_id: int,
    check_in: Annotated[date, Query(description="Chosen check-in date")],
    db: Annotated[AsyncSession, Depends(get_db)],
    availability: Annotated[AvailabilityService, Depends(get_availability_service)],
    clock: Annotated[Callable[[], date], Depends(get_clock)],
) -> dict[str, Any]:
    """Get the legal check-out dates for a check-in.

    Returns:
        Check-out dates in whole units of the minimum stay.
    """
    prop = await PropertyService(db, availability).get(property_id)
    window = prop.advertised_window
    if window is None:
        msg = f"Property {property_id} has no advertised window"
        raise InvalidRange(msg)

    external = await availability.external_ranges(prop)
    validator = BookingGranularityValidator(
        window,
        availability.segmenter.booked_ranges(prop.bookings, external),
        today=clock(),
        minimum_stay_days=availability.segmenter.minimum_stay_days,
    )
    validator.select(check_in)
    return {
        "property_id": prop.id,
        "check_in": check_in,
        "days_remaining": validator.days_remaining(check_in),
        "check_out_dates": validator.valid_check_out_dates(),
    }


@router.post("/{property_id}/reactivate", response_model=PropertyResponse)
async def reactivate_property(
    property_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    owner_id: Annotated[str, Depends(get_owner_id)],
    availability: Annotated[AvailabilityService, Depends(get_availability_service)],
    clock: Annotated[Callable[[], date], Depends(get_clock)],
) -> dict[str, Any]:
    """Advertise an expired or deleted property again."""
    service = PropertyService(db, availability, today=clock)
    prop = await service.reactivate(property_id, owner_id)
    return _property_to_response(prop)


@router.delete("/{property_id}", response_model=DeleteResponse)
async def delete_property(
    property_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    owner_id: Annotated[str, Depends(get_owner_id)],
    availability: Annotated[AvailabilityService, Depends(get_availability_service)],
    permanent: Annotated[
        bool, Query(description="Remove the property instead of soft deleting")
    ] = False,
) -> dict[str, Any]:
    """Delete a property.

    Returns:
        Confirmation of the deletion.
    """
    service = PropertyService(db, availability)
    if permanent:
        await service.delete_permanently(property_id, owner_id)
        message = f"Property {property_id} removed"
    else:
        await service.soft_delete(property_id, owner_id)
        message = f"Property {property_id} moved to expired listings"

    return {"success": True, "permanent": permanent, "message": message}
