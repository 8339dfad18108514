# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""SQLAlchemy ORM models for Rental Relist."""

from src.models.booking import Booking
from src.models.enums import BookingStatus, PropertyAction, PropertyStatus
from src.models.listing import Listing
from src.models.owner import Owner
from src.models.property import Property
from src.models.property_event import PropertyEvent

__all__ = [
    "Booking",
    "BookingStatus",
    "Listing",
    "Owner",
    "Property",
    "PropertyAction",
    "PropertyEvent",
    "PropertyStatus",
]
