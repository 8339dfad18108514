# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Rental Relist repositories package."""

from src.repositories.booking_repository import BookingRepository
from src.repositories.listing_repository import ListingRepository
from src.repositories.owner_repository import OwnerRepository
from src.repositories.property_event_repository import PropertyEventRepository
from src.repositories.property_repository import PropertyRepository

__all__ = [
    "BookingRepository",
    "ListingRepository",
    "OwnerRepository",
    "PropertyEventRepository",
    "PropertyRepository",
]
