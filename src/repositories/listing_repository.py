# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Persistence for advertised listing windows."""

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.listing import Listing
from src.models.property import Property
from src.utils.date_ranges import DateRange


class ListingRepository:
    """Repository for Listing operations.

    Listings are attached through their property so that the property's
    loaded collection stays current within the session.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, listing_id: int) -> Listing | None:
        """Load one listing by primary key."""
        result = await self._session.execute(
            select(Listing).where(Listing.id == listing_id)
        )
        return result.scalar_one_or_none()

    async def get_for_property(
        self, property_id: int, active_only: bool = False
    ) -> Sequence[Listing]:
        """Get listings of a property.

        Args:
            property_id: Property to filter by.
            active_only: Whether to return only active listings.

        Returns:
            Sequence of listings ordered by start date.
        """
        query = select(Listing).where(Listing.property_id == property_id)
        if active_only:
            query = query.where(Listing.active.is_(True))
        result = await self._session.execute(query.order_by(Listing.start_date))
        return result.scalars().all()

    async def create(self, prop: Property, window: DateRange) -> Listing:
        """Create an active listing for a property.

        Args:
            prop: Property with its listings loaded.
            window: Advertised range.

        Returns:
            Created listing with ID.
        """
        listing = Listing(start_date=window.start, end_date=window.end, active=True)
        prop.listings.append(listing)
        await self._session.flush()
        return listing

    async def update(self, listing: Listing) -> Listing:
        await self._session.flush()
        return listing

    async def deactivate(self, listing: Listing) -> Listing:
        """Stop advertising a listing, keeping the row.

        Args:
            listing: Listing to deactivate.

        Returns:
            Updated listing.
        """
        listing.active = False
        return await self.update(listing)
