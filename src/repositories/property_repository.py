# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Repository for Property database operations."""

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.enums import PropertyStatus
from src.models.property import Property


class PropertyRepository:
    """Repository for Property CRUD operations.

    Listings and bookings are loaded eagerly with every property so that
    segmentation never triggers lazy loads.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self._session = session

    async def get_by_id(self, property_id: int) -> Property | None:
        """Get property by ID.

        Args:
            property_id: Property primary key.

        Returns:
            Property if found, None otherwise.
        """
        result = await self._session.execute(
            select(Property).where(Property.id == property_id)
        )
        return result.scalar_one_or_none()

    async def get_for_owner(
        self, owner_id: str, include_deleted: bool = True
    ) -> Sequence[Property]:
        """Get all properties of an owner.

        Args:
            owner_id: Owner to filter by.
            include_deleted: Whether soft-deleted properties are included.

        Returns:
            Sequence of properties ordered by ID.
        """
        query = select(Property).where(Property.owner_id == owner_id)
        if not include_deleted:
            query = query.where(Property.status != PropertyStatus.DELETED)
        result = await self._session.execute(query.order_by(Property.id))
        return result.scalars().all()

    async def create(self, prop: Property) -> Property:
        """Create a new property.

        Args:
            prop: Property entity to create.

        Returns:
            Created property with ID.
        """
        self._session.add(prop)
        await self._session.flush()
        await self._session.refresh(prop)
        return prop

    async def update(self, prop: Property) -> Property:
        """Update an existing property.

        Args:
            prop: Property entity with updates.

        Returns:
            Updated property.
        """
        await self._session.flush()
        await self._session.refresh(prop)
        return prop

    async def delete(self, prop: Property) -> None:
        """Delete a property with its listings, bookings and history.

        Args:
            prop: Property entity to delete.
        """
        await self._session.delete(prop)
        await self._session.flush()
