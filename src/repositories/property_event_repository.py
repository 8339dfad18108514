# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Repository for property history events."""

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.enums import PropertyAction
from src.models.property_event import PropertyEvent


class PropertyEventRepository:
    """Append-only access to property history."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self._session = session

    async def record(
        self, property_id: int, action: PropertyAction, details: str | None = None
    ) -> PropertyEvent:
        """Append an event to a property's history.

        Args:
            property_id: Property the event belongs to.
            action: What happened.
            details: Free-text description.

        Returns:
            Created event.
        """
        event = PropertyEvent(property_id=property_id, action=action, details=details)
        self._session.add(event)
        await self._session.flush()
        return event

    async def get_for_property(self, property_id: int) -> Sequence[PropertyEvent]:
        """Get a property's history, oldest first.

        Args:
            property_id: Property to filter by.

        Returns:
            Sequence of events.
        """
        result = await self._session.execute(
            select(PropertyEvent)
            .where(PropertyEvent.property_id == property_id)
            .order_by(PropertyEvent.created_at, PropertyEvent.id)
        )
        return result.scalars().all()
