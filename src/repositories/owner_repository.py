# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Repository for Owner database operations."""

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.owner import Owner


class OwnerRepository:
    """Repository for Owner operations.

    Owners are created lazily the first time an identity acts on the
    service.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self._session = session

    async def get_by_id(self, owner_id: str) -> Owner | None:
        """Get owner by ID.

        Args:
            owner_id: Identity issued by the gateway.

        Returns:
            Owner if found, None otherwise.
        """
        result = await self._session.execute(select(Owner).where(Owner.id == owner_id))
        return result.scalar_one_or_none()

    async def get_or_create(self, owner_id: str) -> Owner:
        """Get an owner, creating the row on first use.

        Args:
            owner_id: Identity issued by the gateway.

        Returns:
            Existing or newly created owner.
        """
        owner = await self.get_by_id(owner_id)
        if owner is not None:
            return owner

        owner = Owner(id=owner_id)
        self._session.add(owner)
        await self._session.flush()
        await self._session.refresh(owner)
        return owner

    async def update(self, owner: Owner) -> Owner:
        """Update an existing owner.

        Args:
            owner: Owner entity with updates.

        Returns:
            Updated owner.
        """
        await self._session.flush()
        await self._session.refresh(owner)
        return owner

    async def touch(self, owner: Owner) -> Owner:
        """Record a quota decision on the owner row.

        Writing the row bumps its version, so a concurrent decision for the
        same owner fails on flush instead of reusing the same free slot.

        Args:
            owner: Owner the decision was made for.

        Returns:
            Updated owner.
        """
        owner.last_cancellation_at = datetime.now(UTC)
        return await self.update(owner)
