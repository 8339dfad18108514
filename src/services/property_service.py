# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Owner actions on properties."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import (
    InvalidRange,
    InvalidStateTransition,
    ListingLimitReached,
    NotFound,
)
from src.models.enums import PropertyAction, PropertyStatus
from src.models.owner import Owner
from src.models.property import Property
from src.repositories.listing_repository import ListingRepository
from src.repositories.owner_repository import OwnerRepository
from src.repositories.property_event_repository import PropertyEventRepository
from src.repositories.property_repository import PropertyRepository
from src.services.advertising_limiter import AdvertisingLimiter
from src.services.availability_service import AvailabilityService
from src.services.cancellation_service import apply_listing_changes
from src.services.relist_service import ListingSlice, plan_listings
from src.utils.date_ranges import DateRange

logger = logging.getLogger(__name__)


@dataclass
class PropertyTabs:
    """An owner's properties as shown on the dashboard."""

    active: list[Property]
    expired: list[Property]
    cap: int

    @property
    def active_count(self) -> int:
        """Number of advertised properties."""
        return len(self.active)


class PropertyService:
    """Service for owner-initiated property changes.

    Works inside the caller's session; the caller commits.
    """

    def __init__(
        self,
        session: AsyncSession,
        availability: AvailabilityService | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize PropertyService.

        Args:
            session: Async database session.
            availability: Availability service for segments and cache.
            today: Clock for the "bookable from today" rule.
        """
        self._session = session
        self._availability = availability or AvailabilityService()
        self._today = today
        self._property_repo = PropertyRepository(session)
        self._owner_repo = OwnerRepository(session)
        self._listing_repo = ListingRepository(session)
        self._event_repo = PropertyEventRepository(session)

    async def get(self, property_id: int, owner_id: str | None = None) -> Property:
        """Get a property, optionally checking its owner.

        Args:
            property_id: Property primary key.
            owner_id: When given, the property must belong to this owner.

        Returns:
            The property.

        Raises:
            NotFound: If there is no such property for the owner.
        """
        prop = await self._property_repo.get_by_id(property_id)
        if prop is None or (owner_id is not None and prop.owner_id != owner_id):
            msg = f"Property {property_id} not found"
            raise NotFound(msg)
        return prop

    async def tabs(self, owner_id: str) -> PropertyTabs:
        """Split an owner's properties into active and expired tabs.

        Args:
            owner_id: Owner to list for.

        Returns:
            Advertised properties and all the others, with the owner's cap.
        """
        owner = await self._owner_repo.get_or_create(owner_id)
        limiter = self._limiter(owner)
        properties = list(await self._property_repo.get_for_owner(owner.id))

        by_id = {prop.id: prop for prop in properties}
        split = limiter.partition(limiter.snapshots(properties))
        return PropertyTabs(
            active=[by_id[snap.property_id] for snap in split.active],
            expired=[by_id[snap.property_id] for snap in split.expired],
            cap=limiter.cap,
        )

    async def create(
        self,
        owner_id: str,
        title: str,
        window_start: date | None = None,
        window_end: date | None = None,
        address: str | None = None,
        calendar_feed_url: str | None = None,
    ) -> Property:
        """Register a new property and advertise its window.

        Args:
            owner_id: Owner registering the property.
            title: Display title.
            window_start: First day of the advertised window.
            window_end: Day after the last day of the window.
            address: Optional address.
            calendar_feed_url: Optional external iCal feed.

        Returns:
            The created, active property.

        Raises:
            InvalidRange: If only one bound is given or the window is empty.
            ListingLimitReached: If the owner already advertises the maximum.
        """
        window = self._window(window_start, window_end)

        owner = await self._owner_repo.get_or_create(owner_id)
        limiter = self._limiter(owner)
        siblings = await self._property_repo.get_for_owner(owner.id)
        if not limiter.can_activate(owner.id, limiter.snapshots(siblings)):
            msg = f"Owner {owner.id} already advertises {limiter.cap} properties"
            raise ListingLimitReached(msg, limit=limiter.cap)

        prop = Property(
            owner_id=owner.id,
            title=title,
            address=address,
            window_start=window_start,
            window_end=window_end,
            status=PropertyStatus.ACTIVE,
            calendar_feed_url=calendar_feed_url,
            listings=[],
            bookings=[],
        )
        prop = await self._property_repo.create(prop)
        if window is not None:
            await self._listing_repo.create(prop, window)

        await self._event_repo.record(
            prop.id, PropertyAction.CREATED, f"Window {window or 'open-ended'}"
        )
        logger.info("Property %s created for owner %s", prop.id, owner.id)
        return prop

    async def soft_delete(self, property_id: int, owner_id: str) -> Property:
        """Move a property to the deleted state, keeping its history.

        Raises:
            NotFound: If the owner has no such property.
            InvalidStateTransition: If already deleted or still booked.
        """
        prop = await self.get(property_id, owner_id)
        if prop.status == PropertyStatus.DELETED:
            msg = f"Property {property_id} is already deleted"
            raise InvalidStateTransition(msg)
        self._ensure_no_open_bookings(prop)

        for listing in prop.active_listings:
            listing.active = False
        prop.status = PropertyStatus.DELETED
        prop.deleted_at = datetime.now(UTC)
        await self._property_repo.update(prop)

        await self._event_repo.record(prop.id, PropertyAction.SOFT_DELETED)
        self._availability.invalidate(prop.id)
        logger.info("Property %s soft-deleted", prop.id)
        return prop

    async def delete_permanently(self, property_id: int, owner_id: str) -> None:
        """Remove a property with its listings, bookings and history.

        Raises:
            NotFound: If the owner has no such property.
            InvalidStateTransition: If the property is still booked.
        """
        prop = await self.get(property_id, owner_id)
        self._ensure_no_open_bookings(prop)

        await self._property_repo.delete(prop)
        self._availability.invalidate(property_id)
        logger.info("Property %s permanently deleted", property_id)

    async def reactivate(self, property_id: int, owner_id: str) -> Property:
        """Advertise an expired or deleted property again.

        Listings are rebuilt from the open segments that remain from today.

        Args:
            property_id: Property to reactivate.
            owner_id: Owner performing the action.

        Returns:
            The active property.

        Raises:
            NotFound: If the owner has no such property.
            InvalidStateTransition: If the property is not expired or deleted,
                or has no period long enough for a stay.
            ListingLimitReached: If the owner already advertises the maximum.
        """
        prop = await self.get(property_id, owner_id)
        if prop.status not in (PropertyStatus.EXPIRED, PropertyStatus.DELETED):
            msg = f"Property {property_id} is {prop.status} and cannot be reactivated"
            raise InvalidStateTransition(msg)

        segmenter = self._availability.segmenter
        external = await self._availability.external_ranges(prop)
        open_ranges = segmenter.bookable_segments(
            segmenter.segments_for(prop, external), self._today()
        )
        if not any(segmenter.is_advertisable(r) for r in open_ranges):
            msg = (
                f"Property {property_id} has no open period of "
                f"{segmenter.minimum_stay_days} days left"
            )
            raise InvalidStateTransition(msg)

        owner = await self._owner_repo.get_or_create(prop.owner_id)
        limiter = self._limiter(owner)
        siblings = await self._property_repo.get_for_owner(owner.id)
        if not limiter.can_activate(
            owner.id, limiter.snapshots(siblings), exclude_property_id=prop.id
        ):
            msg = f"Owner {owner.id} already advertises {limiter.cap} properties"
            raise ListingLimitReached(msg, limit=limiter.cap)

        for listing in prop.active_listings:
            listing.active = False
        reusable = [ListingSlice.of(listing) for listing in prop.listings]
        await apply_listing_changes(
            self._listing_repo, prop, plan_listings(open_ranges, reusable)
        )
        prop.status = PropertyStatus.ACTIVE
        prop.deleted_at = None
        await self._property_repo.update(prop)

        await self._event_repo.record(
            prop.id,
            PropertyAction.REACTIVATED,
            f"Advertising {', '.join(map(str, open_ranges))}",
        )
        self._availability.invalidate(prop.id)
        logger.info("Property %s reactivated", prop.id)
        return prop

    def _limiter(self, owner: Owner) -> AdvertisingLimiter:
        return AdvertisingLimiter.for_owner(
            owner, self._availability.segmenter, as_of=self._today()
        )

    @staticmethod
    def _window(start: date | None, end: date | None) -> DateRange | None:
        """Validate an advertised window.

        Raises:
            InvalidRange: If only one bound is set or end is not after start.
        """
        if start is None and end is None:
            return None
        if start is None or end is None:
            msg = "Advertised window needs both a start and an end"
            raise InvalidRange(msg)
        return DateRange(start, end)

    @staticmethod
    def _ensure_no_open_bookings(prop: Property) -> None:
        open_bookings = [b for b in prop.bookings if b.is_blocking]
        if open_bookings:
            msg = (
                f"Property {prop.id} has {len(open_bookings)} pending or confirmed "
                "booking(s); cancel them first"
            )
            raise InvalidStateTransition(msg)
