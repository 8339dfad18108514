# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Per-owner cap on actively advertised properties."""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import NamedTuple

from src.config import get_settings
from src.models.enums import PropertyStatus
from src.models.owner import Owner
from src.models.property import Property
from src.services.availability_service import AvailabilitySegmenter
from src.utils.date_ranges import DateRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PropertySnapshot:
    """What the limiter needs to know about one property."""

    property_id: int
    owner_id: str
    status: PropertyStatus
    segments: tuple[DateRange, ...] = ()

    @classmethod
    def of(cls, prop: Property, segments: Iterable[DateRange]) -> "PropertySnapshot":
        """Build a snapshot from a property and its current open segments."""
        return cls(
            property_id=prop.id,
            owner_id=prop.owner_id,
            status=prop.status,
            segments=tuple(segments),
        )


class ListingTabs(NamedTuple):
    """Owner dashboard split of properties."""

    active: list[PropertySnapshot]
    expired: list[PropertySnapshot]


class AdvertisingLimiter:
    """Counts advertised properties against the owner's cap.

    A property is advertised when its status is active and it still has an
    open segment long enough for a minimum stay. Properties that are active
    in name but only have shorter fragments left are excluded from the
    count and shown with the expired ones.
    """

    def __init__(
        self,
        cap: int | None = None,
        segmenter: AvailabilitySegmenter | None = None,
        as_of: date | None = None,
    ) -> None:
        """Initialize AdvertisingLimiter.

        Args:
            cap: Maximum advertised properties per owner. Defaults to settings.
            segmenter: Segmenter deciding which segments are long enough.
            as_of: Day from which segments count; None counts whole segments.
        """
        self._cap = cap if cap is not None else get_settings().max_active_listings
        self._segmenter = segmenter or AvailabilitySegmenter()
        self._as_of = as_of

    @classmethod
    def for_owner(
        cls,
        owner: Owner | None,
        segmenter: AvailabilitySegmenter | None = None,
        as_of: date | None = None,
    ) -> "AdvertisingLimiter":
        """Create a limiter honouring the owner's own cap, if set.

        Args:
            owner: Owner whose properties are counted.
            segmenter: Segmenter deciding which segments are long enough.
            as_of: Day from which segments count.

        Returns:
            Limiter using ``owner.ad_limit`` or the configured default.
        """
        cap = owner.ad_limit if owner is not None else None
        return cls(cap=cap, segmenter=segmenter, as_of=as_of)

    @property
    def cap(self) -> int:
        """Get the number of properties an owner may advertise at once."""
        return self._cap

    def snapshots(self, properties: Iterable[Property]) -> list[PropertySnapshot]:
        """Snapshot properties with segments from their internal bookings.

        Args:
            properties: Properties with bookings loaded.

        Returns:
            One snapshot per property.
        """
        return [
            PropertySnapshot.of(prop, self._segmenter.segments_for(prop))
            for prop in properties
        ]

    def is_active_eligible(self, snapshot: PropertySnapshot) -> bool:
        """Check whether a property counts as advertised."""
        if snapshot.status != PropertyStatus.ACTIVE:
            return False
        return self._segmenter.has_bookable_segment(snapshot.segments, self._as_of)

    def active_count(
        self,
        owner_id: str,
        snapshots: Iterable[PropertySnapshot],
        exclude_property_id: int | None = None,
    ) -> int:
        """Count the owner's advertised properties.

        Args:
            owner_id: Owner to count for.
            snapshots: Properties to consider; other owners' are ignored.
            exclude_property_id: Property to leave out of the count.

        Returns:
            Number of advertised properties.
        """
        return sum(
            1
            for snap in snapshots
            if snap.owner_id == owner_id
            and snap.property_id != exclude_property_id
            and self.is_active_eligible(snap)
        )

    def excluded_from_advertising(
        self, snapshots: Iterable[PropertySnapshot]
    ) -> list[PropertySnapshot]:
        """List properties that are active in name but cannot be advertised."""
        return [
            snap
            for snap in snapshots
            if snap.status == PropertyStatus.ACTIVE
            and not self.is_active_eligible(snap)
        ]

    def partition(self, snapshots: Sequence[PropertySnapshot]) -> ListingTabs:
        """Split properties into the active and expired dashboard tabs.

        Args:
            snapshots: Properties of one owner.

        Returns:
            Advertised properties, and all others (deleted, expired, rented
            and excluded ones).
        """
        tabs = ListingTabs(active=[], expired=[])
        for snap in snapshots:
            if self.is_active_eligible(snap):
                tabs.active.append(snap)
            else:
                tabs.expired.append(snap)
        return tabs

    def can_activate(
        self,
        owner_id: str,
        snapshots: Iterable[PropertySnapshot],
        exclude_property_id: int | None = None,
    ) -> bool:
        """Check whether the owner has a free advertising slot.

        Args:
            owner_id: Owner asking for a slot.
            snapshots: The owner's properties.
            exclude_property_id: Property being activated, left out of the count.

        Returns:
            True if the count stays under the cap.
        """
        count = self.active_count(owner_id, snapshots, exclude_property_id)
        allowed = count < self._cap
        if not allowed:
            logger.debug(
                "Owner %s at advertising cap (%d/%d)", owner_id, count, self._cap
            )
        return allowed
