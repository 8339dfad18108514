# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Listing model for advertised date ranges of a property."""

from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database import Base
from src.utils.date_ranges import DateRange

if TYPE_CHECKING:
    from src.models.property import Property


def _utc_now() -> datetime:
    """Get current UTC datetime for SQLAlchemy defaults."""
    return datetime.now(UTC)


class Listing(Base):
    """Advertisement of one open stretch of a property's window.

    Active listings of a property never overlap each other or a booking.
    Inactive rows are kept so that a later relist can reactivate them.
    """

    __tablename__ = "listings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utc_now, onupdate=_utc_now
    )

    # Relationships
    rental: Mapped["Property"] = relationship("Property", back_populates="listings")

    __table_args__ = (
        Index("idx_listing_property", "property_id"),
        Index("idx_listing_active", "property_id", "active"),
    )

    @property
    def window(self) -> DateRange:
        """Get the advertised range."""
        return DateRange(self.start_date, self.end_date)

    @window.setter
    def window(self, value: DateRange) -> None:
        self.start_date = value.start
        self.end_date = value.end

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<Listing(id={self.id}, property_id={self.property_id}, "
            f"window={self.start_date}~{self.end_date}, active={self.active})>"
        )
