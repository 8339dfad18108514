# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Property model for owner-published rentals."""

from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database import Base
from src.models.enums import PropertyStatus
from src.utils.date_ranges import DateRange

if TYPE_CHECKING:
    from src.models.booking import Booking
    from src.models.listing import Listing
    from src.models.owner import Owner


def _utc_now() -> datetime:
    """Get current UTC datetime for SQLAlchemy defaults."""
    return datetime.now(UTC)


class Property(Base):
    """Rental property with its advertised window.

    Listings are the advertisements currently or previously published for
    parts of the window; bookings reserve parts of it.
    """

    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("owners.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    window_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    window_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[PropertyStatus] = mapped_column(
        Enum(
            PropertyStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=PropertyStatus.ACTIVE,
    )
    calendar_feed_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utc_now, onupdate=_utc_now
    )

    # Relationships
    owner: Mapped["Owner"] = relationship("Owner", back_populates="properties")
    listings: Mapped[list["Listing"]] = relationship(
        "Listing",
        back_populates="rental",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Listing.start_date",
    )
    bookings: Mapped[list["Booking"]] = relationship(
        "Booking",
        back_populates="rental",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Booking.check_in",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_property_owner", "owner_id"),
        Index("idx_property_status", "owner_id", "status"),
    )

    @property
    def advertised_window(self) -> DateRange | None:
        """Get the advertised window, or None when it is open-ended."""
        if self.window_start is None or self.window_end is None:
            return None
        return DateRange(self.window_start, self.window_end)

    @property
    def active_listings(self) -> list["Listing"]:
        """Get the listings currently advertised, ordered by start."""
        return [listing for listing in self.listings if listing.active]

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<Property(id={self.id}, title={self.title}, status={self.status})>"
