# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Booking model for guest reservations against a property."""

from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database import Base
from src.models.enums import BLOCKING_BOOKING_STATUSES, BookingStatus
from src.utils.date_ranges import DateRange

if TYPE_CHECKING:
    from src.models.property import Property


def _utc_now() -> datetime:
    """Get current UTC datetime for SQLAlchemy defaults."""
    return datetime.now(UTC)


class Booking(Base):
    """Guest reservation of ``[check_in, check_out)`` on a property.

    Pending and confirmed bookings block their dates; cancelled and
    completed ones are kept for history.
    """

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False
    )
    guest_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(
            BookingStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=BookingStatus.PENDING,
    )
    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utc_now, onupdate=_utc_now
    )

    # Relationships
    rental: Mapped["Property"] = relationship("Property", back_populates="bookings")

    __table_args__ = (
        Index("idx_booking_property", "property_id"),
        Index("idx_booking_dates", "property_id", "check_in", "check_out"),
        Index("idx_booking_status", "status"),
    )

    @property
    def stay(self) -> DateRange:
        """Get the reserved range."""
        return DateRange(self.check_in, self.check_out)

    @property
    def is_blocking(self) -> bool:
        """Check whether the booking makes its dates unavailable."""
        return self.status in BLOCKING_BOOKING_STATUSES

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<Booking(id={self.id}, stay={self.check_in}~{self.check_out}, "
            f"status={self.status})>"
        )
