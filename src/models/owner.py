# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Owner model holding per-owner advertising quota state."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database import Base

if TYPE_CHECKING:
    from src.models.property import Property


def _utc_now() -> datetime:
    """Get current UTC datetime for SQLAlchemy defaults."""
    return datetime.now(UTC)


class Owner(Base):
    """Property owner as known to the advertising quota.

    The id is the identity issued by the upstream gateway. The row is
    versioned so that quota decisions for one owner are serialized: every
    cancellation writes it, and a concurrent writer fails with a stale
    version instead of spending the same free slot twice.
    """

    __tablename__ = "owners"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    ad_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_cancellation_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utc_now
    )

    # Relationships
    properties: Mapped[list["Property"]] = relationship(
        "Property",
        back_populates="owner",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<Owner(id={self.id}, ad_limit={self.ad_limit})>"
