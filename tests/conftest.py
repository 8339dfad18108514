# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Pytest fixtures for Rental Relist tests."""

import os
from collections.abc import AsyncGenerator, Callable, Generator
from datetime import date
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool


# Set environment variables BEFORE any src imports
# This must happen at module load time
def _setup_env() -> None:
    """Set up test environment variables at module load."""
    if "DATABASE_URL" not in os.environ:
        os.environ["DATABASE_URL"] = "sqlite:///./test.db"
    if "STANDALONE_MODE" not in os.environ:
        os.environ["STANDALONE_MODE"] = "true"
    if "LOG_LEVEL" not in os.environ:
        os.environ["LOG_LEVEL"] = "DEBUG"


_setup_env()

# Now safe to import from src
from fastapi import FastAPI  # noqa: E402
from src.database import Base  # noqa: E402
from src.models import Booking, BookingStatus, Owner, Property  # noqa: E402
from src.models.listing import Listing  # noqa: E402
from src.models.property import PropertyStatus  # noqa: E402

# Fixed "today" for everything that depends on the clock
TODAY = date(2030, 1, 1)


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up test environment variables."""
    # Already set by _setup_env(), just yield and cleanup
    yield
    # Cleanup
    test_db_path = Path("test.db")
    if test_db_path.exists():
        test_db_path.unlink()


@pytest.fixture
async def async_engine():
    """Create an async test database engine."""
    from sqlalchemy import event

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key constraint enforcement for SQLite on every connection
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, _connection_record):
        """Enable SQLite FK constraints on each connection."""
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to the test engine."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
async def async_session(session_factory) -> AsyncGenerator[AsyncSession]:
    """Create an async test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def clock() -> Callable[[], date]:
    """Clock frozen at TODAY."""
    return lambda: TODAY


@pytest.fixture
def feed_client() -> AsyncMock:
    """External calendar client that reports no blocked days."""
    from src.services.calendar_feed_service import CalendarFeedClient

    client = AsyncMock(spec=CalendarFeedClient)
    client.fetch_ranges.return_value = []
    return client


@pytest.fixture
def app(session_factory, clock, feed_client) -> Generator[FastAPI]:
    """Create a test FastAPI application bound to the test database."""
    from src.api.dependencies import get_availability_service, get_clock
    from src.database import get_db, get_session_factory
    from src.main import create_app
    from src.services.availability_service import (
        AvailabilitySegmenter,
        AvailabilityService,
        SegmentCache,
    )

    app = create_app()
    availability = AvailabilityService(
        AvailabilitySegmenter(minimum_stay_days=7),
        feed_client=feed_client,
        cache=SegmentCache(),
    )

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_availability_service] = lambda: availability
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def seed_property(
    session: AsyncSession,
    owner_id: str = "owner-1",
    window: tuple[date, date] | None = (date(2030, 1, 1), date(2030, 1, 29)),
    listings: list[tuple[date, date]] | None = None,
    bookings: list[tuple[date, date, BookingStatus]] | None = None,
    status: PropertyStatus = PropertyStatus.ACTIVE,
    ad_limit: int | None = None,
    feed_url: str | None = None,
) -> Property:
    """Insert a property with listings and bookings and flush it.

    The owner row is created when missing.
    """
    owner = await session.get(Owner, owner_id)
    if owner is None:
        session.add(Owner(id=owner_id, ad_limit=ad_limit))
        await session.flush()

    prop = Property(
        owner_id=owner_id,
        title=f"Cottage of {owner_id}",
        window_start=window[0] if window else None,
        window_end=window[1] if window else None,
        status=status,
        calendar_feed_url=feed_url,
        listings=[
            Listing(start_date=start, end_date=end, active=True)
            for start, end in (listings or [])
        ],
        bookings=[
            Booking(check_in=start, check_out=end, status=booking_status)
            for start, end, booking_status in (bookings or [])
        ],
    )
    session.add(prop)
    await session.flush()
    return prop


@pytest.fixture
def today() -> date:
    """The date the frozen clock returns."""
    return TODAY


@pytest.fixture
def seed() -> Callable[..., Any]:
    """Helper inserting a property; see :func:`seed_property`."""
    return seed_property
