"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator, Callable, Generator
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment before importing app modules
os.environ["USE_DATABASE"] = "false"
os.environ["AI_SUGGESTIONS_ENABLED"] = "false"

from bizcal.api.deps import get_scheduling_service
from bizcal.database import create_tables
from bizcal.main import app
from bizcal.schemas.calendar import CalendarEvent, EventPriority
from bizcal.services.event_store import InMemoryEventStore
from bizcal.services.scheduling import SchedulingService

# Monday 2025-06-02 08:00 UTC
NOW = datetime(2025, 6, 2, 8, 0, tzinfo=timezone.utc)


def at(day_offset: int, hour: int, minute: int = 0) -> datetime:
    """A UTC instant relative to the Monday of the fixed clock."""
    return NOW.replace(hour=hour, minute=minute) + timedelta(days=day_offset)


@pytest.fixture
def make_event() -> Callable[..., CalendarEvent]:
    """Factory for stored-looking events on the fixed Monday."""

    def factory(
        start: datetime,
        end: datetime,
        title: str = "Meeting",
        priority: EventPriority = EventPriority.MEDIUM,
        **fields,
    ) -> CalendarEvent:
        return CalendarEvent(
            title=title,
            start=start,
            end=end,
            priority=priority,
            organizer_id="organizer",
            **fields,
        )

    return factory


@pytest.fixture
def store() -> InMemoryEventStore:
    """Durable-looking in-memory primary store."""
    return InMemoryEventStore(is_durable=True)


@pytest.fixture
def service(store: InMemoryEventStore) -> SchedulingService:
    """Scheduling service on the in-memory store with a fixed clock."""
    return SchedulingService(store, clock=lambda: NOW)


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory bound to a fresh in-memory SQLite database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(engine)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def client(service: SchedulingService) -> Generator[TestClient, None, None]:
    """Create a test client with the scheduling service override."""
    app.dependency_overrides[get_scheduling_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
