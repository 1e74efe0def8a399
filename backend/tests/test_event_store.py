"""Tests for the in-memory event store."""

import pytest

from bizcal.exceptions import EventNotFoundError, StorageUnavailable
from bizcal.schemas.calendar import (
    Attendee,
    EventPriority,
    EventQuery,
    EventStatus,
    EventType,
)
from bizcal.services.event_store import EventStore, InMemoryEventStore, StorageResult

from conftest import at


def test_in_memory_store_satisfies_protocol():
    """Test the in-memory backing implements the store protocol."""
    assert isinstance(InMemoryEventStore(), EventStore)


async def test_create_and_get(store, make_event):
    """Test a created event can be read back."""
    event = make_event(at(0, 9), at(0, 10), title="Kickoff")

    created = await store.create(event)
    fetched = await store.get(event.id)

    assert created.ok
    assert fetched.value.title == "Kickoff"
    assert fetched.value.is_durable


async def test_fallback_store_marks_events_not_durable(make_event):
    """Test events in a non-durable store say so."""
    store = InMemoryEventStore(is_durable=False)
    result = await store.create(make_event(at(0, 9), at(0, 10)))
    assert result.value.is_durable is False


async def test_get_missing_returns_none(store):
    """Test getting an unknown id returns an empty success."""
    result = await store.get("missing")
    assert result.ok
    assert result.value is None


async def test_update_missing_raises(store, make_event):
    """Test updating an unknown event raises not found."""
    with pytest.raises(EventNotFoundError):
        await store.update(make_event(at(0, 9), at(0, 10)))


async def test_delete(store, make_event):
    """Test deleting removes the event and a second delete fails."""
    event = make_event(at(0, 9), at(0, 10))
    await store.create(event)

    result = await store.delete(event.id)

    assert result.ok
    assert event.id not in store
    with pytest.raises(EventNotFoundError):
        await store.delete(event.id)


async def test_stored_copies_are_isolated(store, make_event):
    """Test mutating a returned event does not change the store."""
    event = make_event(at(0, 9), at(0, 10), title="Original")
    created = (await store.create(event)).value

    created.title = "Changed"

    assert (await store.get(event.id)).value.title == "Original"


async def test_query_orders_by_start_and_paginates(store, make_event):
    """Test query results are ordered by start time and paged."""
    for hour in (13, 9, 11, 10, 12):
        await store.create(make_event(at(0, hour), at(0, hour + 1), title=f"At {hour}"))

    first = (await store.query(EventQuery(), page=1, page_size=2)).value
    second = (await store.query(EventQuery(), page=2, page_size=2)).value

    assert first.total == 5
    assert [e.title for e in first.events] == ["At 9", "At 10"]
    assert [e.title for e in second.events] == ["At 11", "At 12"]


async def test_query_window_uses_overlap(store, make_event):
    """Test the time window keeps events that overlap it."""
    await store.create(make_event(at(0, 8), at(0, 9), title="Before"))
    await store.create(make_event(at(0, 9, 30), at(0, 10, 30), title="Inside"))
    await store.create(make_event(at(0, 11), at(0, 12), title="After"))

    page = (await store.query(EventQuery(start=at(0, 9), end=at(0, 11)))).value

    assert [e.title for e in page.events] == ["Inside"]


async def test_query_filters(store, make_event):
    """Test enum, linkage, attendee and search filters."""
    await store.create(
        make_event(
            at(0, 9),
            at(0, 10),
            title="Quarterly review",
            description="Numbers for ACME",
            type=EventType.MEETING,
            priority=EventPriority.HIGH,
            project_id="p1",
            client_id="c1",
            attendees=[Attendee(email="Ana@Example.com", name="Ana")],
        )
    )
    await store.create(
        make_event(
            at(0, 11),
            at(0, 12),
            title="Dentist",
            type=EventType.PERSONAL,
            status=EventStatus.TENTATIVE,
        )
    )

    async def titles(**filters):
        page = (await store.query(EventQuery(**filters))).value
        return [e.title for e in page.events]

    assert await titles(type=EventType.PERSONAL) == ["Dentist"]
    assert await titles(priority=EventPriority.HIGH) == ["Quarterly review"]
    assert await titles(status=EventStatus.TENTATIVE) == ["Dentist"]
    assert await titles(project_id="p1", client_id="c1") == ["Quarterly review"]
    assert await titles(attendee_email="ana@example.com") == ["Quarterly review"]
    assert await titles(search="acme") == ["Quarterly review"]
    assert await titles(search="nothing") == []


def test_storage_result_states():
    """Test success and failure results."""
    assert StorageResult.success(1).ok
    failed = StorageResult.failure(StorageUnavailable("get"))
    assert not failed.ok
    assert failed.value is None
