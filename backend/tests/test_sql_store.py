"""Tests for the SQLAlchemy event store on SQLite."""

import logging

import pytest
from sqlalchemy.exc import OperationalError

from bizcal.exceptions import EventNotFoundError, StorageUnavailable
from bizcal.schemas.calendar import (
    Attendee,
    AttendeeStatus,
    ConflictInfo,
    ConflictSeverity,
    ConflictType,
    EventAISuggestions,
    EventQuery,
    EventType,
    RecurrenceFrequency,
    RecurrenceRule,
)
from bizcal.services.event_store import EventStore
from bizcal.services.sql_store import SqlEventStore

from conftest import at


@pytest.fixture
def sql_store(session_factory) -> SqlEventStore:
    return SqlEventStore(session_factory)


def test_sql_store_satisfies_protocol(sql_store):
    """Test the SQL backing implements the store protocol."""
    assert isinstance(sql_store, EventStore)


async def test_round_trip_keeps_nested_data(sql_store, make_event):
    """Test attendees, recurrence, conflicts and suggestions survive storage."""
    event = make_event(
        at(0, 9),
        at(0, 10),
        title="Weekly sync",
        location="Room 4",
        attendees=[
            Attendee(email="ana@example.com", name="Ana", status=AttendeeStatus.ACCEPTED),
            Attendee(email="bo@example.com", name="Bo", is_optional=True),
        ],
        recurrence=RecurrenceRule(frequency=RecurrenceFrequency.WEEKLY, by_week_day=[1]),
        conflicts=[
            ConflictInfo(
                conflicting_event_id="other",
                conflict_type=ConflictType.OVERLAP,
                severity=ConflictSeverity.HIGH,
            )
        ],
        ai_suggestions=EventAISuggestions(preparation_items=["Review agenda"]),
    )

    created = await sql_store.create(event)
    fetched = (await sql_store.get(event.id)).value

    assert created.ok
    assert fetched.start == event.start
    assert fetched.end == event.end
    assert [a.email for a in fetched.attendees] == ["ana@example.com", "bo@example.com"]
    assert fetched.attendees[0].status == AttendeeStatus.ACCEPTED
    assert fetched.attendees[1].is_optional
    assert fetched.recurrence.frequency == RecurrenceFrequency.WEEKLY
    assert fetched.conflicts == event.conflicts
    assert fetched.ai_suggestions.preparation_items == ["Review agenda"]
    assert fetched.is_durable


async def test_update_replaces_fields_and_attendees(sql_store, make_event):
    """Test update rewrites the row and keeps surviving attendees."""
    ana = Attendee(email="ana@example.com", name="Ana")
    event = make_event(at(0, 9), at(0, 10), attendees=[ana])
    await sql_store.create(event)

    changed = event.model_copy(
        update={
            "title": "Moved",
            "start": at(0, 14),
            "end": at(0, 15),
            "attendees": [ana, Attendee(email="cy@example.com", name="Cy")],
        }
    )
    result = await sql_store.update(changed)
    fetched = (await sql_store.get(event.id)).value

    assert result.ok
    assert fetched.title == "Moved"
    assert fetched.start == at(0, 14)
    assert [a.id for a in fetched.attendees][0] == ana.id
    assert len(fetched.attendees) == 2


async def test_update_missing_raises(sql_store, make_event):
    """Test updating an unknown event raises not found."""
    with pytest.raises(EventNotFoundError):
        await sql_store.update(make_event(at(0, 9), at(0, 10)))


async def test_delete(sql_store, make_event):
    """Test delete removes the row and a second delete fails."""
    event = make_event(at(0, 9), at(0, 10), attendees=[Attendee(email="a@example.com", name="A")])
    await sql_store.create(event)

    assert (await sql_store.delete(event.id)).ok
    assert (await sql_store.get(event.id)).value is None
    with pytest.raises(EventNotFoundError):
        await sql_store.delete(event.id)


async def test_query_filters_and_order(sql_store, make_event):
    """Test filtering, ordering and totals match the in-memory store."""
    await sql_store.create(make_event(at(0, 11), at(0, 12), title="Lunch with client"))
    await sql_store.create(
        make_event(
            at(0, 9),
            at(0, 10),
            title="Standup",
            attendees=[Attendee(email="Ana@Example.com", name="Ana")],
        )
    )
    await sql_store.create(
        make_event(at(1, 9), at(1, 10), title="Gym", type=EventType.PERSONAL)
    )

    everything = (await sql_store.query(EventQuery())).value
    monday = (await sql_store.query(EventQuery(start=at(0, 0), end=at(1, 0)))).value
    by_attendee = (await sql_store.query(EventQuery(attendee_email="ana@example.com"))).value
    by_search = (await sql_store.query(EventQuery(search="CLIENT"))).value
    personal = (await sql_store.query(EventQuery(type=EventType.PERSONAL))).value
    second_page = (await sql_store.query(EventQuery(), page=2, page_size=2)).value

    assert [e.title for e in everything.events] == ["Standup", "Lunch with client", "Gym"]
    assert monday.total == 2
    assert [e.title for e in by_attendee.events] == ["Standup"]
    assert [e.title for e in by_search.events] == ["Lunch with client"]
    assert [e.title for e in personal.events] == ["Gym"]
    assert second_page.total == 3
    assert [e.title for e in second_page.events] == ["Gym"]


async def test_snapshot_returns_all_events(sql_store, make_event):
    """Test snapshot reads every stored event in start order."""
    await sql_store.create(make_event(at(0, 10), at(0, 11), title="B"))
    await sql_store.create(make_event(at(0, 9), at(0, 10), title="A"))

    snapshot = (await sql_store.snapshot()).value

    assert [e.title for e in snapshot] == ["A", "B"]


async def test_database_errors_become_results(make_event, caplog):
    """Test database failures are reported, not raised."""

    def broken_factory():
        raise OperationalError("connect", {}, Exception("database is down"))

    store = SqlEventStore(broken_factory)

    created = await store.create(make_event(at(0, 9), at(0, 10)))
    fetched = await store.get("anything")
    snapshot = await store.snapshot()

    for result in (created, fetched, snapshot):
        assert not result.ok
        assert isinstance(result.error, StorageUnavailable)

    failures = [r for r in caplog.records if r.name == "bizcal.services.sql_store"]
    assert len(failures) == 3
    assert all(r.levelno == logging.WARNING for r in failures)
