"""
Event store contract and the in-memory backing.
"""
from dataclasses import dataclass
from typing import Dict, Generic, List, Optional, Protocol, TypeVar, runtime_checkable

from bizcal.exceptions import EventNotFoundError, StorageUnavailable
from bizcal.schemas.calendar import CalendarEvent, EventPage, EventQuery

T = TypeVar("T")


@dataclass
class StorageResult(Generic[T]):
    """
    Outcome of a store operation.

    Persistence failures are reported here instead of being raised, so the
    caller decides explicitly whether to fall back. A missing event is not a
    storage failure and raises EventNotFoundError instead.
    """

    value: Optional[T] = None
    error: Optional[StorageUnavailable] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "StorageResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: StorageUnavailable) -> "StorageResult[T]":
        return cls(error=error)


def sort_key(event: CalendarEvent):
    return (event.start, event.id)


def paginate(events: List[CalendarEvent], page: int, page_size: int) -> List[CalendarEvent]:
    offset = (page - 1) * page_size
    return events[offset:offset + page_size]


@runtime_checkable
class EventStore(Protocol):
    """Protocol that all event store backings must satisfy."""

    async def create(self, event: CalendarEvent) -> StorageResult[CalendarEvent]: ...

    async def update(self, event: CalendarEvent) -> StorageResult[CalendarEvent]: ...

    async def delete(self, event_id: str) -> StorageResult[None]: ...

    async def get(self, event_id: str) -> StorageResult[Optional[CalendarEvent]]: ...

    async def query(
        self,
        query: EventQuery,
        page: int = 1,
        page_size: int = 20,
    ) -> StorageResult[EventPage]: ...

    async def snapshot(self) -> StorageResult[List[CalendarEvent]]: ...


class InMemoryEventStore:
    """
    Dictionary-backed event store.

    Never reports StorageUnavailable; used for tests, for deployments without
    a database and as the facade's fallback.
    """

    def __init__(self, is_durable: bool = False):
        self._events: Dict[str, CalendarEvent] = {}
        self.is_durable = is_durable

    def _own(self, event: CalendarEvent) -> CalendarEvent:
        return event.model_copy(deep=True, update={"is_durable": self.is_durable})

    def __len__(self) -> int:
        return len(self._events)

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._events

    async def create(self, event: CalendarEvent) -> StorageResult[CalendarEvent]:
        stored = self._own(event)
        self._events[stored.id] = stored
        return StorageResult.success(stored.model_copy(deep=True))

    async def update(self, event: CalendarEvent) -> StorageResult[CalendarEvent]:
        if event.id not in self._events:
            raise EventNotFoundError(event.id)
        stored = self._own(event)
        self._events[stored.id] = stored
        return StorageResult.success(stored.model_copy(deep=True))

    async def delete(self, event_id: str) -> StorageResult[None]:
        if event_id not in self._events:
            raise EventNotFoundError(event_id)
        del self._events[event_id]
        return StorageResult.success()

    async def get(self, event_id: str) -> StorageResult[Optional[CalendarEvent]]:
        event = self._events.get(event_id)
        return StorageResult.success(event.model_copy(deep=True) if event else None)

    async def query(
        self,
        query: EventQuery,
        page: int = 1,
        page_size: int = 20,
    ) -> StorageResult[EventPage]:
        matched = sorted(
            (e for e in self._events.values() if query.matches(e)),
            key=sort_key,
        )
        return StorageResult.success(
            EventPage(
                events=[e.model_copy(deep=True) for e in paginate(matched, page, page_size)],
                total=len(matched),
                page=page,
                page_size=page_size,
            )
        )

    async def snapshot(self) -> StorageResult[List[CalendarEvent]]:
        events = sorted(self._events.values(), key=sort_key)
        return StorageResult.success([e.model_copy(deep=True) for e in events])
