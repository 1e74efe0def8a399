"""
Scheduling service: the public entry point of the calendar engine.
"""
import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set, Tuple

from bizcal.exceptions import (
    EventNotFoundError,
    InvalidIntervalError,
    SchedulingValidationError,
)
from bizcal.schemas.calendar import (
    Attendee,
    AttendeeInput,
    AttendeeStatus,
    CalendarEvent,
    ConflictInfo,
    EventAISuggestions,
    EventCreate,
    EventPage,
    EventQuery,
    EventStatus,
    EventUpdate,
    SchedulingRequest,
    SchedulingResult,
    new_id,
    utcnow,
)
from bizcal.services.conflicts import ConflictDetector
from bizcal.services.event_store import (
    EventStore,
    InMemoryEventStore,
    StorageResult,
    paginate,
    sort_key,
)
from bizcal.services.preferences import PreferenceManager
from bizcal.services.slots import SlotSearchEngine
from bizcal.services.suggestions import SuggestionGenerator

logger = logging.getLogger(__name__)

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480
LARGE_MEETING_ATTENDEES = 5

# Changes to these fields invalidate the conflict list
RESCHEDULING_FIELDS = ("start", "end", "attendees")

# Fields an update may clear by sending null
CLEARABLE_FIELDS = {"description", "location", "recurrence", "project_id", "client_id"}


def preparation_suggestions(request: SchedulingRequest) -> List[str]:
    suggestions = [
        "Prepare meeting agenda",
        "Send calendar invites to attendees",
        "Book meeting room if needed",
    ]
    if len(request.attendee_emails) > LARGE_MEETING_ATTENDEES:
        suggestions.append("Consider if all attendees are necessary")
    return suggestions


def validate_scheduling_request(request: SchedulingRequest) -> None:
    if not MIN_DURATION_MINUTES <= request.duration <= MAX_DURATION_MINUTES:
        raise SchedulingValidationError(
            f"Duration must be between {MIN_DURATION_MINUTES} and "
            f"{MAX_DURATION_MINUTES} minutes"
        )
    if not request.attendee_emails:
        raise SchedulingValidationError("At least one attendee is required")


class SchedulingService:
    """
    Orchestrates event mutations and scheduling proposals.

    Every mutation runs under one lock: the store snapshot used for
    detection, the detection itself and the write happen as a unit, so a
    partial conflict list is never visible. When the durable store reports
    StorageUnavailable the operation is repeated on an in-memory fallback
    store and logged; events living there carry is_durable=False. A delete
    the durable store cannot apply is kept as a tombstone: the id is hidden from
    lookups, queries and detection, and the durable delete is retried before
    the next mutation.
    """

    def __init__(
        self,
        store: EventStore,
        preferences: Optional[PreferenceManager] = None,
        detector: Optional[ConflictDetector] = None,
        slot_engine: Optional[SlotSearchEngine] = None,
        suggestion_generator: Optional[SuggestionGenerator] = None,
        fallback_store: Optional[InMemoryEventStore] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.preferences = preferences or PreferenceManager()
        self.slot_engine = slot_engine or SlotSearchEngine()
        self.detector = detector or ConflictDetector(self.slot_engine)
        self.suggestion_generator = suggestion_generator
        self.fallback_store = fallback_store or InMemoryEventStore(is_durable=False)
        self.clock = clock
        self._lock = asyncio.Lock()
        # Ids deleted while the durable store could not apply the delete
        self._tombstones: Set[str] = set()

    # ------------------------------------------------------------------
    # Store access
    # ------------------------------------------------------------------

    async def _snapshot(self) -> List[CalendarEvent]:
        """All events visible to detection; fallback copies are newer."""
        result = await self.store.snapshot()
        events: Dict[str, CalendarEvent] = {}
        if result.ok:
            events.update((e.id, e) for e in result.value)
        else:
            logger.warning("Detecting against fallback events only: %s", result.error)

        fallback = await self.fallback_store.snapshot()
        events.update((e.id, e) for e in fallback.value)
        for event_id in self._tombstones:
            events.pop(event_id, None)

        return sorted(events.values(), key=sort_key)

    async def _locate(self, event_id: str) -> Tuple[EventStore, CalendarEvent]:
        if event_id in self._tombstones:
            raise EventNotFoundError(event_id)

        fallback = await self.fallback_store.get(event_id)
        if fallback.value is not None:
            return self.fallback_store, fallback.value

        result = await self.store.get(event_id)
        if not result.ok:
            logger.warning("Durable lookup of %s failed: %s", event_id, result.error)
        elif result.value is not None:
            return self.store, result.value

        raise EventNotFoundError(event_id)

    async def _flush_tombstones(self) -> None:
        """Retry durable deletes that failed earlier; caller holds the lock."""
        for event_id in sorted(self._tombstones):
            try:
                result = await self.store.delete(event_id)
            except EventNotFoundError:
                self._tombstones.discard(event_id)
                continue
            if result.ok:
                self._tombstones.discard(event_id)
                logger.info("Applied pending durable delete of event %s", event_id)

    async def _write_fallback(self, event: CalendarEvent) -> CalendarEvent:
        if event.id in self.fallback_store:
            result = await self.fallback_store.update(event)
        else:
            result = await self.fallback_store.create(event)
        return result.value

    async def _persist(
        self,
        result: StorageResult[CalendarEvent],
        event: CalendarEvent,
    ) -> CalendarEvent:
        if result.ok:
            return result.value
        logger.warning(
            "Durable store unavailable, keeping event %s in memory only: %s",
            event.id,
            result.error,
        )
        return await self._write_fallback(event)

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    async def _suggestions(self, event: CalendarEvent) -> Optional[EventAISuggestions]:
        if self.suggestion_generator is None:
            return None
        try:
            return await self.suggestion_generator.generate(event)
        except Exception as e:
            logger.warning("AI suggestions unavailable for event %s: %s", event.id, e)
            return None

    def _attendees(
        self,
        inputs: List[AttendeeInput],
        existing: Optional[List[Attendee]] = None,
    ) -> List[Attendee]:
        """Build attendees, keeping id and response of those already invited."""
        known = {a.email.lower(): a for a in existing or []}
        attendees = []
        for item in inputs:
            previous = known.get(item.email.lower())
            attendees.append(
                Attendee(
                    id=previous.id if previous else new_id(),
                    user_id=previous.user_id if previous else None,
                    email=item.email,
                    name=item.name,
                    status=previous.status if previous else AttendeeStatus.PENDING,
                    is_optional=item.is_optional,
                )
            )
        return attendees

    # ------------------------------------------------------------------
    # Event operations
    # ------------------------------------------------------------------

    async def create_event(self, data: EventCreate, actor_id: str) -> CalendarEvent:
        """Validate, detect conflicts, persist and return the new event."""
        if data.end <= data.start:
            raise InvalidIntervalError("End time must be after start time")

        now = self.clock()
        candidate = CalendarEvent(
            title=data.title,
            description=data.description,
            location=data.location,
            start=data.start,
            end=data.end,
            is_all_day=data.is_all_day,
            type=data.type,
            priority=data.priority,
            status=EventStatus.CONFIRMED,
            organizer_id=actor_id,
            attendees=self._attendees(data.attendees),
            recurrence=data.recurrence,
            project_id=data.project_id,
            client_id=data.client_id,
            created_at=now,
            updated_at=now,
        )
        candidate.ai_suggestions = await self._suggestions(candidate)

        async with self._lock:
            await self._flush_tombstones()
            snapshot = await self._snapshot()
            candidate.conflicts = self.detector.detect(candidate, snapshot)
            result = await self.store.create(candidate)
            event = await self._persist(result, candidate)

        logger.info(
            "Created event %s with %d conflicts (durable=%s)",
            event.id,
            len(event.conflicts),
            event.is_durable,
        )
        return event

    async def update_event(self, data: EventUpdate) -> CalendarEvent:
        """
        Apply a partial update.

        Conflicts are recomputed only when start, end or attendees actually
        change; otherwise the stored list is kept as is.
        """
        changes = {
            key: value
            for key, value in data.model_dump(exclude_unset=True, exclude={"id"}).items()
            if value is not None or key in CLEARABLE_FIELDS
        }

        async with self._lock:
            await self._flush_tombstones()
            store, existing = await self._locate(data.id)

            if "attendees" in changes:
                changes["attendees"] = self._attendees(data.attendees or [], existing.attendees)
            if "recurrence" in changes:
                changes["recurrence"] = data.recurrence

            start = changes.get("start", existing.start)
            end = changes.get("end", existing.end)
            if end <= start:
                raise InvalidIntervalError("End time must be after start time")

            rescheduled = any(
                field in changes and changes[field] != getattr(existing, field)
                for field in RESCHEDULING_FIELDS
            )

            updated = CalendarEvent.model_validate(
                {**existing.model_dump(), **changes, "updated_at": self.clock()}
            )
            if rescheduled:
                updated.conflicts = self.detector.detect(updated, await self._snapshot())

            result = await store.update(updated)
            event = await self._persist(result, updated)

        logger.info("Updated event %s (conflicts recomputed=%s)", event.id, rescheduled)
        return event

    async def delete_event(self, event_id: str) -> None:
        """
        Delete an event.

        When the durable store cannot apply the delete, the id is tombstoned
        so the event disappears for callers right away.
        """
        async with self._lock:
            await self._flush_tombstones()
            store, _ = await self._locate(event_id)
            if store is self.fallback_store:
                await self.fallback_store.delete(event_id)
                # A durable copy exists when an earlier update fell back
                durable = await self.store.get(event_id)
                if durable.ok and durable.value is None:
                    logger.info("Deleted in-memory event %s", event_id)
                    return
                result = await self.store.delete(event_id) if durable.ok else durable
            else:
                result = await self.store.delete(event_id)

            if not result.ok:
                self._tombstones.add(event_id)
                logger.warning(
                    "Durable store unavailable, delete of event %s is pending: %s",
                    event_id,
                    result.error,
                )

        logger.info("Deleted event %s", event_id)

    async def get_event(self, event_id: str) -> Optional[CalendarEvent]:
        try:
            _, event = await self._locate(event_id)
        except EventNotFoundError:
            return None
        return event

    async def query_events(self, query: EventQuery) -> EventPage:
        """Filtered, start-ordered page of events from both stores."""
        if len(self.fallback_store) == 0 and not self._tombstones:
            result = await self.store.query(query, query.page, query.page_size)
            if result.ok:
                return result.value
            logger.warning("Durable query failed, serving fallback events: %s", result.error)

        matched = [e for e in await self._snapshot() if query.matches(e)]
        return EventPage(
            events=paginate(matched, query.page, query.page_size),
            total=len(matched),
            page=query.page,
            page_size=query.page_size,
        )

    async def redetect(self, event_id: str) -> List[ConflictInfo]:
        """Recompute an event's conflicts from scratch and store them."""
        async with self._lock:
            await self._flush_tombstones()
            store, existing = await self._locate(event_id)
            conflicts = self.detector.detect(existing, await self._snapshot())
            updated = existing.model_copy(update={"conflicts": conflicts})
            result = await store.update(updated)
            await self._persist(result, updated)
        return conflicts

    # ------------------------------------------------------------------
    # Scheduling proposals
    # ------------------------------------------------------------------

    async def suggest_optimal_times(
        self,
        request: SchedulingRequest,
        user_id: str = "default",
    ) -> SchedulingResult:
        """Top ranked free slots for a meeting, plus preparation suggestions."""
        validate_scheduling_request(request)

        preferences = await self.preferences.get(user_id)
        snapshot = await self._snapshot()
        available = self.slot_engine.find_available(
            request.duration,
            request.attendee_emails,
            request.constraints,
            snapshot,
            now=self.clock(),
            preferences=preferences,
        )

        return SchedulingResult(
            suggested_times=self.slot_engine.rank(available, request, preferences),
            conflicts=[],
            preparation_suggestions=preparation_suggestions(request),
        )
