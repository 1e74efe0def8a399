"""
SQLAlchemy-backed event store.
"""
import logging
from typing import List, Optional

from sqlalchemy import select, func, and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bizcal.exceptions import EventNotFoundError, StorageUnavailable
from bizcal.models.calendar_event import CalendarEventRecord, EventAttendeeRecord
from bizcal.schemas.calendar import (
    Attendee,
    CalendarEvent,
    ConflictInfo,
    EventAISuggestions,
    EventPage,
    EventQuery,
    RecurrenceRule,
)
from bizcal.services.event_store import StorageResult

logger = logging.getLogger(__name__)

# Errors that mean the database could not be reached or used
STORAGE_ERRORS = (SQLAlchemyError, OSError)


def record_to_event(record: CalendarEventRecord) -> CalendarEvent:
    """Transform a database row into a CalendarEvent."""
    return CalendarEvent(
        id=record.id,
        title=record.title,
        description=record.description,
        location=record.location,
        start=record.start,
        end=record.end,
        is_all_day=record.is_all_day,
        type=record.type,
        priority=record.priority,
        status=record.status,
        organizer_id=record.organizer_id,
        attendees=[
            Attendee(
                id=a.id,
                user_id=a.user_id,
                email=a.email,
                name=a.name,
                status=a.status,
                is_optional=a.is_optional,
            )
            for a in record.attendees
        ],
        recurrence=RecurrenceRule.model_validate(record.recurrence) if record.recurrence else None,
        conflicts=[ConflictInfo.model_validate(c) for c in (record.conflicts or [])],
        ai_suggestions=(
            EventAISuggestions.model_validate(record.ai_suggestions)
            if record.ai_suggestions else None
        ),
        external_calendar_id=record.external_calendar_id,
        external_event_id=record.external_event_id,
        project_id=record.project_id,
        client_id=record.client_id,
        is_durable=True,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def apply_event(record: CalendarEventRecord, event: CalendarEvent) -> None:
    """Copy every field of an event onto a database row."""
    record.title = event.title
    record.description = event.description
    record.location = event.location
    record.start = event.start
    record.end = event.end
    record.is_all_day = event.is_all_day
    record.type = event.type.value
    record.priority = event.priority.value
    record.status = event.status.value
    record.organizer_id = event.organizer_id
    record.recurrence = event.recurrence.model_dump(mode="json") if event.recurrence else None
    record.conflicts = [c.model_dump(mode="json") for c in event.conflicts]
    record.ai_suggestions = (
        event.ai_suggestions.model_dump(mode="json") if event.ai_suggestions else None
    )
    record.external_calendar_id = event.external_calendar_id
    record.external_event_id = event.external_event_id
    record.project_id = event.project_id
    record.client_id = event.client_id
    record.created_at = event.created_at
    record.updated_at = event.updated_at
    # Reuse rows of attendees that stay so their primary keys are not reinserted
    existing = {row.id: row for row in record.attendees}
    rows = []
    for position, attendee in enumerate(event.attendees):
        row = existing.get(attendee.id) or EventAttendeeRecord(id=attendee.id)
        row.position = position
        row.user_id = attendee.user_id
        row.email = attendee.email
        row.name = attendee.name
        row.status = attendee.status.value
        row.is_optional = attendee.is_optional
        rows.append(row)
    record.attendees = rows


class SqlEventStore:
    """
    Event store persisted through an async SQLAlchemy session factory.

    Database failures come back as StorageResult failures; the session is
    rolled back and nothing partial is committed.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    def _failure(self, operation: str, error: BaseException) -> StorageResult:
        logger.warning("Event store %s failed: %s", operation, error)
        return StorageResult.failure(StorageUnavailable(operation, error))

    async def _load(self, db: AsyncSession, event_id: str) -> Optional[CalendarEventRecord]:
        result = await db.execute(
            select(CalendarEventRecord).where(CalendarEventRecord.id == event_id)
        )
        return result.scalar_one_or_none()

    async def create(self, event: CalendarEvent) -> StorageResult[CalendarEvent]:
        try:
            async with self.session_factory() as db:
                record = CalendarEventRecord(id=event.id)
                apply_event(record, event)
                db.add(record)
                await db.commit()
                return StorageResult.success(event.model_copy(update={"is_durable": True}))
        except STORAGE_ERRORS as e:
            return self._failure("create", e)

    async def update(self, event: CalendarEvent) -> StorageResult[CalendarEvent]:
        try:
            async with self.session_factory() as db:
                record = await self._load(db, event.id)
                if record is None:
                    raise EventNotFoundError(event.id)
                apply_event(record, event)
                await db.commit()
                return StorageResult.success(event.model_copy(update={"is_durable": True}))
        except STORAGE_ERRORS as e:
            return self._failure("update", e)

    async def delete(self, event_id: str) -> StorageResult[None]:
        try:
            async with self.session_factory() as db:
                record = await self._load(db, event_id)
                if record is None:
                    raise EventNotFoundError(event_id)
                await db.delete(record)
                await db.commit()
                return StorageResult.success()
        except STORAGE_ERRORS as e:
            return self._failure("delete", e)

    async def get(self, event_id: str) -> StorageResult[Optional[CalendarEvent]]:
        try:
            async with self.session_factory() as db:
                record = await self._load(db, event_id)
                return StorageResult.success(record_to_event(record) if record else None)
        except STORAGE_ERRORS as e:
            return self._failure("get", e)

    def _conditions(self, query: EventQuery) -> list:
        conditions = []

        if query.start is not None:
            conditions.append(CalendarEventRecord.end > query.start)
        if query.end is not None:
            conditions.append(CalendarEventRecord.start < query.end)
        if query.type is not None:
            conditions.append(CalendarEventRecord.type == query.type.value)
        if query.priority is not None:
            conditions.append(CalendarEventRecord.priority == query.priority.value)
        if query.status is not None:
            conditions.append(CalendarEventRecord.status == query.status.value)
        if query.project_id is not None:
            conditions.append(CalendarEventRecord.project_id == query.project_id)
        if query.client_id is not None:
            conditions.append(CalendarEventRecord.client_id == query.client_id)
        if query.attendee_email:
            conditions.append(
                CalendarEventRecord.attendees.any(
                    func.lower(EventAttendeeRecord.email) == query.attendee_email.lower()
                )
            )
        if query.search:
            term = f"%{query.search.lower()}%"
            conditions.append(
                or_(
                    func.lower(CalendarEventRecord.title).like(term),
                    func.lower(CalendarEventRecord.description).like(term),
                    func.lower(CalendarEventRecord.location).like(term),
                )
            )

        return conditions

    async def query(
        self,
        query: EventQuery,
        page: int = 1,
        page_size: int = 20,
    ) -> StorageResult[EventPage]:
        conditions = self._conditions(query)
        try:
            async with self.session_factory() as db:
                total = await db.scalar(
                    select(func.count()).select_from(CalendarEventRecord).where(and_(True, *conditions))
                )
                result = await db.execute(
                    select(CalendarEventRecord)
                    .where(and_(True, *conditions))
                    .order_by(CalendarEventRecord.start, CalendarEventRecord.id)
                    .offset((page - 1) * page_size)
                    .limit(page_size)
                )
                events = [record_to_event(r) for r in result.scalars().all()]
                return StorageResult.success(
                    EventPage(events=events, total=total or 0, page=page, page_size=page_size)
                )
        except STORAGE_ERRORS as e:
            return self._failure("query", e)

    async def snapshot(self) -> StorageResult[List[CalendarEvent]]:
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(CalendarEventRecord).order_by(
                        CalendarEventRecord.start, CalendarEventRecord.id
                    )
                )
                return StorageResult.success([record_to_event(r) for r in result.scalars().all()])
        except STORAGE_ERRORS as e:
            return self._failure("snapshot", e)
