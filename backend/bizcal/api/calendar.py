"""
Calendar endpoints for event management, conflicts and scheduling proposals.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import ValidationError

from bizcal.api.deps import get_current_user_id, get_scheduling_service
from bizcal.exceptions import (
    EventNotFoundError,
    InvalidIntervalError,
    SchedulingValidationError,
)
from bizcal.schemas.calendar import (
    CalendarEvent,
    ConflictInfo,
    EventChanges,
    EventCreate,
    EventPage,
    EventPriority,
    EventQuery,
    EventStatus,
    EventType,
    EventUpdate,
    SchedulingRequest,
    SchedulingResult,
)
from bizcal.services.scheduling import SchedulingService

router = APIRouter()


def not_found(error: EventNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))


def unprocessable(error: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(error))


@router.get("/events", response_model=EventPage)
async def list_events(
    start: Optional[datetime] = Query(None, description="Window start (ISO format)"),
    end: Optional[datetime] = Query(None, description="Window end (ISO format)"),
    type: Optional[EventType] = None,
    priority: Optional[EventPriority] = None,
    event_status: Optional[EventStatus] = Query(None, alias="status"),
    project_id: Optional[str] = None,
    client_id: Optional[str] = None,
    attendee_email: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """List events overlapping a window, filtered and paginated by start time."""
    query = EventQuery(
        start=start,
        end=end,
        type=type,
        priority=priority,
        status=event_status,
        project_id=project_id,
        client_id=client_id,
        attendee_email=attendee_email,
        search=search,
        page=page,
        page_size=page_size,
    )
    return await service.query_events(query)


@router.post("/events", response_model=CalendarEvent, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    service: SchedulingService = Depends(get_scheduling_service),
    user_id: str = Depends(get_current_user_id),
):
    """Create an event; detected conflicts are attached to the response."""
    try:
        return await service.create_event(event_data, user_id)
    except InvalidIntervalError as e:
        raise unprocessable(e)


@router.get("/events/{event_id}", response_model=CalendarEvent)
async def get_event(
    event_id: str,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Get a single event by ID."""
    event = await service.get_event(event_id)
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event


@router.patch("/events/{event_id}", response_model=CalendarEvent)
async def update_event(
    event_id: str,
    event_data: EventChanges,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Update a calendar event."""
    try:
        update = EventUpdate(id=event_id, **event_data.model_dump(exclude_unset=True))
        return await service.update_event(update)
    except EventNotFoundError as e:
        raise not_found(e)
    except (InvalidIntervalError, ValidationError) as e:
        raise unprocessable(e)


@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: str,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Delete a calendar event."""
    try:
        await service.delete_event(event_id)
    except EventNotFoundError as e:
        raise not_found(e)


@router.post("/events/{event_id}/conflicts", response_model=List[ConflictInfo])
async def redetect_conflicts(
    event_id: str,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Recompute and store an event's conflicts."""
    try:
        return await service.redetect(event_id)
    except EventNotFoundError as e:
        raise not_found(e)


@router.post("/schedule/suggest", response_model=SchedulingResult)
async def suggest_times(
    request: SchedulingRequest,
    service: SchedulingService = Depends(get_scheduling_service),
    user_id: str = Depends(get_current_user_id),
):
    """Propose ranked meeting times."""
    try:
        return await service.suggest_optimal_times(request, user_id)
    except SchedulingValidationError as e:
        raise unprocessable(e)
