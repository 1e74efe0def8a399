"""
Calendar event, conflict and scheduling schemas.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator, model_validator

from bizcal.exceptions import InvalidIntervalError


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so every instant is comparable."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class EventType(str, Enum):
    MEETING = "MEETING"
    APPOINTMENT = "APPOINTMENT"
    TASK = "TASK"
    REMINDER = "REMINDER"
    DEADLINE = "DEADLINE"
    PERSONAL = "PERSONAL"
    TRAVEL = "TRAVEL"
    BREAK = "BREAK"


class EventPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @property
    def weight(self) -> int:
        return _PRIORITY_WEIGHTS[self]


_PRIORITY_WEIGHTS = {
    EventPriority.LOW: 1,
    EventPriority.MEDIUM: 2,
    EventPriority.HIGH: 3,
    EventPriority.URGENT: 4,
}


class EventStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    TENTATIVE = "TENTATIVE"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class AttendeeStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    TENTATIVE = "TENTATIVE"


class RecurrenceFrequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class ConflictType(str, Enum):
    OVERLAP = "OVERLAP"
    BACK_TO_BACK = "BACK_TO_BACK"
    TRAVEL_TIME = "TRAVEL_TIME"
    WORKLOAD = "WORKLOAD"


class ConflictSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return list(ConflictSeverity).index(self)

    def __lt__(self, other):
        if isinstance(other, ConflictSeverity):
            return self.rank < other.rank
        return NotImplemented

    def __le__(self, other):
        if isinstance(other, ConflictSeverity):
            return self.rank <= other.rank
        return NotImplemented

    def __gt__(self, other):
        if isinstance(other, ConflictSeverity):
            return self.rank > other.rank
        return NotImplemented

    def __ge__(self, other):
        if isinstance(other, ConflictSeverity):
            return self.rank >= other.rank
        return NotImplemented


class ResolutionType(str, Enum):
    RESCHEDULE = "RESCHEDULE"
    SHORTEN = "SHORTEN"
    SPLIT = "SPLIT"
    DELEGATE = "DELEGATE"
    CANCEL = "CANCEL"


class Attendee(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: Optional[str] = None
    email: str
    name: str
    status: AttendeeStatus = AttendeeStatus.PENDING
    is_optional: bool = False


class RecurrenceRule(BaseModel):
    frequency: RecurrenceFrequency
    interval: int = Field(default=1, ge=1)
    end_date: Optional[datetime] = None
    count: Optional[int] = Field(default=None, ge=1)
    by_week_day: Optional[List[int]] = None  # 0 = Sunday
    by_month_day: Optional[List[int]] = None

    @field_validator("by_week_day")
    @classmethod
    def _check_week_days(cls, value):
        if value is not None and any(day < 0 or day > 6 for day in value):
            raise ValueError("by_week_day entries must be between 0 and 6")
        return value

    @field_validator("by_month_day")
    @classmethod
    def _check_month_days(cls, value):
        if value is not None and any(day < 1 or day > 31 for day in value):
            raise ValueError("by_month_day entries must be between 1 and 31")
        return value


class TimeSlot(BaseModel):
    start: datetime
    end: datetime
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str

    class Config:
        frozen = True

    @field_validator("start", "end")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_interval(self):
        if self.end < self.start:
            raise InvalidIntervalError("Slot end must not be before its start")
        return self

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and self.end > start


class ConflictResolution(BaseModel):
    type: ResolutionType
    description: str
    new_start: Optional[datetime] = None
    new_end: Optional[datetime] = None
    alternative_options: List[TimeSlot] = []

    class Config:
        frozen = True


class ConflictInfo(BaseModel):
    # Identifier only; resolve through the event store when needed.
    conflicting_event_id: str
    conflict_type: ConflictType
    severity: ConflictSeverity
    suggested_resolution: Optional[ConflictResolution] = None

    class Config:
        frozen = True


class EventAISuggestions(BaseModel):
    optimal_times: List[TimeSlot] = []
    conflict_resolutions: List[ConflictResolution] = []
    preparation_items: List[str] = []
    related_documents: List[str] = []
    travel_time_estimate: Optional[int] = Field(default=None, ge=0)  # minutes


class CalendarEvent(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str = Field(min_length=1)
    description: Optional[str] = None
    location: Optional[str] = None
    start: datetime
    end: datetime
    is_all_day: bool = False
    type: EventType = EventType.MEETING
    priority: EventPriority = EventPriority.MEDIUM
    status: EventStatus = EventStatus.CONFIRMED
    organizer_id: str
    attendees: List[Attendee] = []
    recurrence: Optional[RecurrenceRule] = None
    conflicts: List[ConflictInfo] = []
    ai_suggestions: Optional[EventAISuggestions] = None

    # External calendar linkage (stored, never synced here)
    external_calendar_id: Optional[str] = None
    external_event_id: Optional[str] = None

    # Dashboard linkage
    project_id: Optional[str] = None
    client_id: Optional[str] = None

    # False when the event only lives in the in-memory fallback store
    is_durable: bool = True

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("start", "end", "created_at", "updated_at")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_interval(self):
        if self.end <= self.start:
            raise InvalidIntervalError("End time must be after start time")
        return self

    @property
    def duration_minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60


class AttendeeInput(BaseModel):
    email: str
    name: str = Field(min_length=1)
    is_optional: bool = False


class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    start: datetime
    end: datetime
    location: Optional[str] = Field(default=None, max_length=200)
    is_all_day: bool = False
    type: EventType = EventType.MEETING
    priority: EventPriority = EventPriority.MEDIUM
    attendees: List[AttendeeInput] = []
    recurrence: Optional[RecurrenceRule] = None
    project_id: Optional[str] = None
    client_id: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_interval(self):
        if self.end <= self.start:
            raise InvalidIntervalError("End time must be after start time")
        return self


class EventChanges(BaseModel):
    """Partial update; only fields that are set are applied."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    location: Optional[str] = Field(default=None, max_length=200)
    is_all_day: Optional[bool] = None
    type: Optional[EventType] = None
    priority: Optional[EventPriority] = None
    status: Optional[EventStatus] = None
    attendees: Optional[List[AttendeeInput]] = None
    recurrence: Optional[RecurrenceRule] = None
    project_id: Optional[str] = None
    client_id: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def _to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None


class EventUpdate(EventChanges):
    id: str


class EventQuery(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    type: Optional[EventType] = None
    priority: Optional[EventPriority] = None
    status: Optional[EventStatus] = None
    project_id: Optional[str] = None
    client_id: Optional[str] = None
    attendee_email: Optional[str] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)

    @field_validator("start", "end")
    @classmethod
    def _to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    def matches(self, event: CalendarEvent) -> bool:
        """Apply every filter except pagination to a single event."""
        if self.start is not None and event.end <= self.start:
            return False
        if self.end is not None and event.start >= self.end:
            return False
        if self.type is not None and event.type != self.type:
            return False
        if self.priority is not None and event.priority != self.priority:
            return False
        if self.status is not None and event.status != self.status:
            return False
        if self.project_id is not None and event.project_id != self.project_id:
            return False
        if self.client_id is not None and event.client_id != self.client_id:
            return False
        if self.attendee_email:
            email = self.attendee_email.lower()
            if not any(a.email.lower() == email for a in event.attendees):
                return False
        if self.search:
            term = self.search.lower()
            haystacks = [event.title, event.description or "", event.location or ""]
            if not any(term in text.lower() for text in haystacks):
                return False
        return True


class EventPage(BaseModel):
    events: List[CalendarEvent]
    total: int
    page: int = 1
    page_size: int = 20


class SchedulingConstraints(BaseModel):
    must_be_within_working_hours: bool = True
    allow_weekends: bool = False
    minimum_notice: float = Field(default=1, ge=0)  # hours
    maximum_advance: int = Field(default=90, ge=1)  # days
    preferred_days_of_week: Optional[List[int]] = None  # 0 = Sunday
    avoid_time_slots: Optional[List[TimeSlot]] = None


class SchedulingRequest(BaseModel):
    """
    Request for proposed meeting times.

    Range checks on duration and attendees are enforced by the scheduling
    service so they surface as SchedulingValidationError.
    """
    title: str = Field(min_length=1)
    duration: int  # minutes
    attendee_emails: List[str]
    preferred_times: Optional[List[TimeSlot]] = None
    constraints: Optional[SchedulingConstraints] = None
    priority: EventPriority = EventPriority.MEDIUM


class SchedulingResult(BaseModel):
    suggested_times: List[TimeSlot]
    conflicts: List[ConflictInfo] = []
    preparation_suggestions: List[str] = []
