"""
Pydantic schemas for the scheduling engine and its API.
"""
from bizcal.schemas.calendar import (
    Attendee,
    AttendeeInput,
    AttendeeStatus,
    CalendarEvent,
    ConflictInfo,
    ConflictResolution,
    ConflictSeverity,
    ConflictType,
    EventAISuggestions,
    EventChanges,
    EventCreate,
    EventPage,
    EventPriority,
    EventQuery,
    EventStatus,
    EventType,
    EventUpdate,
    RecurrenceFrequency,
    RecurrenceRule,
    ResolutionType,
    SchedulingConstraints,
    SchedulingRequest,
    SchedulingResult,
    TimeSlot,
)
from bizcal.schemas.preferences import (
    CalendarPreferences,
    CalendarViewType,
    DaySchedule,
    ReminderSetting,
    ReminderType,
    TimeBreak,
    WorkingHours,
)

__all__ = [
    # Calendar
    "Attendee",
    "AttendeeInput",
    "AttendeeStatus",
    "CalendarEvent",
    "ConflictInfo",
    "ConflictResolution",
    "ConflictSeverity",
    "ConflictType",
    "EventAISuggestions",
    "EventChanges",
    "EventCreate",
    "EventPage",
    "EventPriority",
    "EventQuery",
    "EventStatus",
    "EventType",
    "EventUpdate",
    "RecurrenceFrequency",
    "RecurrenceRule",
    "ResolutionType",
    "SchedulingConstraints",
    "SchedulingRequest",
    "SchedulingResult",
    "TimeSlot",
    # Preferences
    "CalendarPreferences",
    "CalendarViewType",
    "DaySchedule",
    "ReminderSetting",
    "ReminderType",
    "TimeBreak",
    "WorkingHours",
]
