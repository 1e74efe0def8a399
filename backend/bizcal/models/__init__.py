"""
SQLAlchemy models for the bizcal database.
"""
from bizcal.models.calendar_event import CalendarEventRecord, EventAttendeeRecord
from bizcal.models.preferences import CalendarPreferenceRecord

__all__ = [
    "CalendarEventRecord",
    "EventAttendeeRecord",
    "CalendarPreferenceRecord",
]
