"""
Calendar preference schemas.
"""
from datetime import time
from enum import Enum
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator


class CalendarViewType(str, Enum):
    DAY = "DAY"
    WEEK = "WEEK"
    MONTH = "MONTH"
    AGENDA = "AGENDA"
    YEAR = "YEAR"


class ReminderType(str, Enum):
    POPUP = "POPUP"
    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"


HHMM_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"


def parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


class TimeBreak(BaseModel):
    start_time: str = Field(pattern=HHMM_PATTERN)
    end_time: str = Field(pattern=HHMM_PATTERN)
    title: str = Field(min_length=1)


class DaySchedule(BaseModel):
    is_working_day: bool
    start_time: str = Field(default="09:00", pattern=HHMM_PATTERN)
    end_time: str = Field(default="17:00", pattern=HHMM_PATTERN)
    breaks: List[TimeBreak] = []


def _working_day() -> DaySchedule:
    return DaySchedule(is_working_day=True)


def _day_off() -> DaySchedule:
    return DaySchedule(is_working_day=False)


class WorkingHours(BaseModel):
    monday: DaySchedule = Field(default_factory=_working_day)
    tuesday: DaySchedule = Field(default_factory=_working_day)
    wednesday: DaySchedule = Field(default_factory=_working_day)
    thursday: DaySchedule = Field(default_factory=_working_day)
    friday: DaySchedule = Field(default_factory=_working_day)
    saturday: DaySchedule = Field(default_factory=_day_off)
    sunday: DaySchedule = Field(default_factory=_day_off)

    def for_weekday(self, weekday: int) -> DaySchedule:
        """Schedule for a Python weekday (0 = Monday)."""
        return getattr(self, WEEKDAY_NAMES[weekday])


WEEKDAY_NAMES = [
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
]


class ReminderSetting(BaseModel):
    type: ReminderType
    minutes: int = Field(ge=0)


class CalendarPreferences(BaseModel):
    default_view: CalendarViewType = CalendarViewType.WEEK
    working_hours: WorkingHours = Field(default_factory=WorkingHours)
    time_zone: str = "UTC"
    week_starts_on: int = Field(default=1, ge=0, le=6)  # 0 = Sunday, 1 = Monday
    show_weekends: bool = True
    default_event_duration: int = 60  # minutes
    reminder_defaults: List[ReminderSetting] = []

    @field_validator("time_zone")
    @classmethod
    def _check_time_zone(cls, value):
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown time zone: {value}") from None
        return value
