"""
Slot search engine: alternative slots, available slots and slot scoring.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Iterator, List, Optional, Sequence
from zoneinfo import ZoneInfo

from bizcal.schemas.calendar import (
    CalendarEvent,
    SchedulingConstraints,
    SchedulingRequest,
    TimeSlot,
    ensure_utc,
)
from bizcal.schemas.preferences import CalendarPreferences, parse_hhmm

logger = logging.getLogger(__name__)

ALTERNATIVE_CONFIDENCE = 0.8
ALTERNATIVE_REASON = "Available time slot"
AVAILABLE_CONFIDENCE = 0.7
AVAILABLE_REASON = "Available during working hours"

WORKING_HOUR_START = 9
WORKING_HOUR_END = 17


def overlaps(start: datetime, end: datetime, event: CalendarEvent) -> bool:
    """Half-open interval intersection; touching endpoints do not overlap."""
    return start < event.end and end > event.start


def is_free(
    start: datetime,
    end: datetime,
    events: Iterable[CalendarEvent],
    exclude_id: Optional[str] = None,
) -> bool:
    for event in events:
        if exclude_id is not None and event.id == exclude_id:
            continue
        if overlaps(start, end, event):
            return False
    return True


def at_time(local: datetime, hhmm: str) -> datetime:
    """Same local day as `local`, at the given HH:MM."""
    moment = parse_hhmm(hhmm)
    return local.replace(hour=moment.hour, minute=moment.minute, second=0, microsecond=0)


def ceil_to_hour(moment: datetime) -> datetime:
    floored = moment.replace(minute=0, second=0, microsecond=0)
    return floored if floored == moment else floored + timedelta(hours=1)


class SlotSearchEngine:
    """
    Generates and scores candidate time windows.

    Both searches walk a bounded horizon at a fixed step and check each
    window against a snapshot of stored events, so they always terminate.
    """

    def __init__(
        self,
        alternatives_horizon_days: int = 7,
        availability_horizon_days: int = 30,
        max_alternatives: int = 3,
        max_available: int = 10,
        max_suggested: int = 5,
        step: timedelta = timedelta(hours=1),
    ):
        self.alternatives_horizon = timedelta(days=alternatives_horizon_days)
        self.availability_horizon = timedelta(days=availability_horizon_days)
        self.max_alternatives = max_alternatives
        self.max_available = max_available
        self.max_suggested = max_suggested
        self.step = step

    def _walk(self, start: datetime, horizon: timedelta) -> Iterator[datetime]:
        current = start
        end = start + horizon
        while current < end:
            yield current
            current += self.step

    def find_alternatives(
        self,
        event: CalendarEvent,
        events: Sequence[CalendarEvent],
        buffer_minutes: int = 0,
    ) -> List[TimeSlot]:
        """
        Find up to three free windows of the event's duration in the week
        after its start.

        A candidate start t is free when nothing overlaps
        [t - buffer, t + duration + buffer), so the buffer is kept clear before
        and after the window. This is stricter than checking a trailing buffer
        only. The slot returned is [t, t + duration]. The event's own stored
        copy is ignored.
        """
        duration = event.end - event.start
        buffer = timedelta(minutes=buffer_minutes)
        alternatives: List[TimeSlot] = []

        for start in self._walk(event.start, self.alternatives_horizon):
            end = start + duration
            if is_free(start - buffer, end + buffer, events, exclude_id=event.id):
                alternatives.append(
                    TimeSlot(
                        start=start,
                        end=end,
                        confidence=ALTERNATIVE_CONFIDENCE,
                        reason=ALTERNATIVE_REASON,
                    )
                )
                if len(alternatives) >= self.max_alternatives:
                    break

        return alternatives

    def find_available(
        self,
        duration_minutes: int,
        attendee_emails: Sequence[str],
        constraints: Optional[SchedulingConstraints],
        events: Sequence[CalendarEvent],
        now: Optional[datetime] = None,
        preferences: Optional[CalendarPreferences] = None,
    ) -> List[TimeSlot]:
        """
        Find up to ten free windows in the next 30 days.

        Candidates start on whole hours. Constraints, when given, filter the
        candidate stream before the overlap check.
        """
        now = ensure_utc(now) if now else datetime.now(timezone.utc)
        preferences = preferences or CalendarPreferences()
        duration = timedelta(minutes=duration_minutes)
        emails = {email.lower() for email in attendee_emails}
        attendee_events = [
            e for e in events if any(a.email.lower() in emails for a in e.attendees)
        ]
        slots: List[TimeSlot] = []

        for start in self._walk(ceil_to_hour(now), self.availability_horizon):
            end = start + duration
            if constraints and not self._satisfies(start, end, now, constraints, preferences):
                continue
            if not is_free(start, end, attendee_events):
                continue
            if not is_free(start, end, events):
                continue
            slots.append(
                TimeSlot(
                    start=start,
                    end=end,
                    confidence=AVAILABLE_CONFIDENCE,
                    reason=AVAILABLE_REASON,
                )
            )
            if len(slots) >= self.max_available:
                break

        logger.debug("Found %d available slots of %d minutes", len(slots), duration_minutes)
        return slots

    def _satisfies(
        self,
        start: datetime,
        end: datetime,
        now: datetime,
        constraints: SchedulingConstraints,
        preferences: CalendarPreferences,
    ) -> bool:
        if start < now + timedelta(hours=constraints.minimum_notice):
            return False
        if start > now + timedelta(days=constraints.maximum_advance):
            return False

        tz = ZoneInfo(preferences.time_zone)
        local_start = start.astimezone(tz)
        local_end = end.astimezone(tz)
        weekday = local_start.weekday()

        if not constraints.allow_weekends and weekday >= 5:
            return False

        if constraints.preferred_days_of_week is not None:
            # Sunday-based numbering, 0 = Sunday
            if (weekday + 1) % 7 not in constraints.preferred_days_of_week:
                return False

        if constraints.must_be_within_working_hours:
            if not self._within_working_hours(local_start, local_end, preferences):
                return False

        for avoided in constraints.avoid_time_slots or []:
            if avoided.overlaps(start, end):
                return False

        return True

    def _within_working_hours(
        self,
        local_start: datetime,
        local_end: datetime,
        preferences: CalendarPreferences,
    ) -> bool:
        if local_end.date() != local_start.date():
            return False

        day = preferences.working_hours.for_weekday(local_start.weekday())
        if not day.is_working_day:
            return False

        if local_start < at_time(local_start, day.start_time):
            return False
        if local_end > at_time(local_start, day.end_time):
            return False

        for pause in day.breaks:
            pause_start = at_time(local_start, pause.start_time)
            pause_end = at_time(local_start, pause.end_time)
            if local_start < pause_end and local_end > pause_start:
                return False

        return True

    def score(
        self,
        slot: TimeSlot,
        request: Optional[SchedulingRequest],
        preferences: Optional[CalendarPreferences],
    ) -> float:
        """Score a time slot: working hours and weekdays are preferred."""
        tz = ZoneInfo(preferences.time_zone) if preferences else timezone.utc
        local_start = slot.start.astimezone(tz)

        score = 0.5  # Base score

        if WORKING_HOUR_START <= local_start.hour <= WORKING_HOUR_END:
            score += 0.3

        if local_start.weekday() < 5:
            score += 0.2

        return max(0.0, min(score, 1.0))

    def rank(
        self,
        slots: Sequence[TimeSlot],
        request: Optional[SchedulingRequest],
        preferences: Optional[CalendarPreferences],
    ) -> List[TimeSlot]:
        """Re-score slots and return the best ones, earliest first on ties."""
        scored = [
            slot.model_copy(update={"confidence": self.score(slot, request, preferences)})
            for slot in slots
        ]
        scored.sort(key=lambda s: s.confidence, reverse=True)
        return scored[:self.max_suggested]
