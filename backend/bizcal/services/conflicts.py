"""
Conflict detection between a candidate event and the stored events.
"""
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Dict, List, Optional, Sequence

from bizcal.config import settings
from bizcal.schemas.calendar import (
    CalendarEvent,
    ConflictInfo,
    ConflictResolution,
    ConflictSeverity,
    ConflictType,
    EventPriority,
    ResolutionType,
)
from bizcal.services.slots import SlotSearchEngine

logger = logging.getLogger(__name__)

# (candidate, other) -> True when the pair conflicts
ConflictPredicate = Callable[[CalendarEvent, CalendarEvent], bool]

CONFLICT_TYPE_ORDER = list(ConflictType)


@dataclass
class ConflictPolicy:
    """Tunable constants of conflict detection."""

    back_to_back_buffer_minutes: int = 5
    resolution_buffer_minutes: int = 15
    severity_thresholds: Dict[ConflictSeverity, int] = field(
        default_factory=lambda: {
            ConflictSeverity.CRITICAL: 4,
            ConflictSeverity.HIGH: 3,
            ConflictSeverity.MEDIUM: 2,
        }
    )

    @classmethod
    def from_settings(cls) -> "ConflictPolicy":
        return cls(
            back_to_back_buffer_minutes=settings.back_to_back_buffer_minutes,
            resolution_buffer_minutes=settings.back_to_back_resolution_buffer_minutes,
            severity_thresholds={
                ConflictSeverity(name): weight
                for name, weight in settings.severity_thresholds.items()
            },
        )

    def severity_for(self, weight: int) -> ConflictSeverity:
        # Highest severity whose threshold is met
        for severity in sorted(self.severity_thresholds, reverse=True):
            if weight >= self.severity_thresholds[severity]:
                return severity
        return ConflictSeverity.LOW


def events_overlap(a: CalendarEvent, b: CalendarEvent) -> bool:
    return a.start < b.end and a.end > b.start


def events_back_to_back(a: CalendarEvent, b: CalendarEvent, buffer_minutes: int = 5) -> bool:
    """Gap between the two events, in either order, is below the buffer."""
    if events_overlap(a, b):
        return False
    buffer = timedelta(minutes=buffer_minutes)
    gap_after = b.start - a.end
    gap_before = a.start - b.end
    return (timedelta(0) <= gap_after < buffer) or (timedelta(0) <= gap_before < buffer)


def conflict_severity(
    a: CalendarEvent,
    b: CalendarEvent,
    policy: Optional[ConflictPolicy] = None,
) -> ConflictSeverity:
    """Higher priority events create more severe conflicts."""
    policy = policy or ConflictPolicy()
    weight = max(EventPriority(a.priority).weight, EventPriority(b.priority).weight)
    return policy.severity_for(weight)


class ConflictDetector:
    """
    Produces the conflict list of a candidate event.

    Detection is a pure function of the candidate and the snapshot it is
    given: running it twice on the same inputs yields the same list, and the
    result always replaces the event's previous conflicts.
    """

    def __init__(
        self,
        slot_engine: Optional[SlotSearchEngine] = None,
        policy: Optional[ConflictPolicy] = None,
        travel_time_predicate: Optional[ConflictPredicate] = None,
        workload_predicate: Optional[ConflictPredicate] = None,
    ):
        self.slot_engine = slot_engine or SlotSearchEngine()
        self.policy = policy or ConflictPolicy()
        self.extra_predicates: Dict[ConflictType, ConflictPredicate] = {}
        if travel_time_predicate is not None:
            self.extra_predicates[ConflictType.TRAVEL_TIME] = travel_time_predicate
        if workload_predicate is not None:
            self.extra_predicates[ConflictType.WORKLOAD] = workload_predicate

    def classify(self, candidate: CalendarEvent, other: CalendarEvent) -> List[ConflictType]:
        """Conflict types between two events, in ConflictType order."""
        found = []
        if events_overlap(candidate, other):
            found.append(ConflictType.OVERLAP)
        elif events_back_to_back(candidate, other, self.policy.back_to_back_buffer_minutes):
            found.append(ConflictType.BACK_TO_BACK)
        for conflict_type, predicate in self.extra_predicates.items():
            if predicate(candidate, other):
                found.append(conflict_type)
        return sorted(found, key=CONFLICT_TYPE_ORDER.index)

    def detect(
        self,
        candidate: CalendarEvent,
        events: Sequence[CalendarEvent],
    ) -> List[ConflictInfo]:
        conflicts: List[ConflictInfo] = []
        others = sorted(
            (e for e in events if e.id != candidate.id),
            key=lambda e: (e.start, e.id),
        )

        for other in others:
            for conflict_type in self.classify(candidate, other):
                conflicts.append(
                    ConflictInfo(
                        conflicting_event_id=other.id,
                        conflict_type=conflict_type,
                        severity=conflict_severity(candidate, other, self.policy),
                        suggested_resolution=self._resolution(
                            candidate, other, conflict_type, events
                        ),
                    )
                )

        logger.debug("Detected %d conflicts for event %s", len(conflicts), candidate.id)
        return conflicts

    def _resolution(
        self,
        candidate: CalendarEvent,
        other: CalendarEvent,
        conflict_type: ConflictType,
        events: Sequence[CalendarEvent],
    ) -> ConflictResolution:
        if conflict_type == ConflictType.OVERLAP:
            buffer = 0
            description = f'Reschedule to avoid conflict with "{other.title}"'
        elif conflict_type == ConflictType.BACK_TO_BACK:
            buffer = self.policy.resolution_buffer_minutes
            description = f'Add buffer time between this event and "{other.title}"'
        elif conflict_type == ConflictType.TRAVEL_TIME:
            buffer = self.policy.resolution_buffer_minutes
            description = f'Allow travel time to and from "{other.title}"'
        else:
            buffer = self.policy.resolution_buffer_minutes
            description = f'Reduce workload around "{other.title}"'

        return ConflictResolution(
            type=ResolutionType.RESCHEDULE,
            description=description,
            alternative_options=self.slot_engine.find_alternatives(candidate, events, buffer),
        )
