"""
Scheduling engine services.
"""
from bizcal.services.event_store import EventStore, InMemoryEventStore, StorageResult
from bizcal.services.sql_store import SqlEventStore
from bizcal.services.preferences import PreferenceManager
from bizcal.services.slots import SlotSearchEngine
from bizcal.services.conflicts import ConflictDetector, ConflictPolicy
from bizcal.services.suggestions import (
    SuggestionGenerator,
    RuleBasedSuggestionGenerator,
    ClaudeSuggestionGenerator,
)
from bizcal.services.scheduling import SchedulingService

__all__ = [
    "EventStore",
    "InMemoryEventStore",
    "StorageResult",
    "SqlEventStore",
    "PreferenceManager",
    "SlotSearchEngine",
    "ConflictDetector",
    "ConflictPolicy",
    "SuggestionGenerator",
    "RuleBasedSuggestionGenerator",
    "ClaudeSuggestionGenerator",
    "SchedulingService",
]
