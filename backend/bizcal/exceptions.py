"""
Error kinds raised by the scheduling engine.
"""
from typing import Optional


class SchedulingError(Exception):
    """Base class for scheduling engine errors."""


class EventNotFoundError(SchedulingError):
    """Update or delete target does not exist."""

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(f"Event '{event_id}' not found")


class InvalidIntervalError(SchedulingError, ValueError):
    """End of an event or slot is not after its start."""


class SchedulingValidationError(SchedulingError, ValueError):
    """Malformed scheduling request."""


class StorageUnavailable(SchedulingError):
    """
    The persistence collaborator failed.

    Returned inside a StorageResult rather than raised, so the facade can
    branch on it explicitly.
    """

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Storage unavailable during {operation}{detail}")
