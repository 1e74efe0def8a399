"""
API routers for bizcal.
"""
from bizcal.api import calendar, preferences

__all__ = [
    "calendar",
    "preferences",
]
