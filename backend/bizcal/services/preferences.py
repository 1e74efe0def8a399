"""
Per-user calendar preferences with an optional database backing.
"""
import logging
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bizcal.models.preferences import CalendarPreferenceRecord
from bizcal.schemas.preferences import CalendarPreferences
from bizcal.services.sql_store import STORAGE_ERRORS

logger = logging.getLogger(__name__)


def default_preferences() -> CalendarPreferences:
    """Mon-Fri 09:00-17:00, weekends off, UTC, week starts Monday, 60 minute events."""
    return CalendarPreferences()


class PreferenceManager:
    """
    Holds calendar preferences per user.

    Reads are served from a per-user cache; a write replaces the whole
    preference object (last write wins). When a session factory is given the
    preferences are also persisted, one JSON row per user.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self.session_factory = session_factory
        self._cache: Dict[str, CalendarPreferences] = {}

    async def get(self, user_id: str) -> CalendarPreferences:
        cached = self._cache.get(user_id)
        if cached is not None:
            return cached.model_copy(deep=True)

        preferences = await self._load(user_id) or default_preferences()
        self._cache[user_id] = preferences
        return preferences.model_copy(deep=True)

    async def set(self, user_id: str, preferences: CalendarPreferences) -> CalendarPreferences:
        stored = preferences.model_copy(deep=True)
        self._cache[user_id] = stored
        await self._save(user_id, stored)
        return stored.model_copy(deep=True)

    async def _load(self, user_id: str) -> Optional[CalendarPreferences]:
        if self.session_factory is None:
            return None
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(CalendarPreferenceRecord).where(
                        CalendarPreferenceRecord.user_id == user_id
                    )
                )
                record = result.scalar_one_or_none()
        except STORAGE_ERRORS as e:
            logger.warning("Could not load preferences for %s, using defaults: %s", user_id, e)
            return None
        if record is None:
            return None
        return CalendarPreferences.model_validate(record.value)

    async def _save(self, user_id: str, preferences: CalendarPreferences) -> None:
        if self.session_factory is None:
            return
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(CalendarPreferenceRecord).where(
                        CalendarPreferenceRecord.user_id == user_id
                    )
                )
                record = result.scalar_one_or_none()
                value = preferences.model_dump(mode="json")
                if record:
                    record.value = value
                else:
                    db.add(CalendarPreferenceRecord(user_id=user_id, value=value))
                await db.commit()
        except STORAGE_ERRORS as e:
            # The cached copy stays authoritative for this process
            logger.warning("Could not persist preferences for %s: %s", user_id, e)
