"""
Calendar preference endpoints.
"""
from fastapi import APIRouter, Depends

from bizcal.api.deps import get_current_user_id, get_scheduling_service
from bizcal.schemas.preferences import CalendarPreferences
from bizcal.services.scheduling import SchedulingService

router = APIRouter()


@router.get("", response_model=CalendarPreferences)
async def get_preferences(
    service: SchedulingService = Depends(get_scheduling_service),
    user_id: str = Depends(get_current_user_id),
):
    """Get calendar preferences, defaults if none were saved."""
    return await service.preferences.get(user_id)


@router.put("", response_model=CalendarPreferences)
async def replace_preferences(
    preferences: CalendarPreferences,
    service: SchedulingService = Depends(get_scheduling_service),
    user_id: str = Depends(get_current_user_id),
):
    """Replace calendar preferences as a whole."""
    return await service.preferences.set(user_id, preferences)
