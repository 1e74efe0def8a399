"""
Shared dependencies for API routes.
"""
from fastapi import Header, Request

from bizcal.services.scheduling import SchedulingService

DEFAULT_USER_ID = "default-user"


def get_scheduling_service(request: Request) -> SchedulingService:
    """Scheduling service built at startup and kept on the application."""
    return request.app.state.scheduling


def get_current_user_id(x_user_id: str = Header(default=DEFAULT_USER_ID)) -> str:
    """Caller identity; authentication happens upstream of this service."""
    return x_user_id
