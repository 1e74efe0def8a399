"""
BizCal - business dashboard calendar engine
FastAPI Application Entry Point
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from bizcal.config import settings
from bizcal.database import AsyncSessionLocal, async_engine, create_tables
from bizcal.api import calendar, preferences
from bizcal.services.conflicts import ConflictDetector, ConflictPolicy
from bizcal.services.event_store import InMemoryEventStore
from bizcal.services.preferences import PreferenceManager
from bizcal.services.scheduling import SchedulingService
from bizcal.services.slots import SlotSearchEngine
from bizcal.services.sql_store import SqlEventStore
from bizcal.services.suggestions import build_suggestion_generator

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_scheduling_service() -> SchedulingService:
    """Wire the engine from settings."""
    slot_engine = SlotSearchEngine(
        alternatives_horizon_days=settings.alternatives_horizon_days,
        availability_horizon_days=settings.availability_horizon_days,
        max_alternatives=settings.max_alternatives,
        max_available=settings.max_available_slots,
        max_suggested=settings.max_suggested_times,
    )
    if settings.use_database:
        store = SqlEventStore(AsyncSessionLocal)
        preference_manager = PreferenceManager(AsyncSessionLocal)
    else:
        store = InMemoryEventStore(is_durable=True)
        preference_manager = PreferenceManager()

    return SchedulingService(
        store,
        preferences=preference_manager,
        detector=ConflictDetector(slot_engine, ConflictPolicy.from_settings()),
        slot_engine=slot_engine,
        suggestion_generator=build_suggestion_generator(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    if settings.use_database:
        await create_tables()
    app.state.scheduling = build_scheduling_service()
    logger.info("Scheduling engine ready (database=%s)", settings.use_database)
    yield
    # Shutdown
    if settings.use_database:
        await async_engine.dispose()


app = FastAPI(
    title="BizCal API",
    description="Calendar scheduling and conflict detection for the business dashboard",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",  # Vite dev server
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(calendar.router, prefix="/api/calendar", tags=["Calendar"])
app.include_router(preferences.router, prefix="/api/calendar/preferences", tags=["Preferences"])


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "healthy", "service": "BizCal API", "version": "1.0.0"}


@app.get("/health")
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "enabled" if settings.use_database else "in-memory",
        "anthropic_configured": bool(settings.anthropic_api_key),
        "ai_suggestions_enabled": settings.ai_suggestions_enabled,
    }
