"""
Database engine and session factory for the SQL event store.

Only used when `settings.use_database` is enabled; the in-memory store needs
none of this.
"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from bizcal.config import settings


async_engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


async def create_tables(engine: AsyncEngine = async_engine) -> None:
    """Create the event and preference tables if they are missing."""
    # Registers the tables on Base.metadata
    import bizcal.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
