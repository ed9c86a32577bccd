"""
Database connection and session management (SQLAlchemy 2.0 async).

The engine is created once at application startup by init_db() and
disposed by close_db(). SQLite (aiosqlite) is the default backend.
"""

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from speaking_coach.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory whose objects stay usable after commit."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables registered on Base.metadata."""
    from speaking_coach.models import AnalysisRecord  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db(settings: Settings) -> None:
    """
    Initialize the global engine and session factory.

    Args:
        settings: Application settings with database_url
    """
    global _engine, _session_maker

    _engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    _session_maker = create_session_maker(_engine)

    if settings.auto_create_db_schema:
        await create_schema(_engine)
        logger.info("Database schema ensured")


async def close_db() -> None:
    """Dispose the global engine."""
    global _engine, _session_maker

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_maker = None


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """
    Get the global session factory.

    Raises:
        RuntimeError: If init_db() has not been called
    """
    if _session_maker is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_maker
