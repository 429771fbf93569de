"""
Database configuration.

Async SQLAlchemy engine and session factory for the local event store.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from turbine_tracker.config.settings import settings
from turbine_tracker.models import Base


def create_engine(database_url: str | None = None) -> AsyncEngine:
    """Create an async engine for the configured (or given) database."""
    return create_async_engine(
        database_url or settings.database_url,
        echo=settings.database_echo,
    )


def create_session_maker(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create a session maker bound to the engine."""
    if engine is None:
        engine = create_engine()
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_database(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    logger.debug("[DB] Tables ready")

