"""Async engine and session factory construction.

Nothing here is created at import time: the application lifespan builds
one engine and one ``async_sessionmaker`` and hands them to the pipeline,
and tests build their own against a temporary SQLite file.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from delivery_service.core.database.base import Base

if TYPE_CHECKING:
    from delivery_service.core.settings.database import DatabaseSettings

logger = logging.getLogger(__name__)


def build_engine(settings: DatabaseSettings) -> AsyncEngine:
    """Create the async engine described by ``settings``."""
    engine = create_async_engine(settings.database_url, **settings.engine_kwargs())
    logger.info(
        "Database engine created",
        extra={"dialect": engine.dialect.name, "pool": type(engine.pool).__name__},
    )
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used for every unit of work.

    ``expire_on_commit=False`` keeps committed rows readable after the
    session closes, which the services rely on when returning models.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_database(engine: AsyncEngine, *, create_tables: bool = False) -> None:
    """Verify connectivity and optionally create tables.

    Args:
        engine: Engine to check.
        create_tables: Run ``Base.metadata.create_all``; existing tables
            are left untouched.
    """
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if create_tables:
            await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized", extra={"create_tables": create_tables})


async def close_database(engine: AsyncEngine) -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()
    logger.info("Database connections closed")
