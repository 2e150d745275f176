"""Async engine and session factory construction."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from flag_service.core.settings import get_db_settings

from .base import Base

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncEngine

    from flag_service.core.settings import PostgresSettings

logger = logging.getLogger(__name__)


def build_engine(settings: PostgresSettings | None = None) -> AsyncEngine:
    """Create an async engine from database settings.

    Args:
        settings: Database settings, defaults to the cached environment settings.

    Returns:
        Configured AsyncEngine.
    """
    settings = settings or get_db_settings()
    engine = create_async_engine(settings.url, **settings.sqlalchemy_engine_kwargs())
    logger.debug(
        "Database engine created",
        extra={"db_host": settings.host, "db_name": settings.name, "sqlite": settings.is_sqlite},
    )
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory used by repositories and stores."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Provide a transactional scope around a series of operations.

    Commits on success, rolls back and re-raises on error.

    Example:
        async with session_scope(factory) as session:
            session.add(flag)
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_database(engine: AsyncEngine, *, create_tables: bool = False) -> None:
    """Verify connectivity and optionally create tables.

    ``create_tables`` is meant for SQLite and throwaway databases; production
    schemas are managed by Alembic.
    """
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if create_tables:
            await conn.run_sync(Base.metadata.create_all)
    logger.info("Database connection verified", extra={"create_tables": create_tables})


async def close_database(engine: AsyncEngine) -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()
    logger.info("Database connections closed")


__all__ = [
    "build_engine",
    "build_session_factory",
    "close_database",
    "init_database",
    "session_scope",
]
