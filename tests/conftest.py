"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings isolation from the developer's shell and .env
    - Database Fixtures: in-memory SQLite engine, session and session factory
    - Cache Fixtures: Redis client mock
    - Feature Flag Fixtures: a fixed clock and sample drafts
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime
import fnmatch
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from flag_service.core.database.base import Base
from flag_service.core.settings import clear_all_caches
from flag_service.features.featureflags import models  # noqa: F401

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


# ============================================================================
# Environment
# ============================================================================


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Drop cached settings around every test so env changes take effect."""
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Async engine on a fresh in-memory SQLite database with all tables created.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine, configured like production."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Async session that is rolled back after the test.

    Example:
        async def test_create_flag(db_session):
            db_session.add(FeatureFlag(code="a", name="A"))
            await db_session.commit()
    """
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


# ============================================================================
# Cache Fixtures
# ============================================================================


@pytest.fixture
def mock_redis_client() -> AsyncMock:
    """In-memory stand-in for ``redis.asyncio.Redis``.

    Supports get/set/delete/scan_iter with the same return conventions as a
    client created with ``decode_responses=True``. ``storage`` and ``ttls``
    are exposed for assertions.
    """
    client = AsyncMock()
    storage: dict[str, Any] = {}
    ttls: dict[str, int | None] = {}

    async def mock_get(key: str) -> Any:
        return storage.get(key)

    async def mock_set(key: str, value: Any, ex: int | None = None) -> bool:
        storage[key] = value
        ttls[key] = ex
        return True

    async def mock_delete(*keys: str) -> int:
        deleted = 0
        for key in keys:
            if key in storage:
                del storage[key]
                ttls.pop(key, None)
                deleted += 1
        return deleted

    async def mock_scan_iter(match: str = "*", **_: Any):
        for key in list(storage):
            if fnmatch.fnmatchcase(key, match):
                yield key

    client.get.side_effect = mock_get
    client.set.side_effect = mock_set
    client.delete.side_effect = mock_delete
    client.scan_iter = mock_scan_iter
    client.storage = storage
    client.ttls = ttls
    return client


# ============================================================================
# Feature Flag Fixtures
# ============================================================================


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed evaluation instant."""
    return datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def user_targeting_payload() -> dict[str, Any]:
    """Serialized user targeting rule as stored at rest."""
    return {
        "type": "user_targeting",
        "whitelistedUsers": {"vip": True},
        "blacklistedUsers": {"banned": True},
        "targetedUserIds": ["u1", "u2"],
        "percentage": 73,
        "defaultValue": False,
    }
