"""Wiring of a ready-to-use :class:`~.service.FlagRegistry` from settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from flag_service.core.database.session import build_engine, build_session_factory
from flag_service.core.settings import get_featureflag_settings

from .cache import RedisFlagCache
from .notifier import SlackNotifier, SlackNotifierConfig
from .service import FlagRegistry
from .store import SQLAlchemyFlagStore

if TYPE_CHECKING:
    import httpx
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from flag_service.core.settings import FeatureFlagSettings
    from flag_service.infra.cache import RedisCache

logger = logging.getLogger(__name__)


def build_registry(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    redis_cache: RedisCache | None = None,
    settings: FeatureFlagSettings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FlagRegistry:
    """Build a registry backed by the database, Redis and Slack as configured.

    Args:
        session_factory: Session factory for the flag store. Built from
            ``PostgresSettings`` when omitted.
        redis_cache: Connected Redis client. The registry runs without a cache
            when omitted or when ``cache_enabled`` is off.
        settings: Feature flag settings, the cached environment settings by default.
        http_client: Shared client for Slack notifications.

    Returns:
        The wired registry.

    Example:
        redis_cache = RedisCache()
        await redis_cache.connect()
        registry = build_registry(redis_cache=redis_cache)
    """
    settings = settings or get_featureflag_settings()

    if session_factory is None:
        session_factory = build_session_factory(build_engine())

    cache = None
    if settings.cache_enabled and redis_cache is not None:
        cache = RedisFlagCache(redis_cache, keyspace=settings.cache_keyspace)

    notifier = None
    if settings.notifications_enabled:
        notifier = SlackNotifier(SlackNotifierConfig.from_settings(settings), client=http_client)

    logger.info(
        "Feature flag registry configured",
        extra={
            "cache_enabled": cache is not None,
            "notifications_enabled": notifier is not None,
            "cache_ttl": settings.cache_ttl,
            "operation": "featureflags.build_registry",
        },
    )
    return FlagRegistry(
        SQLAlchemyFlagStore(session_factory),
        cache=cache,
        notifier=notifier,
        cache_ttl=settings.cache_ttl,
        default_page_size=settings.default_page_size,
    )


__all__ = ["build_registry"]
