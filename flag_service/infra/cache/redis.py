"""Async Redis client used by the flag cache.

A thin layer over ``redis.asyncio``: pooled connections from
``RedisSettings``, the global key prefix, JSON values and a latency
histogram per operation. Redis errors reach the caller unchanged.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any, cast

from opentelemetry import trace
from redis.asyncio import ConnectionPool, Redis

from flag_service.core.settings import get_redis_settings
from flag_service.infra.metrics.prometheus import cache_operation_duration_seconds

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from flag_service.core.settings import RedisSettings

logger = logging.getLogger(__name__)

_CACHE_NAME = "redis"


def _observe(operation: str, seconds: float) -> None:
    histogram = cache_operation_duration_seconds.labels(operation=operation, cache_name=_CACHE_NAME)
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        histogram.observe(seconds, exemplar={"trace_id": format(ctx.trace_id, "032x")})
    else:
        histogram.observe(seconds)


async def _run[R](operation: str, call: Awaitable[R]) -> R:
    started = time.perf_counter()
    try:
        return await call
    finally:
        _observe(operation, time.perf_counter() - started)


class RedisCache:
    """Connection owner and JSON get/set helpers.

    Example:
        cache = RedisCache()
        await cache.connect()
        await cache.set("flags:new_checkout", {"enabled": True}, ttl=600)
        await cache.get("flags:new_checkout")
        await cache.disconnect()

    A pre-built ``redis.asyncio.Redis`` client may be passed instead of
    calling ``connect()``; it must decode responses to ``str``.
    """

    def __init__(self, settings: RedisSettings | None = None, *, client: Redis | None = None) -> None:
        self._settings = settings or get_redis_settings()
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = client

    async def connect(self) -> None:
        """Build the pool and ping the server.

        Raises:
            redis.exceptions.ConnectionError: The server is unreachable.
        """
        settings = self._settings
        logger.info(
            "Connecting to Redis",
            extra={"host": settings.host, "port": settings.port, "db": settings.db},
        )
        self._pool = ConnectionPool.from_url(settings.url, **settings.connection_pool_kwargs())
        self._client = Redis(connection_pool=self._pool)
        try:
            await cast("Awaitable[bool]", self._client.ping())
        except Exception:
            logger.exception("Redis ping failed", extra={"host": settings.host, "port": settings.port})
            await self.disconnect()
            raise
        logger.info("Redis connection established")

    async def disconnect(self) -> None:
        client, pool = self._client, self._pool
        self._client = self._pool = None
        if client is not None:
            await client.aclose()
        if pool is not None:
            await pool.aclose()
        logger.info("Redis connection closed")

    @property
    def client(self) -> Redis:
        if self._client is None:
            msg = "Redis client not connected. Call connect() first."
            raise RuntimeError(msg)
        return self._client

    def key(self, key: str) -> str:
        return self._settings.get_prefixed_key(key)

    async def get_raw(self, key: str) -> str | None:
        """The stored string, or None for a missing key."""
        value = await _run("get", self.client.get(self.key(key)))
        return value.decode("utf-8") if isinstance(value, bytes) else value

    async def get(self, key: str) -> Any | None:
        """The stored value JSON-decoded; strings that are not JSON come back as is."""
        value = await self.get_raw(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store ``value``; non-strings are JSON-encoded.

        ``ttl`` defaults to ``RedisSettings.default_ttl``; 0 stores without expiry.
        """
        payload = value if isinstance(value, str) else json.dumps(value)
        seconds = self._settings.default_ttl if ttl is None else ttl
        return bool(await _run("set", self.client.set(self.key(key), payload, ex=seconds or None)))

    async def delete(self, key: str) -> bool:
        """True when the key existed."""
        return bool(await _run("delete", self.client.delete(self.key(key))))

    async def delete_pattern(self, pattern: str) -> int:
        """Remove every key matching the glob ``pattern`` (SCAN, not KEYS)."""

        async def scan_and_delete() -> int:
            keys = [key async for key in self.client.scan_iter(match=self.key(pattern))]
            return int(await self.client.delete(*keys) or 0) if keys else 0

        deleted = await _run("delete_pattern", scan_and_delete())
        logger.debug("Deleted keys by pattern", extra={"pattern": pattern, "deleted": deleted})
        return deleted


__all__ = ["RedisCache"]
