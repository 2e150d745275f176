"""Best-effort cache of flag records.

A cache failure must never fail a flag lookup, so :class:`RedisFlagCache`
converts every error into a miss (``None``) or ``False`` after logging it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from flag_service.infra.metrics import feature_flag_cache_errors_total

from .schemas import FlagRecord

if TYPE_CHECKING:
    from flag_service.infra.cache import RedisCache

logger = logging.getLogger(__name__)

DEFAULT_KEYSPACE = "feature-flags"


@runtime_checkable
class FlagCache(Protocol):
    """Short-lived copies of flag records keyed by code.

    ``get`` does not distinguish a miss from a failed read.
    """

    async def get(self, code: str) -> FlagRecord | None: ...

    async def set(self, code: str, record: FlagRecord, ttl: int) -> bool: ...

    async def delete(self, code: str) -> bool: ...

    async def clear(self) -> bool: ...


class RedisFlagCache:
    """FlagCache over :class:`~flag_service.infra.cache.RedisCache`.

    Records are stored as their camelCase JSON form under
    ``"{keyspace}:{code}"``.

    Example:
        cache = RedisFlagCache(redis_cache)
        await cache.set("new_checkout", record, ttl=3600)
        record = await cache.get("new_checkout")
    """

    def __init__(self, redis_cache: RedisCache, keyspace: str = DEFAULT_KEYSPACE) -> None:
        self._redis = redis_cache
        self._keyspace = keyspace

    @property
    def keyspace(self) -> str:
        return self._keyspace

    def key_for(self, code: str) -> str:
        return f"{self._keyspace}:{code}"

    async def get(self, code: str) -> FlagRecord | None:
        try:
            payload = await self._redis.get_raw(self.key_for(code))
            if payload is None:
                return None
            return FlagRecord.model_validate_json(payload)
        except Exception as e:
            self._failed("get", code, e)
            return None

    async def set(self, code: str, record: FlagRecord, ttl: int) -> bool:
        try:
            return await self._redis.set(
                self.key_for(code),
                record.model_dump_json(by_alias=True),
                ttl=ttl,
            )
        except Exception as e:
            self._failed("set", code, e)
            return False

    async def delete(self, code: str) -> bool:
        try:
            await self._redis.delete(self.key_for(code))
        except Exception as e:
            self._failed("delete", code, e)
            return False
        return True

    async def clear(self) -> bool:
        try:
            deleted = await self._redis.delete_pattern(f"{self._keyspace}:*")
        except Exception as e:
            self._failed("clear", None, e)
            return False

        logger.info(
            "Cleared flag cache",
            extra={"keyspace": self._keyspace, "deleted": deleted, "operation": "featureflags.cache.clear"},
        )
        return True

    def _failed(self, operation: str, code: str | None, error: Exception) -> None:
        feature_flag_cache_errors_total.labels(operation=operation).inc()
        logger.warning(
            "Flag cache %s failed",
            operation,
            extra={
                "code": code,
                "keyspace": self._keyspace,
                "error": str(error),
                "error_type": type(error).__name__,
                "operation": f"featureflags.cache.{operation}",
            },
        )


__all__ = ["DEFAULT_KEYSPACE", "FlagCache", "RedisFlagCache"]
