"""Tests for the Redis-backed flag cache."""

from __future__ import annotations

from datetime import UTC, datetime
import json
import logging
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from flag_service.core.settings import RedisSettings
from flag_service.features.featureflags import FlagCache, FlagRecord, RedisFlagCache, UserTargeting
from flag_service.features.featureflags.cache import DEFAULT_KEYSPACE
from flag_service.infra.cache import RedisCache


@pytest.fixture
def redis_cache(mock_redis_client: AsyncMock) -> RedisCache:
    return RedisCache(settings=RedisSettings(), client=mock_redis_client)


@pytest.fixture
def flag_cache(redis_cache: RedisCache) -> RedisFlagCache:
    return RedisFlagCache(redis_cache)


@pytest.fixture
def record() -> FlagRecord:
    return FlagRecord(
        id=uuid4(),
        code="checkout",
        name="Checkout",
        enabled=True,
        rule=UserTargeting(targeted_ids=["u1"], whitelist={"vip": True}, percentage=73),
        created_at=datetime(2026, 1, 1, tzinfo=UTC),
    )


class TestRedisFlagCache:
    """Tests for RedisFlagCache over a mocked Redis client."""

    def test_satisfies_protocol(self, flag_cache: RedisFlagCache) -> None:
        assert isinstance(flag_cache, FlagCache)

    def test_key_format(self, redis_cache: RedisCache) -> None:
        assert RedisFlagCache(redis_cache).key_for("checkout") == f"{DEFAULT_KEYSPACE}:checkout"
        assert RedisFlagCache(redis_cache, keyspace="flags").key_for("a") == "flags:a"

    async def test_set_stores_camel_case_json_with_ttl(
        self,
        flag_cache: RedisFlagCache,
        mock_redis_client: AsyncMock,
        record: FlagRecord,
    ) -> None:
        assert await flag_cache.set("checkout", record, ttl=600) is True

        key = "feature-flags:checkout"
        payload = json.loads(mock_redis_client.storage[key])
        assert mock_redis_client.ttls[key] == 600
        assert payload["code"] == "checkout"
        assert "createdAt" in payload
        assert payload["rule"]["type"] == "user_targeting"
        assert payload["rule"]["targetedUserIds"] == ["u1"]
        assert payload["rule"]["whitelistedUsers"] == {"vip": True}

    async def test_get_round_trips_record(
        self, flag_cache: RedisFlagCache, record: FlagRecord
    ) -> None:
        await flag_cache.set("checkout", record, ttl=600)

        assert await flag_cache.get("checkout") == record

    async def test_get_miss(self, flag_cache: RedisFlagCache) -> None:
        assert await flag_cache.get("missing") is None

    async def test_delete(self, flag_cache: RedisFlagCache, record: FlagRecord) -> None:
        await flag_cache.set("checkout", record, ttl=600)

        assert await flag_cache.delete("checkout") is True
        assert await flag_cache.get("checkout") is None
        # Deleting an absent key is still a success
        assert await flag_cache.delete("checkout") is True

    async def test_clear_only_touches_own_keyspace(
        self,
        flag_cache: RedisFlagCache,
        mock_redis_client: AsyncMock,
        record: FlagRecord,
    ) -> None:
        await flag_cache.set("a", record, ttl=60)
        await flag_cache.set("b", record, ttl=60)
        mock_redis_client.storage["sessions:x"] = "keep"

        assert await flag_cache.clear() is True

        assert list(mock_redis_client.storage) == ["sessions:x"]


class TestRedisFlagCacheFailures:
    """Redis errors are logged and converted to misses or False."""

    async def test_get_error_is_a_miss(
        self,
        flag_cache: RedisFlagCache,
        mock_redis_client: AsyncMock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        mock_redis_client.get.side_effect = ConnectionError("redis down")

        with caplog.at_level(logging.WARNING):
            assert await flag_cache.get("checkout") is None

        assert "Flag cache get failed" in caplog.text

    async def test_corrupt_payload_is_a_miss(
        self, flag_cache: RedisFlagCache, mock_redis_client: AsyncMock
    ) -> None:
        mock_redis_client.storage["feature-flags:checkout"] = "{not json"

        assert await flag_cache.get("checkout") is None

    async def test_set_error_returns_false(
        self,
        flag_cache: RedisFlagCache,
        mock_redis_client: AsyncMock,
        record: FlagRecord,
    ) -> None:
        mock_redis_client.set.side_effect = ConnectionError("redis down")

        assert await flag_cache.set("checkout", record, ttl=60) is False

    async def test_delete_error_returns_false(
        self, flag_cache: RedisFlagCache, mock_redis_client: AsyncMock
    ) -> None:
        mock_redis_client.delete.side_effect = TimeoutError("slow")

        assert await flag_cache.delete("checkout") is False

    async def test_disconnected_cache_returns_false(self, record: FlagRecord) -> None:
        flag_cache = RedisFlagCache(RedisCache(settings=RedisSettings()))

        assert await flag_cache.set("checkout", record, ttl=60) is False
        assert await flag_cache.clear() is False
