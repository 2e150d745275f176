"""Settings loaders.

Each settings class is read from the environment once and the frozen
instance is reused. Tests call ``clear_all_caches()`` after changing the
environment.
"""

from __future__ import annotations

from functools import lru_cache

from .featureflags import FeatureFlagSettings
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .redis import RedisSettings


@lru_cache(maxsize=1)
def get_db_settings() -> PostgresSettings:
    return PostgresSettings()


@lru_cache(maxsize=1)
def get_redis_settings() -> RedisSettings:
    return RedisSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_featureflag_settings() -> FeatureFlagSettings:
    return FeatureFlagSettings()


_LOADERS = (get_db_settings, get_redis_settings, get_logging_settings, get_featureflag_settings)


def clear_all_caches() -> None:
    """Forget every loaded settings instance."""
    for loader in _LOADERS:
        loader.cache_clear()
