"""Modular Pydantic Settings v2 configuration.

Settings are split by domain (db/redis/logging/featureflags), read from the
environment or a ``.env`` file, frozen after validation and cached by the
loaders in :mod:`.loader`.

    from flag_service.core.settings import get_featureflag_settings
"""

from __future__ import annotations

from .featureflags import FeatureFlagSettings
from .loader import (
    clear_all_caches,
    get_db_settings,
    get_featureflag_settings,
    get_logging_settings,
    get_redis_settings,
)
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .redis import RedisSettings

__all__ = [
    "FeatureFlagSettings",
    "LoggingSettings",
    "PostgresSettings",
    "RedisSettings",
    "clear_all_caches",
    "get_db_settings",
    "get_featureflag_settings",
    "get_logging_settings",
    "get_redis_settings",
]
