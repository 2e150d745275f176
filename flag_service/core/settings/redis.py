"""Redis settings for the flag cache."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote, urlparse

from pydantic import Field, SecretStr, computed_field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._sanitizers import sanitize_inline_numeric


def _url_components(url: str) -> dict[str, Any]:
    """Connection fields encoded in a ``redis://`` or ``rediss://`` URL."""
    parsed = urlparse(url)
    components: dict[str, Any] = {"ssl_enabled": parsed.scheme == "rediss"}
    if parsed.hostname:
        components["host"] = parsed.hostname
    if parsed.port:
        components["port"] = parsed.port
    database = parsed.path.lstrip("/")
    if database.isdigit():
        components["db"] = int(database)
    if parsed.username:
        components["username"] = parsed.username
    if parsed.password:
        components["password"] = SecretStr(parsed.password)
    return components


class RedisSettings(BaseSettings):
    """Where the flag cache lives and how connections are pooled.

    Environment variables use REDIS_ prefix, except the full URL which is
    read from REDIS_URL and wins over the individual fields.
    Example: REDIS_URL="rediss://:secret@cache.internal:6380/2", REDIS_KEY_PREFIX="svc:"
    """

    redis_url: str | None = Field(
        default=None,
        alias="REDIS_URL",
        description="Full connection URL; overrides host/port/db/credentials",
    )
    host: str = Field(default="localhost", description="Server hostname")
    port: int = Field(default=6379, ge=1, le=65535, description="Server port")
    db: int = Field(default=0, ge=0, le=15, description="Logical database number")
    username: str | None = Field(default=None, description="ACL username (Redis 6+)")
    password: SecretStr | None = Field(default=None, description="Password")
    ssl_enabled: bool = Field(default=False, description="Connect with TLS (rediss://)")

    # Pool
    max_connections: int = Field(default=50, ge=1, le=1000, description="Pool size")
    socket_timeout: float = Field(
        default=5.0, ge=0.1, le=30.0, description="Per-command timeout (seconds)"
    )
    socket_connect_timeout: float = Field(
        default=5.0, ge=0.1, le=30.0, description="Connect timeout (seconds)"
    )
    health_check_interval: int = Field(
        default=30, ge=0, le=300, description="Seconds between pool health checks, 0 disables"
    )

    # Keys
    default_ttl: int = Field(
        default=3600,
        ge=0,
        description="TTL applied when a write passes none, 0 means no expiry",
    )
    key_prefix: str = Field(
        default="",
        max_length=100,
        pattern=r"^([a-zA-Z0-9_-]+:?)?$",
        description="Prepended to every key, e.g. 'svc:'",
    )

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @field_validator("default_ttl", "health_check_interval", mode="before")
    @classmethod
    def _normalize_numbers(cls, value: Any) -> Any:
        return sanitize_inline_numeric(value)

    @model_validator(mode="after")
    def _apply_url(self) -> RedisSettings:
        # Frozen model: components are written in place
        if self.redis_url:
            for field, value in _url_components(self.redis_url).items():
                object.__setattr__(self, field, value)
        return self

    @computed_field
    @property
    def url(self) -> str:
        """Connection URL assembled from the component fields."""
        scheme = "rediss" if self.ssl_enabled else "redis"
        user = quote(self.username) if self.username else ""
        secret = quote(self.password.get_secret_value()) if self.password else ""
        auth = f"{user}:{secret}@" if secret else ""
        return f"{scheme}://{auth}{self.host}:{self.port}/{self.db}"

    def connection_pool_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``redis.asyncio.ConnectionPool.from_url``."""
        kwargs: dict[str, Any] = {
            "max_connections": self.max_connections,
            "socket_timeout": self.socket_timeout,
            "socket_connect_timeout": self.socket_connect_timeout,
            "decode_responses": True,
        }
        if self.health_check_interval:
            kwargs["health_check_interval"] = self.health_check_interval
        return kwargs

    def get_prefixed_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"
