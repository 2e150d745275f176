"""Database settings for the flag store.

The store runs on PostgreSQL in production. A ``sqlite+aiosqlite://`` URL is
accepted as well and passed through untouched, which is how tests and local
experiments run without a server.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote_plus, unquote, urlparse

from pydantic import Field, SecretStr, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _dsn_components(dsn: str) -> dict[str, Any]:
    """Connection fields encoded in a PostgreSQL DSN."""
    parsed = urlparse(dsn)
    components: dict[str, Any] = {}
    if "+" in parsed.scheme:
        components["driver"] = parsed.scheme.split("+", 1)[1]
    if parsed.hostname:
        components["host"] = parsed.hostname
    if parsed.port:
        components["port"] = parsed.port
    if parsed.username:
        components["user"] = unquote(parsed.username)
    if parsed.password:
        components["password"] = SecretStr(unquote(parsed.password))
    if parsed.path.strip("/"):
        components["name"] = parsed.path.lstrip("/")
    return components


class PostgresSettings(BaseSettings):
    """Connection and pool settings for the ``feature_flags`` database.

    Component fields use the DB_ prefix (DB_HOST, DB_PASSWORD, ...). A full
    URL in DATABASE_URL takes precedence over them.
    Example: DATABASE_URL="postgresql+psycopg://flags:secret@db:5432/flag_service"
    """

    dsn: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description="Complete SQLAlchemy URL; PostgreSQL DSNs are split into the fields below",
    )

    # Connection
    host: str = Field(default="localhost", min_length=1, max_length=255)
    port: int = Field(default=5432, ge=1, le=65535)
    user: str = Field(default="postgres", min_length=1, max_length=100)
    password: SecretStr = Field(default=SecretStr("postgres"))
    name: str = Field(default="flag_service", min_length=1, max_length=100, description="Database name")
    driver: str = Field(default="psycopg", description="SQLAlchemy async driver")
    application_name: str = Field(
        default="flag-service",
        min_length=1,
        max_length=100,
        description="Reported to PostgreSQL, visible in pg_stat_activity",
    )
    connect_timeout: float = Field(default=5.0, ge=0.1, le=60.0, description="Seconds")

    # Pool
    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=10, ge=0, le=100)
    pool_timeout: float = Field(
        default=30.0, ge=0.1, le=300.0, description="Seconds to wait for a pooled connection"
    )
    pool_recycle: int = Field(
        default=1800, ge=0, le=86400, description="Replace connections older than this (seconds)"
    )
    pool_pre_ping: bool = Field(default=True, description="Check connections before handing them out")
    echo: bool = Field(default=False, description="Log every SQL statement")

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @model_validator(mode="after")
    def _apply_dsn(self) -> PostgresSettings:
        # Frozen model: components are written in place
        if self.dsn and not self.is_sqlite:
            for field, value in _dsn_components(self.dsn).items():
                object.__setattr__(self, field, value)
        return self

    @property
    def is_sqlite(self) -> bool:
        return bool(self.dsn and self.dsn.startswith("sqlite"))

    @computed_field  # type: ignore[misc]
    @property
    def url(self) -> str:
        """Async SQLAlchemy URL."""
        if self.is_sqlite:
            return self.dsn  # type: ignore[return-value]

        password = quote_plus(self.password.get_secret_value())
        return (
            f"postgresql+{self.driver}://{self.user}:{password}@{self.host}:{self.port}/{self.name}"
            f"?application_name={quote_plus(self.application_name)}"
        )

    def sqlalchemy_engine_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``create_async_engine``.

        SQLite gets no pool tuning; its dialect picks a suitable pool itself.
        """
        if self.is_sqlite:
            return {"echo": self.echo}
        return {
            "echo": self.echo,
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "pool_recycle": self.pool_recycle,
            "pool_pre_ping": self.pool_pre_ping,
            "connect_args": {"connect_timeout": int(self.connect_timeout)},
        }
