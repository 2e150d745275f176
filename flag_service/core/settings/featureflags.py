"""Feature flag registry settings."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import Field, HttpUrl, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from ._sanitizers import sanitize_inline_numeric, split_csv


class FeatureFlagSettings(BaseSettings):
    """Configuration for the flag registry, its cache and change notifications.

    Environment variables use FEATURE_FLAGS_ prefix.
    Example: FEATURE_FLAGS_CACHE_TTL=600,
    FEATURE_FLAGS_EXCLUDED_STATUSES=created,updated
    """

    # Cache
    cache_enabled: bool = Field(
        default=True,
        description="Put a Redis cache in front of the flag store",
    )
    cache_ttl: int = Field(
        default=3600,
        ge=1,
        description="Cache TTL for flag records in seconds (1 hour)",
    )
    cache_keyspace: str = Field(
        default="feature-flags",
        min_length=1,
        max_length=100,
        pattern=r"^[a-zA-Z0-9_.-]+$",
        description="Key namespace for cached flag records",
    )

    # Slack change notifications
    slack_webhook_url: HttpUrl | None = Field(
        default=None,
        description="Slack incoming webhook URL. Notifications are disabled when unset.",
    )
    slack_api_key: SecretStr | None = Field(
        default=None,
        description="Bearer token sent with each notification",
    )
    slack_client_id: str | None = Field(
        default=None,
        description="Client id sent as X-Client-Id with each notification",
    )
    slack_timeout: float = Field(
        default=10.0,
        ge=0.1,
        le=120.0,
        description="Timeout for notification HTTP requests (seconds)",
    )
    excluded_statuses: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Change kinds that never produce a notification (CSV or JSON list)",
    )

    # Listing
    default_page_size: int = Field(
        default=100,
        ge=1,
        le=10_000,
        description="Default page size for list and find operations",
    )

    model_config = SettingsConfigDict(
        env_prefix="FEATURE_FLAGS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @field_validator("cache_ttl", "default_page_size", mode="before")
    @classmethod
    def _normalize_numbers(cls, value: Any) -> Any:
        return sanitize_inline_numeric(value)

    @field_validator("excluded_statuses", mode="before")
    @classmethod
    def _split_statuses(cls, value: Any) -> Any:
        value = split_csv(value)
        if isinstance(value, list):
            return [str(item).strip().lower() for item in value]
        return value

    @property
    def notifications_enabled(self) -> bool:
        """Whether a Slack webhook is configured."""
        return self.slack_webhook_url is not None
