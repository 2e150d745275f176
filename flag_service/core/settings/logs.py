"""Settings for the process-wide logging setup."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_MIB = 1024 * 1024


class LoggingSettings(BaseSettings):
    """How and where log records are written.

    Variables carry the LOG_ prefix, e.g. LOG_LEVEL=DEBUG or LOG_JSON=false.
    The rotating file handler is off unless LOG_FILE_ENABLED is set.
    """

    service_name: str = Field(default="flag-service", description="``service`` field of JSON records")
    level: LogLevel = Field(default="INFO", description="Root logger level")
    json_logs: bool = Field(
        default=True,
        validation_alias=AliasChoices("json", "LOG_JSON", "json_logs"),
        description="One JSON object per line instead of plain text",
    )
    capture_warnings: bool = Field(default=True, description="Route ``warnings`` through logging")

    # Handlers
    console_enabled: bool = Field(default=True, description="Write to stderr")
    file_enabled: bool = False
    file_path: Path | None = Path("logs/flag-service.log.jsonl")
    file_max_bytes: int = Field(default=10 * _MIB, ge=1024, le=1024 * _MIB, description="Rotate after this size")
    file_backup_count: int = Field(default=5, ge=0, le=100, description="Rotated files kept")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @computed_field
    @property
    def level_int(self) -> int:
        return logging.getLevelNamesMapping()[self.level]

    @computed_field
    @property
    def effective_file_path(self) -> Path | None:
        """``file_path`` when file logging is switched on, otherwise None."""
        return self.file_path if self.file_enabled else None

    def to_logging_kwargs(self) -> dict[str, Any]:
        """Arguments for ``flag_service.infra.logging.configure_logging``."""
        return dict(
            log_level=self.level,
            json_logs=self.json_logs,
            console_enabled=self.console_enabled,
            file_path=self.effective_file_path,
            file_max_bytes=self.file_max_bytes,
            file_backup_count=self.file_backup_count,
            service_name=self.service_name,
            capture_warnings=self.capture_warnings,
        )
