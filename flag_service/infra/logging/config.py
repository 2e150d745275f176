"""Root logger setup through ``logging.config.dictConfig``.

Handlers hang off the root logger only: stderr and, optionally, a
size-rotated file. Module loggers propagate to it.
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from flag_service.core.settings.logs import LoggingSettings

logger = logging.getLogger(__name__)
_LOGGING_INITIALIZED = False

_TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **overrides: Any,
) -> None:
    """Configure logging from settings, once per process.

    Later calls are no-ops unless ``force`` is set. ``overrides`` replace
    individual ``configure_logging`` arguments taken from the settings.
    """
    global _LOGGING_INITIALIZED
    if _LOGGING_INITIALIZED and not force:
        return

    if log_settings is None:
        from flag_service.core.settings import get_logging_settings

        log_settings = get_logging_settings()

    configure_logging(**(log_settings.to_logging_kwargs() | overrides))
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    console_enabled: bool = True,
    file_path: str | Path | None = None,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    service_name: str = "flag-service",
    capture_warnings: bool = True,
) -> dict[str, Any]:
    """Apply a dictConfig and return it.

    Args:
        log_level: Root level name, case-insensitive.
        json_logs: Use ``JSONFormatter`` instead of the plain text format.
        console_enabled: Attach a stderr handler.
        file_path: Attach a ``RotatingFileHandler`` writing here; parent
            directories are created.
        file_max_bytes: Rotation size of the file handler.
        file_backup_count: Rotated files kept by the file handler.
        service_name: ``service`` field stamped on JSON records.
        capture_warnings: Route the ``warnings`` module through logging.
    """
    logging.captureWarnings(capture_warnings)
    formatter = "json" if json_logs else "text"

    handlers: dict[str, Any] = {}
    if console_enabled:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "formatter": formatter,
            "stream": "ext://sys.stderr",
        }
    if file_path:
        target = Path(file_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": formatter,
            "filename": str(target),
            "maxBytes": file_max_bytes,
            "backupCount": file_backup_count,
            "encoding": "utf-8",
        }

    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "flag_service.infra.logging.formatters.JSONFormatter",
                "static": {"service": service_name},
            },
            "text": {"format": _TEXT_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": handlers,
        "root": {"level": log_level.upper(), "handlers": list(handlers)},
    }
    logging.config.dictConfig(config)

    logger.debug("Logging configured", extra={"handlers": list(handlers), "json_logs": json_logs})
    return config
