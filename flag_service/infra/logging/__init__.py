"""Logging infrastructure.

Basic usage:
    import logging

    logger = logging.getLogger(__name__)
    logger.info("Feature flag created", extra={"operation": "featureflags.create"})

    # Lazy evaluation for expensive debug output
    from flag_service.infra.logging import get_lazy_logger

    _lazy = get_lazy_logger(__name__)
    _lazy.debug(lambda: f"Rule: {rule.model_dump_json()}")
"""

from flag_service.infra.logging.config import configure_logging, setup_logging
from flag_service.infra.logging.formatters import JSONFormatter
from flag_service.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "JSONFormatter",
    "LazyLoggerAdapter",
    "configure_logging",
    "get_lazy_logger",
    "setup_logging",
]
