"""Logger adapter that defers building expensive debug messages."""

from __future__ import annotations

import logging
from typing import Any


def _resolve(value: Any) -> Any:
    return value() if callable(value) else value


class LazyLoggerAdapter(logging.LoggerAdapter):
    """Accepts zero-argument callables as the message or as any argument.

    Callables run only when the level is enabled, so rule dumps and cache
    payloads cost nothing with DEBUG off.

    Example:
        logger = get_lazy_logger(__name__)
        logger.debug(lambda: f"Rule payload: {rule.model_dump_json()}")
        logger.debug("Bucket for %s: %s", user_id, lambda: bucket(user_id))
    """

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        # LoggerAdapter.debug/info/... all end up here
        if self.isEnabledFor(level):
            super().log(level, _resolve(msg), *map(_resolve, args), **kwargs)


def get_lazy_logger(name: str, **context: Any) -> LazyLoggerAdapter:
    """Lazy adapter over ``logging.getLogger(name)`` with ``context`` as extra."""
    return LazyLoggerAdapter(logging.getLogger(name), context)
