"""JSON Lines formatter with OpenTelemetry trace ids."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from opentelemetry import trace

# Attributes every LogRecord carries; anything else came from ``extra=``
_STANDARD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message"}

_DEFAULT_KEYS = {"level": "levelname", "logger": "name", "message": "message"}


def _trace_fields() -> dict[str, str]:
    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return {}
    return {
        "trace_id": format(ctx.trace_id, "032x"),
        "span_id": format(ctx.span_id, "016x"),
        "trace_flags": format(ctx.trace_flags, "02x"),
    }


class JSONFormatter(logging.Formatter):
    """Render each record as one JSON object per line.

    ``fmt_keys`` maps output keys to record attributes, ``static`` is merged
    into every line. The timestamp is UTC with milliseconds and a ``Z``
    suffix. Values json cannot encode (UUIDs, paths, enums) are stringified.

    Example line:
        {"level": "INFO", "logger": "flag_service.features.featureflags.service",
         "message": "Feature flag created", "timestamp": "2026-10-19T09:00:00.123Z",
         "service": "flag-service", "code": "new_checkout"}
    """

    def __init__(
        self,
        fmt_keys: dict[str, str] | None = None,
        static: dict[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self.fmt_keys = fmt_keys or dict(_DEFAULT_KEYS)
        self.static = static or {}

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        created = datetime.fromtimestamp(record.created, tz=UTC)

        data: dict[str, Any] = {key: getattr(record, attr, None) for key, attr in self.fmt_keys.items()}
        data["timestamp"] = created.isoformat(timespec="milliseconds").replace("+00:00", "Z")
        data.update(_trace_fields())
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            data["stack_trace"] = record.stack_info
        data.update(self.static)

        for key, value in vars(record).items():
            if key not in _STANDARD_ATTRS:
                data.setdefault(key, value)

        return json.dumps(data, ensure_ascii=False, default=str)
