"""Clean-up of raw environment values before pydantic sees them."""

from __future__ import annotations

import json
import re
from typing import Any

# "#" opens a comment at the start of the value or after whitespace
_INLINE_COMMENT = re.compile(r"(?:^|\s)#.*", re.DOTALL)


def strip_inline_comment(value: str) -> str:
    """``"900  # 15 minutes"`` becomes ``"900"``; ``"foo#bar"`` is left alone."""
    return _INLINE_COMMENT.sub("", value, count=1).strip()


def sanitize_inline_numeric(value: Any) -> Any:
    if isinstance(value, str) and (cleaned := strip_inline_comment(value)):
        return cleaned
    return value


def split_csv(value: Any) -> Any:
    """Turn ``"a, b"`` or a JSON array string into a list; lists pass through."""
    if not isinstance(value, str):
        return value
    text = strip_inline_comment(value)
    if text.startswith("["):
        return json.loads(text)
    return [part for part in map(str.strip, text.split(",")) if part]
