"""Per-call evaluation context."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any


class EvaluationContext(Mapping[str, Any]):
    """Immutable attribute bag handed to targeting rules.

    Typed accessors never raise: a missing key or a value of the wrong type
    yields ``None``, which rules treat as "not satisfied".

    Example:
        ctx = EvaluationContext.of(userId="u1", country="US", checkBoth=True)
        ctx.get_str("userId")    # "u1"
        ctx.get_bool("userId")   # None
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: Mapping[str, Any] = MappingProxyType(dict(data or {}))

    @classmethod
    def of(cls, mapping: Mapping[str, Any] | None = None, /, **attrs: Any) -> EvaluationContext:
        """Build a context from a mapping and/or keyword attributes."""
        if isinstance(mapping, EvaluationContext) and not attrs:
            return mapping
        return cls({**(mapping or {}), **attrs})

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"EvaluationContext({dict(self._data)!r})"

    def get_str(self, key: str) -> str | None:
        """Return the value under ``key`` if it is a string."""
        value = self._data.get(key)
        return value if isinstance(value, str) else None

    def get_bool(self, key: str) -> bool | None:
        """Return the value under ``key`` if it is a real bool (not 1/0 or "true")."""
        value = self._data.get(key)
        return value if isinstance(value, bool) else None


__all__ = ["EvaluationContext"]
