"""Maven-style comparable version strings.

Version strings are split into numeric and qualifier tokens on ``.``, ``-``
and digit/letter transitions. Numeric tokens compare as integers, known
qualifiers rank as

    alpha < beta < milestone < rc == cr < snapshot < "" == ga == final == release < sp

and unknown qualifiers sort after all known ones, lexically. A ``-`` opens a
nested sub-list, so ``1-1`` sorts before ``1.1``. Trailing zero and empty
tokens are dropped, which makes ``1``, ``1.0`` and ``1.0.0`` equal.

Example:
    >>> ComparableVersion("1.5.0") < ComparableVersion("2.0.0")
    True
    >>> ComparableVersion("1.0-rc1") < ComparableVersion("1.0")
    True
"""

from __future__ import annotations

import functools

_QUALIFIERS = ("alpha", "beta", "milestone", "rc", "snapshot", "", "sp")
_ALIASES = {"ga": "", "final": "", "release": "", "cr": "rc"}
_RELEASE_INDEX = str(_QUALIFIERS.index(""))
_SHORT_QUALIFIERS = {"a": "alpha", "b": "beta", "m": "milestone"}


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


class _IntItem:
    __slots__ = ("value",)

    def __init__(self, value: int = 0) -> None:
        self.value = value

    def is_null(self) -> bool:
        return self.value == 0

    def compare(self, other: _Item | None) -> int:
        if other is None:
            return 0 if self.value == 0 else 1
        if isinstance(other, _IntItem):
            return _sign(self.value - other.value)
        # integers sort after qualifiers and sub-lists
        return 1

    def __str__(self) -> str:
        return str(self.value)


class _StringItem:
    __slots__ = ("value",)

    def __init__(self, value: str, followed_by_digit: bool) -> None:
        if followed_by_digit and len(value) == 1:
            value = _SHORT_QUALIFIERS.get(value, value)
        self.value = _ALIASES.get(value, value)

    def is_null(self) -> bool:
        return self._rank() == _RELEASE_INDEX

    def _rank(self) -> str:
        if self.value in _QUALIFIERS:
            return str(_QUALIFIERS.index(self.value))
        return f"{len(_QUALIFIERS)}-{self.value}"

    def compare(self, other: _Item | None) -> int:
        if other is None:
            return _cmp(self._rank(), _RELEASE_INDEX)
        if isinstance(other, _StringItem):
            return _cmp(self._rank(), other._rank())
        return -1

    def __str__(self) -> str:
        return self.value


class _ListItem(list):
    def is_null(self) -> bool:
        return len(self) == 0

    def normalize(self) -> None:
        for i in range(len(self) - 1, -1, -1):
            item = self[i]
            if item.is_null():
                del self[i]
            elif not isinstance(item, _ListItem):
                break

    def compare(self, other: _Item | None) -> int:
        if other is None:
            for item in self:
                result = item.compare(None)
                if result != 0:
                    return result
            return 0
        if isinstance(other, _IntItem):
            return -1
        if isinstance(other, _StringItem):
            return 1

        for i in range(max(len(self), len(other))):
            left = self[i] if i < len(self) else None
            right = other[i] if i < len(other) else None
            if left is None:
                result = 0 if right is None else -right.compare(None)
            else:
                result = left.compare(right)
            if result != 0:
                return result
        return 0

    def __str__(self) -> str:
        parts: list[str] = []
        for item in self:
            if parts:
                parts.append("-" if isinstance(item, _ListItem) else ".")
            parts.append(str(item))
        return "".join(parts)


_Item = _IntItem | _StringItem | _ListItem


def _cmp(left: str, right: str) -> int:
    return (left > right) - (left < right)


def _parse_item(is_digit: bool, token: str) -> _Item:
    if is_digit:
        return _IntItem(int(token))
    return _StringItem(token, followed_by_digit=False)


def _parse(version: str) -> _ListItem:
    version = version.lower()
    root = current = _ListItem()
    stack = [root]

    is_digit = False
    start = 0

    for i, char in enumerate(version):
        if char == ".":
            current.append(_IntItem() if i == start else _parse_item(is_digit, version[start:i]))
            start = i + 1
        elif char == "-":
            current.append(_IntItem() if i == start else _parse_item(is_digit, version[start:i]))
            start = i + 1
            sub = _ListItem()
            current.append(sub)
            current = sub
            stack.append(sub)
        elif "0" <= char <= "9":
            if not is_digit and i > start:
                current.append(_StringItem(version[start:i], followed_by_digit=True))
                start = i
                sub = _ListItem()
                current.append(sub)
                current = sub
                stack.append(sub)
            is_digit = True
        else:
            if is_digit and i > start:
                current.append(_parse_item(True, version[start:i]))
                start = i
                sub = _ListItem()
                current.append(sub)
                current = sub
                stack.append(sub)
            is_digit = False

    if len(version) > start:
        current.append(_parse_item(is_digit, version[start:]))

    while stack:
        stack.pop().normalize()

    return root


@functools.total_ordering
class ComparableVersion:
    """A version string with Maven ordering semantics."""

    __slots__ = ("_items", "original")

    def __init__(self, version: str) -> None:
        self.original = version
        self._items = _parse(version)

    @property
    def canonical(self) -> str:
        """Normalized form; equal versions share the same canonical string."""
        return str(self._items)

    def compare(self, other: ComparableVersion) -> int:
        """Return -1, 0 or 1 as this version sorts before, equal to or after ``other``."""
        return self._items.compare(other._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ComparableVersion):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other: ComparableVersion) -> bool:
        if not isinstance(other, ComparableVersion):
            return NotImplemented
        return self.compare(other) < 0

    def __hash__(self) -> int:
        return hash(self.canonical)

    def __repr__(self) -> str:
        return f"ComparableVersion({self.original!r})"

    def __str__(self) -> str:
        return self.original


def in_range(version: str, minimum: str, maximum: str) -> bool:
    """Inclusive range check ``minimum <= version <= maximum``."""
    current = ComparableVersion(version)
    return ComparableVersion(minimum) <= current <= ComparableVersion(maximum)


__all__ = ["ComparableVersion", "in_range"]
