"""Base error type shared by every layer of the service."""

from __future__ import annotations

from typing import Any

_TITLES: dict[int, str] = {
    400: "Bad Request",
    404: "Not Found",
    409: "Conflict",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}


class AppException(Exception):
    """An error that knows how to describe itself as RFC 7807 problem details.

    ``str(error)`` is the ``detail`` text. ``title`` falls back to the
    standard phrase of ``status_code``; ``extra`` members are merged into the
    problem document next to the standard ones.

    Example:
        raise AppException(404, "Feature flag 'new_checkout' not found",
                           type="feature-flag-not-found", extra={"code": "new_checkout"})
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail
        self.type = type
        self.title = title or _TITLES.get(status_code, "Error")
        self.instance = instance
        self.extra = extra or {}

    def to_problem(self) -> dict[str, Any]:
        problem: dict[str, Any] = {
            "type": self.type,
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
        }
        if self.instance:
            problem["instance"] = self.instance
        return problem | self.extra


__all__ = ["AppException"]
