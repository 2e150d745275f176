"""Feature flag errors.

All errors derive from :class:`FeatureFlagError`, itself an
:class:`~flag_service.core.exceptions.AppException`, so callers can catch the
whole family at once or map any of them to an RFC 7807 problem document.
"""

from __future__ import annotations

from typing import Any

from flag_service.core.exceptions import AppException


class FeatureFlagError(AppException):
    """Base class for feature flag failures."""

    default_status = 500
    default_type = "feature-flag-error"

    def __init__(self, detail: str, *, extra: dict[str, Any] | None = None) -> None:
        super().__init__(
            status_code=self.default_status,
            detail=detail,
            type=self.default_type,
            extra=extra,
        )


class ValidationError(FeatureFlagError):
    """A flag or rule field is outside its domain (e.g. percentage not in [0, 100]).

    Example:
        raise ValidationError("Invalid targeting rule", errors=[...])
    """

    default_status = 422
    default_type = "feature-flag-validation"

    def __init__(
        self,
        detail: str,
        *,
        errors: list[dict[str, Any]] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.errors = errors or []
        payload = dict(extra or {})
        if self.errors:
            payload["errors"] = self.errors
        super().__init__(detail, extra=payload)


class NotFoundError(FeatureFlagError):
    """No live flag matches the requested code or id."""

    default_status = 404
    default_type = "feature-flag-not-found"

    def __init__(self, key: Any, *, field: str = "code") -> None:
        self.key = key
        super().__init__(f"Feature flag with {field} '{key}' not found", extra={field: str(key)})


class DuplicateCodeError(FeatureFlagError):
    """A live flag already uses the code."""

    default_status = 409
    default_type = "feature-flag-duplicate-code"

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Feature flag with code '{code}' already exists", extra={"code": code})


class NotifierError(FeatureFlagError):
    """A change notification could not be delivered.

    Raised after the triggering mutation has already been committed; the
    mutation is not undone.
    """

    default_status = 502
    default_type = "feature-flag-notifier-error"

    def __init__(self, detail: str, *, code: str | None = None, kind: str | None = None) -> None:
        self.code = code
        self.kind = kind
        extra = {key: value for key, value in (("code", code), ("kind", kind)) if value is not None}
        super().__init__(detail, extra=extra)


__all__ = [
    "DuplicateCodeError",
    "FeatureFlagError",
    "NotFoundError",
    "NotifierError",
    "ValidationError",
]
