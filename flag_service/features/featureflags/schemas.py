"""Feature flag entity and input schemas."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .rules import RuleType, TargetingRule


class ChangeKind(StrEnum):
    """Lifecycle events published to the change notifier."""

    CREATED = "created"
    UPDATED = "updated"
    ENABLED = "enabled"
    DISABLED = "disabled"
    DELETED = "deleted"


class FlagRecord(BaseModel):
    """A stored feature flag.

    ``updated_at`` stays ``None`` until the first enable/disable/update and
    ``deleted_at`` is the soft-delete tombstone.
    """

    model_config = ConfigDict(
        frozen=True,
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: UUID
    code: str
    name: str
    description: str | None = None
    enabled: bool = False
    rule: TargetingRule | None = None
    created_at: datetime
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def rule_type(self) -> RuleType | None:
        """Tag of the attached rule, if any."""
        return self.rule.rule_type if self.rule is not None else None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class FlagDraft(BaseModel):
    """Input for creating a flag."""

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        extra="forbid",
        json_schema_extra={
            "example": {
                "code": "new_checkout",
                "name": "New checkout flow",
                "enabled": True,
                "rule": {"type": "user_targeting", "targetedUserIds": ["u1"], "percentage": 50},
            },
        },
    )

    code: str = Field(min_length=1, max_length=50, description="Unique lookup key of the flag")
    name: str = Field(min_length=1, max_length=200, description="Human-readable name")
    description: str | None = None
    enabled: bool = False
    rule: TargetingRule | None = None


class FlagChanges(BaseModel):
    """Partial update of a flag.

    Only fields that were explicitly provided are applied; passing
    ``rule=None`` removes the rule. The code of a flag can never change.
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    enabled: bool | None = None
    rule: TargetingRule | None = None

    @model_validator(mode="after")
    def _reject_null_required_fields(self) -> FlagChanges:
        for field in ("name", "enabled"):
            if field in self.model_fields_set and getattr(self, field) is None:
                msg = f"'{field}' cannot be set to null"
                raise ValueError(msg)
        return self

    def applied(self) -> dict[str, Any]:
        """Field values to write, keyed by field name, for explicitly set fields only."""
        return {field: getattr(self, field) for field in self.model_fields_set}

    @property
    def is_empty(self) -> bool:
        return not self.model_fields_set


__all__ = ["ChangeKind", "FlagChanges", "FlagDraft", "FlagRecord"]
