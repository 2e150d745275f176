"""Feature flag database models."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Boolean, Index, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from flag_service.core.database.base import Base, SoftDeleteMixin, TimestampMixin, UUIDv7PKMixin

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
RuleJSON = JSON().with_variant(JSONB(), "postgresql")

LIVE_ROWS = text("deleted_at IS NULL")


class FeatureFlag(Base, UUIDv7PKMixin, TimestampMixin, SoftDeleteMixin):
    """Persisted feature flag.

    Attributes:
        code: Lookup key, unique among rows that are not soft-deleted.
        name: Human-readable name.
        description: Description of what the flag controls.
        enabled: Master switch.
        rule_type: Tag of the targeting rule, duplicated from ``rule`` for filtering.
        rule: Serialized targeting rule (camelCase JSON with a ``type`` tag).
    """

    __tablename__ = "feature_flags"

    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Flag lookup key",
    )
    name: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Human-readable name",
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Flag description",
    )
    enabled: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Master switch",
    )
    rule_type: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Targeting rule tag",
    )
    rule: Mapped[dict[str, Any] | None] = mapped_column(
        RuleJSON,
        nullable=True,
        comment="Serialized targeting rule",
    )

    __table_args__ = (
        # A deleted code may be reused, so uniqueness only covers live rows
        Index(
            "uq_feature_flags_code_live",
            "code",
            unique=True,
            postgresql_where=LIVE_ROWS,
            sqlite_where=LIVE_ROWS,
        ),
        Index("ix_feature_flags_rule_type", "rule_type"),
        Index("ix_feature_flags_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"FeatureFlag(code={self.code!r}, enabled={self.enabled}, rule_type={self.rule_type!r})"
