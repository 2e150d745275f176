"""Tests for the declarative base and model mixins."""

from __future__ import annotations

import time
import uuid

from sqlalchemy import Index

from flag_service.core.database import generate_uuid7, utcnow
from flag_service.features.featureflags.models import FeatureFlag


def test_generate_uuid7_version_and_variant() -> None:
    value = generate_uuid7()

    assert value.version == 7
    assert value.variant == uuid.RFC_4122


def test_generate_uuid7_sorts_by_time() -> None:
    first = generate_uuid7()
    time.sleep(0.002)
    second = generate_uuid7()

    assert first < second


def test_generate_uuid7_embeds_millisecond_timestamp() -> None:
    before = int(time.time() * 1000)
    value = generate_uuid7()
    after = int(time.time() * 1000)

    assert before <= value.int >> 80 <= after


def test_utcnow_is_aware() -> None:
    assert utcnow().utcoffset() is not None
    assert utcnow().utcoffset().total_seconds() == 0


def test_feature_flag_table_layout() -> None:
    table = FeatureFlag.__table__
    indexes = {index.name: index for index in table.indexes}

    assert {"id", "code", "rule_type", "rule", "created_at", "updated_at", "deleted_at"} <= set(
        table.columns.keys()
    )
    live_code: Index = indexes["uq_feature_flags_code_live"]
    assert live_code.unique is True
    assert "deleted_at IS NULL" in str(live_code.dialect_options["sqlite"]["where"])


def test_mixin_defaults() -> None:
    flag = FeatureFlag(code="a", name="A")

    assert flag.is_deleted is False
    assert repr(flag).startswith("FeatureFlag(code='a'")
