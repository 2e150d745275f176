"""Unit tests for EvaluationEngine."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from flag_service.features.featureflags.context import EvaluationContext
from flag_service.features.featureflags.engine import EvaluationEngine
from flag_service.features.featureflags.hashing import admitted_inclusive
from flag_service.features.featureflags.rules import (
    CustomRules,
    GroupTargeting,
    TimeBasedActivation,
    UserTargeting,
)
from flag_service.features.featureflags.schemas import FlagRecord


def make_record(**overrides) -> FlagRecord:
    data = {
        "id": uuid4(),
        "code": "checkout",
        "name": "Checkout",
        "enabled": True,
        "rule": None,
        "created_at": datetime(2026, 1, 1, tzinfo=UTC),
    }
    data.update(overrides)
    return FlagRecord(**data)


@pytest.fixture
def engine() -> EvaluationEngine:
    return EvaluationEngine()


def test_disabled_flag_is_off_regardless_of_rule(engine: EvaluationEngine) -> None:
    always = CustomRules(rules={})
    record = make_record(enabled=False, rule=always)

    assert always.is_enabled(EvaluationContext.of()) is True
    assert engine.is_enabled(record, {"userId": "u1"}) is False
    assert engine.is_enabled(record) is False


def test_enabled_flag_without_rule_is_on(engine: EvaluationEngine) -> None:
    assert engine.is_enabled(make_record()) is True
    assert engine.is_enabled(make_record(), {"anything": 1}) is True


def test_rule_decides_for_enabled_flag(engine: EvaluationEngine) -> None:
    record = make_record(rule=GroupTargeting(group_ids=["beta"], percentage=100))

    assert engine.is_enabled(record, {"groupId": "beta"}) is True
    assert engine.is_enabled(record, {"groupId": "alpha"}) is False
    assert engine.is_enabled(record, {}) is False


def test_accepts_evaluation_context_instances(engine: EvaluationEngine) -> None:
    record = make_record(rule=UserTargeting(targeted_ids=["u1"], percentage=73))
    context = EvaluationContext.of(userId="u1")

    assert engine.is_enabled(record, context) is admitted_inclusive("u1", 73)


def test_now_is_passed_to_time_based_rules(engine: EvaluationEngine) -> None:
    start = datetime(2026, 1, 1, tzinfo=UTC)
    record = make_record(rule=TimeBasedActivation(start_time=start, end_time=start + timedelta(days=1)))

    assert engine.is_enabled(record, now=start + timedelta(hours=1)) is True
    assert engine.is_enabled(record, now=start + timedelta(days=2)) is False


def test_extract_field(engine: EvaluationEngine) -> None:
    record = make_record(rule=GroupTargeting(group_ids=["g1", "g2"], percentage=25))

    assert engine.extract_field(record, "groupIds") == "g1,g2"
    assert engine.extract_field(record, "percentage") == "25.0"
    assert engine.extract_field(record, "unknown") is None


def test_extract_field_without_rule_is_none(engine: EvaluationEngine) -> None:
    assert engine.extract_field(make_record(), "anyKey") is None


def test_extract_field_ignores_enabled_switch(engine: EvaluationEngine) -> None:
    record = make_record(enabled=False, rule=CustomRules(rules={"plan": "pro"}))
    assert engine.extract_field(record, "plan") == "pro"
