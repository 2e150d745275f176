"""Unit tests for feature flag schemas."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

import pydantic
import pytest

from flag_service.features.featureflags.rules import GroupTargeting, RuleType
from flag_service.features.featureflags.schemas import FlagChanges, FlagDraft, FlagRecord


class TestFlagDraft:
    def test_accepts_camel_case_payload_with_rule(self, user_targeting_payload) -> None:
        draft = FlagDraft.model_validate(
            {"code": "checkout", "name": "Checkout", "enabled": True, "rule": user_targeting_payload}
        )

        assert draft.rule is not None
        assert draft.rule.rule_type is RuleType.USER_TARGETING
        assert draft.description is None

    def test_defaults(self) -> None:
        draft = FlagDraft(code="checkout", name="Checkout")

        assert draft.enabled is False
        assert draft.rule is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"code": "", "name": "Checkout"},
            {"code": "x" * 51, "name": "Checkout"},
            {"code": "checkout", "name": ""},
            {"code": "checkout", "name": "Checkout", "owner": "me"},
            {"code": "checkout", "name": "Checkout", "rule": {"type": "group_targeting"}},
        ],
    )
    def test_rejects_invalid_drafts(self, payload) -> None:
        with pytest.raises(pydantic.ValidationError):
            FlagDraft.model_validate(payload)


class TestFlagChanges:
    def test_applied_contains_only_explicit_fields(self) -> None:
        changes = FlagChanges(name="Renamed", rule=None)

        assert changes.applied() == {"name": "Renamed", "rule": None}
        assert changes.is_empty is False

    def test_empty_changes(self) -> None:
        changes = FlagChanges()

        assert changes.applied() == {}
        assert changes.is_empty is True

    @pytest.mark.parametrize("field", ["name", "enabled"])
    def test_required_fields_cannot_be_nulled(self, field: str) -> None:
        with pytest.raises(pydantic.ValidationError, match="cannot be set to null"):
            FlagChanges.model_validate({field: None})

    def test_description_can_be_cleared(self) -> None:
        assert FlagChanges(description=None).applied() == {"description": None}

    def test_code_is_not_updatable(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            FlagChanges.model_validate({"code": "other"})


class TestFlagRecord:
    def test_camel_case_json_round_trip(self) -> None:
        record = FlagRecord(
            id=uuid4(),
            code="checkout",
            name="Checkout",
            enabled=True,
            rule=GroupTargeting(group_ids=["g1"], percentage=10),
            created_at=datetime(2026, 1, 1, tzinfo=UTC),
        )

        payload = record.model_dump_json(by_alias=True)

        assert '"createdAt"' in payload
        assert '"groupIds"' in payload
        assert FlagRecord.model_validate_json(payload) == record

    def test_rule_type_and_tombstone(self) -> None:
        record = FlagRecord(
            id=uuid4(),
            code="checkout",
            name="Checkout",
            created_at=datetime(2026, 1, 1, tzinfo=UTC),
            deleted_at=datetime(2026, 2, 1, tzinfo=UTC),
        )

        assert record.rule_type is None
        assert record.is_deleted is True
