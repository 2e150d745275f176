"""Tests for SQLAlchemyFlagStore on an in-memory SQLite database."""

from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flag_service.features.featureflags import (
    DuplicateCodeError,
    FlagChanges,
    FlagDraft,
    FlagStore,
    GroupTargeting,
    RuleType,
    SQLAlchemyFlagStore,
    UserTargeting,
)


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> SQLAlchemyFlagStore:
    return SQLAlchemyFlagStore(session_factory)


def _draft(code: str = "checkout", **kwargs) -> FlagDraft:
    return FlagDraft(code=code, name=kwargs.pop("name", code.title()), **kwargs)


class TestInsertAndRead:
    """Tests for inserting and reading flags."""

    def test_satisfies_protocol(self, store: SQLAlchemyFlagStore) -> None:
        assert isinstance(store, FlagStore)

    async def test_insert_then_get_by_id_and_code(self, store: SQLAlchemyFlagStore) -> None:
        rule = UserTargeting(targeted_ids=["u1"], percentage=50)
        flag_id = await store.insert(_draft(enabled=True, rule=rule, description="New flow"))

        by_id = await store.get_by_id(flag_id)
        by_code = await store.get_by_code("checkout")

        assert by_id is not None
        assert by_code is not None
        assert by_id.id == by_code.id == flag_id
        assert by_id.name == "Checkout"
        assert by_id.description == "New flow"
        assert by_id.enabled is True
        assert by_id.rule == rule
        assert by_id.rule_type is RuleType.USER_TARGETING
        assert by_id.created_at is not None
        assert by_id.updated_at is None
        assert by_id.deleted_at is None

    async def test_flag_without_rule(self, store: SQLAlchemyFlagStore) -> None:
        flag_id = await store.insert(_draft())

        record = await store.get_by_id(flag_id)

        assert record is not None
        assert record.rule is None
        assert record.rule_type is None
        assert record.enabled is False

    async def test_missing_flags_return_none(self, store: SQLAlchemyFlagStore) -> None:
        assert await store.get_by_code("missing") is None
        assert await store.get_by_id(uuid4()) is None

    async def test_duplicate_code_is_rejected(self, store: SQLAlchemyFlagStore) -> None:
        await store.insert(_draft())

        with pytest.raises(DuplicateCodeError) as exc_info:
            await store.insert(_draft(name="Another"))

        assert exc_info.value.code == "checkout"
        assert exc_info.value.status_code == 409


class TestMutations:
    """Tests for update, enable/disable and soft delete."""

    async def test_update_applies_only_provided_fields(self, store: SQLAlchemyFlagStore) -> None:
        await store.insert(_draft(description="Keep me", enabled=True))

        record = await store.update("checkout", FlagChanges(name="Renamed"))

        assert record is not None
        assert record.name == "Renamed"
        assert record.description == "Keep me"
        assert record.enabled is True
        assert record.updated_at is not None

    async def test_update_replaces_rule_and_tag(self, store: SQLAlchemyFlagStore) -> None:
        await store.insert(_draft(rule=UserTargeting(targeted_ids=["u1"], percentage=10)))
        group_rule = GroupTargeting(group_ids=["beta"], percentage=100)

        record = await store.update("checkout", FlagChanges(rule=group_rule))

        assert record is not None
        assert record.rule == group_rule
        found = await store.find_by_rule_type("group_targeting", 10, 0)
        assert [flag.code for flag in found] == ["checkout"]
        assert await store.find_by_rule_type("user_targeting", 10, 0) == []

    async def test_update_with_null_rule_clears_it(self, store: SQLAlchemyFlagStore) -> None:
        await store.insert(_draft(rule=GroupTargeting(group_ids=["beta"], percentage=5)))

        record = await store.update("checkout", FlagChanges(rule=None))

        assert record is not None
        assert record.rule is None
        assert await store.find_by_rule_type("group_targeting", 10, 0) == []

    async def test_update_enabled(self, store: SQLAlchemyFlagStore) -> None:
        await store.insert(_draft())

        enabled = await store.update_enabled("checkout", True)
        disabled = await store.update_enabled("checkout", False)

        assert enabled is not None
        assert enabled.enabled is True
        assert enabled.updated_at is not None
        assert disabled is not None
        assert disabled.enabled is False

    async def test_mutations_on_missing_code_return_none(self, store: SQLAlchemyFlagStore) -> None:
        assert await store.update("missing", FlagChanges(name="x")) is None
        assert await store.update_enabled("missing", True) is None
        assert await store.soft_delete("missing") is None

    async def test_soft_delete_hides_flag_and_frees_code(self, store: SQLAlchemyFlagStore) -> None:
        first_id = await store.insert(_draft())

        deleted = await store.soft_delete("checkout")

        assert deleted is not None
        assert deleted.is_deleted is True
        assert await store.get_by_code("checkout") is None
        assert await store.get_by_id(first_id) is None
        assert await store.soft_delete("checkout") is None

        second_id = await store.insert(_draft(name="Second life"))
        record = await store.get_by_code("checkout")
        assert record is not None
        assert record.id == second_id != first_id
        assert record.name == "Second life"


class TestListing:
    """Tests for list and find_by_rule_type."""

    async def test_list_pages_in_creation_order(self, store: SQLAlchemyFlagStore) -> None:
        for code in ("a", "b", "c"):
            await store.insert(_draft(code))
        await store.soft_delete("b")

        assert [flag.code for flag in await store.list(10, 0)] == ["a", "c"]
        assert [flag.code for flag in await store.list(1, 1)] == ["c"]
        assert await store.list(0, 0) == []

    async def test_find_by_rule_type(self, store: SQLAlchemyFlagStore) -> None:
        await store.insert(_draft("u", rule=UserTargeting(percentage=1)))
        await store.insert(_draft("g1", rule=GroupTargeting(group_ids=["x"], percentage=1)))
        await store.insert(_draft("g2", rule=GroupTargeting(group_ids=["y"], percentage=1)))

        found = await store.find_by_rule_type("group_targeting", 10, 0)
        second_page = await store.find_by_rule_type("group_targeting", 1, 1)

        assert [flag.code for flag in found] == ["g1", "g2"]
        assert [flag.code for flag in second_page] == ["g2"]
