"""Durable flag storage.

:class:`FlagStore` is the contract the registry depends on;
:class:`SQLAlchemyFlagStore` implements it on top of
:class:`~.repository.FeatureFlagRepository` with one transaction per call.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sqlalchemy.exc import IntegrityError

from flag_service.core.database.session import session_scope

from .exceptions import DuplicateCodeError
from .models import FeatureFlag
from .repository import FeatureFlagRepository, get_feature_flag_repository
from .rules import dump_rule
from .schemas import FlagRecord

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from .rules import BaseRule
    from .schemas import FlagChanges, FlagDraft

logger = logging.getLogger(__name__)


@runtime_checkable
class FlagStore(Protocol):
    """Source of truth for flags.

    Reads never return soft-deleted flags. Mutations return ``None`` when no
    live flag matches the code.
    """

    async def insert(self, draft: FlagDraft) -> UUID: ...

    async def get_by_id(self, flag_id: UUID) -> FlagRecord | None: ...

    async def get_by_code(self, code: str) -> FlagRecord | None: ...

    async def update(self, code: str, changes: FlagChanges) -> FlagRecord | None: ...

    async def update_enabled(self, code: str, enabled: bool) -> FlagRecord | None: ...

    async def soft_delete(self, code: str) -> FlagRecord | None: ...

    async def list(self, limit: int, offset: int) -> list[FlagRecord]: ...

    async def find_by_rule_type(self, rule_type: str, limit: int, offset: int) -> list[FlagRecord]: ...


class SQLAlchemyFlagStore:
    """FlagStore backed by the ``feature_flags`` table.

    Example:
        store = SQLAlchemyFlagStore(session_factory)
        flag_id = await store.insert(FlagDraft(code="new_checkout", name="New checkout"))
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        repository: FeatureFlagRepository | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._repository = repository or get_feature_flag_repository()

    async def insert(self, draft: FlagDraft) -> UUID:
        """Persist a new flag.

        Raises:
            DuplicateCodeError: A live flag already uses ``draft.code``.
        """
        try:
            async with session_scope(self._session_factory) as session:
                if await self._repository.get_by_code(session, draft.code) is not None:
                    raise DuplicateCodeError(draft.code)

                flag = FeatureFlag(
                    code=draft.code,
                    name=draft.name,
                    description=draft.description,
                    enabled=draft.enabled,
                )
                _apply_rule(flag, draft.rule)
                flag = await self._repository.create(session, flag)
                flag_id = flag.id
        except IntegrityError as e:
            # Lost a race with a concurrent insert of the same code
            logger.warning(
                "Unique index rejected flag insert",
                extra={"code": draft.code, "operation": "featureflags.store.insert"},
            )
            raise DuplicateCodeError(draft.code) from e

        return flag_id

    async def get_by_id(self, flag_id: UUID) -> FlagRecord | None:
        async with session_scope(self._session_factory) as session:
            flag = await self._repository.get_live(session, flag_id)
            return _to_record(flag)

    async def get_by_code(self, code: str) -> FlagRecord | None:
        async with session_scope(self._session_factory) as session:
            flag = await self._repository.get_by_code(session, code)
            return _to_record(flag)

    async def update(self, code: str, changes: FlagChanges) -> FlagRecord | None:
        """Apply the explicitly set fields of ``changes`` and stamp ``updated_at``."""
        async with session_scope(self._session_factory) as session:
            flag = await self._repository.get_by_code(session, code)
            if flag is None:
                return None

            for field, value in changes.applied().items():
                if field == "rule":
                    _apply_rule(flag, value)
                else:
                    setattr(flag, field, value)

            flag = await self._repository.touch(session, flag)
            return _to_record(flag)

    async def update_enabled(self, code: str, enabled: bool) -> FlagRecord | None:
        async with session_scope(self._session_factory) as session:
            flag = await self._repository.get_by_code(session, code)
            if flag is None:
                return None

            flag.enabled = enabled
            flag = await self._repository.touch(session, flag)
            return _to_record(flag)

    async def soft_delete(self, code: str) -> FlagRecord | None:
        async with session_scope(self._session_factory) as session:
            flag = await self._repository.get_by_code(session, code)
            if flag is None:
                return None

            flag = await self._repository.soft_delete(session, flag)
            return _to_record(flag)

    async def list(self, limit: int, offset: int) -> list[FlagRecord]:
        async with session_scope(self._session_factory) as session:
            flags = await self._repository.list_live(session, limit=limit, offset=offset)
            return [FlagRecord.model_validate(flag) for flag in flags]

    async def find_by_rule_type(self, rule_type: str, limit: int, offset: int) -> list[FlagRecord]:
        async with session_scope(self._session_factory) as session:
            flags = await self._repository.find_by_rule_type(
                session, rule_type, limit=limit, offset=offset
            )
            return [FlagRecord.model_validate(flag) for flag in flags]


def _apply_rule(flag: FeatureFlag, rule: BaseRule | None) -> None:
    if rule is None:
        flag.rule = None
        flag.rule_type = None
        return
    flag.rule = dump_rule(rule)
    flag.rule_type = str(rule.rule_type)


def _to_record(flag: FeatureFlag | None) -> FlagRecord | None:
    if flag is None:
        return None
    return FlagRecord.model_validate(flag)


__all__ = ["FlagStore", "SQLAlchemyFlagStore"]
