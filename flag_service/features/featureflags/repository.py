"""Queries over live (not soft-deleted) rows of ``feature_flags``."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from flag_service.core.database.base import utcnow
from flag_service.core.database.repository import BaseRepository
from flag_service.infra.logging import get_lazy_logger

from .models import FeatureFlag

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession

_lazy = get_lazy_logger(__name__)


class FeatureFlagRepository(BaseRepository[FeatureFlag]):
    """Live-row access to ``FeatureFlag``. Tombstoned rows are never returned.

    Example:
        repo = FeatureFlagRepository()
        flag = await repo.get_by_code(session, "new_checkout")
        flags = await repo.list_live(session, limit=20)
    """

    def __init__(self) -> None:
        super().__init__(FeatureFlag)

    def _live(self) -> Select[tuple[FeatureFlag]]:
        return select(FeatureFlag).where(FeatureFlag.deleted_at.is_(None))

    def _ordered(self, stmt: Select[tuple[FeatureFlag]]) -> Select[tuple[FeatureFlag]]:
        # UUIDv7 ids break created_at ties in insertion order
        return stmt.order_by(FeatureFlag.created_at, FeatureFlag.id)

    async def get_live(self, session: AsyncSession, flag_id: UUID) -> FeatureFlag | None:
        """The flag with this id, or None when it is missing or tombstoned."""
        flag = await self.get(session, flag_id)
        if flag is None or flag.is_deleted:
            return None
        return flag

    async def get_by_code(self, session: AsyncSession, code: str) -> FeatureFlag | None:
        # At most one live row per code (partial unique index)
        stmt = self._live().where(FeatureFlag.code == code)
        flag = (await session.execute(stmt)).scalar_one_or_none()

        _lazy.debug(lambda: f"get_by_code: {code} -> {'found' if flag else 'not found'}")
        return flag

    async def list_live(
        self,
        session: AsyncSession,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[FeatureFlag]:
        """List live flags in creation order."""
        return await self.paginate(session, self._ordered(self._live()), limit=limit, offset=offset)

    async def find_by_rule_type(
        self,
        session: AsyncSession,
        rule_type: str,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[FeatureFlag]:
        """List live flags whose rule has the given tag, in creation order."""
        stmt = self._ordered(self._live().where(FeatureFlag.rule_type == rule_type))
        return await self.paginate(session, stmt, limit=limit, offset=offset)

    async def touch(self, session: AsyncSession, flag: FeatureFlag) -> FeatureFlag:
        """Stamp ``updated_at`` and flush pending attribute changes."""
        flag.updated_at = utcnow()
        await self._flush(session, flag)
        return flag

    async def soft_delete(self, session: AsyncSession, flag: FeatureFlag) -> FeatureFlag:
        """Set ``deleted_at``; the row stays and its code becomes free for reuse."""
        flag.deleted_at = utcnow()
        await self._flush(session, flag)

        self._logger.info("Feature flag soft-deleted", extra={"code": flag.code})
        return flag


_flag_repository: FeatureFlagRepository | None = None


def get_feature_flag_repository() -> FeatureFlagRepository:
    """Process-wide repository instance."""
    global _flag_repository
    if _flag_repository is None:
        _flag_repository = FeatureFlagRepository()
    return _flag_repository


__all__ = ["FeatureFlagRepository", "get_feature_flag_repository"]
