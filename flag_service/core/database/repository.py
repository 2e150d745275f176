"""Generic repository base.

Repositories hold no session: every call receives the ``AsyncSession`` of
the caller's unit of work, and nothing here commits. Queries that do not fit
``get``/``create``/``paginate`` are written against the session in the
subclass.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from flag_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession


class BaseRepository[T]:
    """Primary-key lookup, insert and paging for one mapped class."""

    __slots__ = ("model", "_logger", "_lazy")

    def __init__(self, model: type[T]) -> None:
        self.model = model
        name = f"repository.{model.__name__}"
        self._logger = logging.getLogger(name)
        self._lazy = get_lazy_logger(name)

    async def get(self, session: AsyncSession, id: Any) -> T | None:  # noqa: A002
        instance = await session.get(self.model, id)
        self._lazy.debug(lambda: f"get({id}) -> {'hit' if instance is not None else 'miss'}")
        return instance

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Add ``instance`` and flush so server and default values are loaded."""
        session.add(instance)
        await self._flush(session, instance)
        self._lazy.debug(lambda: f"create -> id={getattr(instance, 'id', None)}")
        return instance

    async def paginate(
        self,
        session: AsyncSession,
        statement: Select[tuple[T]],
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[T]:
        """Run ``statement`` with a limit/offset window.

        ``statement`` should already be filtered and ordered; an unordered
        window is not stable between pages.
        """
        rows = (await session.execute(statement.limit(limit).offset(offset))).scalars().all()
        self._lazy.debug(lambda: f"paginate(limit={limit}, offset={offset}) -> {len(rows)} rows")
        return rows

    @staticmethod
    async def _flush(session: AsyncSession, instance: T) -> None:
        await session.flush()
        await session.refresh(instance)


__all__ = ["BaseRepository"]
