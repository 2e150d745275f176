"""Feature flag registry.

Orchestrates the durable store, the optional cache, the evaluation engine and
the optional change notifier into the surface application code calls.
"""

from __future__ import annotations

from collections.abc import Mapping
import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from flag_service.infra.logging import get_lazy_logger
from flag_service.infra.metrics import (
    feature_flag_cache_errors_total,
    feature_flag_cache_hits_total,
    feature_flag_cache_misses_total,
    feature_flag_evaluations_total,
    feature_flag_mutations_total,
    feature_flag_notifications_failed_total,
)

from .engine import EvaluationEngine
from .exceptions import FeatureFlagError, NotFoundError, NotifierError, ValidationError
from .rules import RuleType
from .schemas import ChangeKind, FlagChanges, FlagDraft

if TYPE_CHECKING:
    from uuid import UUID

    from .cache import FlagCache
    from .context import EvaluationContext
    from .notifier import ChangeNotifier
    from .schemas import FlagRecord
    from .store import FlagStore

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)

DEFAULT_CACHE_TTL = 3600
DEFAULT_PAGE_SIZE = 100


def _validated[M: (FlagDraft, FlagChanges)](model: type[M], data: M | Mapping[str, Any]) -> M:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        msg = f"Invalid {model.__name__}"
        raise ValidationError(
            msg,
            errors=json.loads(e.json(include_url=False)),
        ) from e


def _check_page(limit: int, offset: int) -> None:
    if limit < 0:
        msg = f"limit must be >= 0, got {limit}"
        raise ValidationError(msg)
    if offset < 0:
        msg = f"offset must be >= 0, got {offset}"
        raise ValidationError(msg)


class FlagRegistry:
    """Create, read, mutate and evaluate feature flags.

    Reads go through the cache first (cache-aside); mutations always go to the
    store, then refresh or evict the cache, then notify. Cache failures are
    logged and ignored. Notification failures surface as
    :class:`~.exceptions.NotifierError` after the mutation has committed.

    Example:
        registry = FlagRegistry(SQLAlchemyFlagStore(session_factory), cache=RedisFlagCache(redis))

        await registry.create(FlagDraft(
            code="new_checkout",
            name="New checkout",
            enabled=True,
            rule=UserTargeting(targeted_ids=["u1"], percentage=50),
        ))

        if await registry.evaluate("new_checkout", {"userId": "u1"}):
            ...
    """

    def __init__(
        self,
        store: FlagStore,
        cache: FlagCache | None = None,
        notifier: ChangeNotifier | None = None,
        engine: EvaluationEngine | None = None,
        cache_ttl: int = DEFAULT_CACHE_TTL,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        """Initialize the registry.

        Args:
            store: Source of truth for flags.
            cache: Optional read-through cache keyed by flag code.
            notifier: Optional sink for change notifications.
            engine: Evaluation engine, a fresh one by default.
            cache_ttl: Lifetime of cached records in seconds.
            default_page_size: ``limit`` of ``list`` and ``find_by_rule_type``
                when the caller passes none.
        """
        if cache_ttl < 1:
            msg = f"cache_ttl must be >= 1, got {cache_ttl}"
            raise ValueError(msg)
        if default_page_size < 1:
            msg = f"default_page_size must be >= 1, got {default_page_size}"
            raise ValueError(msg)

        self.store = store
        self.cache = cache
        self.notifier = notifier
        self.engine = engine or EvaluationEngine()
        self.cache_ttl = cache_ttl
        self.default_page_size = default_page_size

    async def create(self, draft: FlagDraft | Mapping[str, Any]) -> FlagRecord:
        """Create a flag.

        Args:
            draft: The new flag, as a model or its field mapping.

        Returns:
            The stored flag.

        Raises:
            ValidationError: The draft or its rule is invalid.
            DuplicateCodeError: A live flag already uses the code.
            NotifierError: The flag was created but the notification failed.
        """
        draft = _validated(FlagDraft, draft)
        flag_id = await self.store.insert(draft)

        record = await self.store.get_by_id(flag_id)
        if record is None:
            msg = f"Feature flag '{draft.code}' was inserted but could not be read back"
            raise FeatureFlagError(msg, extra={"code": draft.code, "id": str(flag_id)})

        self._committed(ChangeKind.CREATED, record)
        await self._cache_set(record)
        await self._notify(record, ChangeKind.CREATED)
        return record

    async def get_by_code(self, code: str) -> FlagRecord:
        """Get a live flag by code, serving from cache when possible.

        Raises:
            NotFoundError: No live flag uses the code.
        """
        if self.cache is not None:
            cached = await self._cache_get(self.cache, code)
            if cached is not None:
                feature_flag_cache_hits_total.inc()
                lazy_logger.debug(lambda: f"get_by_code: cache hit for {code}")
                return cached
            feature_flag_cache_misses_total.inc()

        record = await self.store.get_by_code(code)
        if record is None:
            raise NotFoundError(code)

        await self._cache_set(record)
        return record

    async def get_by_id(self, flag_id: UUID) -> FlagRecord:
        """Get a live flag by id, straight from the store.

        Raises:
            NotFoundError: No live flag has the id.
        """
        record = await self.store.get_by_id(flag_id)
        if record is None:
            raise NotFoundError(flag_id, field="id")
        return record

    async def update(self, code: str, changes: FlagChanges | Mapping[str, Any]) -> FlagRecord:
        """Apply a partial update to a live flag.

        Existence is decided by the store alone; the cache is refreshed with
        the result.

        Raises:
            ValidationError: The changes are invalid.
            NotFoundError: No live flag uses the code.
            NotifierError: The flag was updated but the notification failed.
        """
        changes = _validated(FlagChanges, changes)
        record = await self.store.update(code, changes)
        if record is None:
            raise NotFoundError(code)

        self._committed(ChangeKind.UPDATED, record)
        await self._cache_set(record)
        await self._notify(record, ChangeKind.UPDATED)
        return record

    async def set_enabled(self, code: str, enabled: bool) -> FlagRecord:
        """Switch a live flag on or off.

        Raises:
            NotFoundError: No live flag uses the code.
            NotifierError: The flag was switched but the notification failed.
        """
        record = await self.store.update_enabled(code, enabled)
        if record is None:
            raise NotFoundError(code)

        kind = ChangeKind.ENABLED if enabled else ChangeKind.DISABLED
        self._committed(kind, record)
        await self._cache_set(record)
        await self._notify(record, kind)
        return record

    async def enable(self, code: str) -> FlagRecord:
        return await self.set_enabled(code, True)

    async def disable(self, code: str) -> FlagRecord:
        return await self.set_enabled(code, False)

    async def delete(self, code: str) -> FlagRecord:
        """Soft-delete a live flag and evict it from the cache.

        The code becomes free for a new flag.

        Returns:
            The tombstoned flag.

        Raises:
            NotFoundError: No live flag uses the code.
            NotifierError: The flag was deleted but the notification failed.
        """
        record = await self.store.soft_delete(code)
        if record is None:
            raise NotFoundError(code)

        self._committed(ChangeKind.DELETED, record)
        if self.cache is not None:
            try:
                evicted = await self.cache.delete(code)
            except Exception as e:
                self._cache_failed("delete", code, e)
            else:
                if not evicted:
                    self._cache_failed("delete", code)

        await self._notify(record, ChangeKind.DELETED)
        return record

    async def list(self, limit: int | None = None, offset: int = 0) -> list[FlagRecord]:
        """Live flags in creation order, read from the store."""
        limit = self.default_page_size if limit is None else limit
        _check_page(limit, offset)
        return await self.store.list(limit, offset)

    async def find_by_rule_type(
        self,
        rule_type: RuleType | str,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[FlagRecord]:
        """Live flags whose rule has the given tag, in creation order.

        Raises:
            ValidationError: ``rule_type`` is not a known rule tag, or the
                page bounds are negative.
        """
        limit = self.default_page_size if limit is None else limit
        _check_page(limit, offset)
        try:
            tag = RuleType(rule_type)
        except ValueError as e:
            msg = f"Unknown rule type '{rule_type}'"
            raise ValidationError(msg, extra={"rule_type": str(rule_type)}) from e
        return await self.store.find_by_rule_type(tag.value, limit, offset)

    async def evaluate(
        self,
        code: str,
        context: EvaluationContext | Mapping[str, Any] | None = None,
    ) -> bool:
        """Whether the flag is on for ``context``.

        Raises:
            NotFoundError: No live flag uses the code.
        """
        record = await self.get_by_code(code)
        result = self.engine.is_enabled(record, context)
        feature_flag_evaluations_total.labels(result=str(result).lower()).inc()
        return result

    async def field_value(self, code: str, key: str) -> str | None:
        """String form of one configured rule field of the flag.

        Raises:
            NotFoundError: No live flag uses the code.
        """
        record = await self.get_by_code(code)
        return self.engine.extract_field(record, key)

    async def clear_cache(self) -> bool:
        """Drop every cached flag. ``False`` when there is no cache or clearing failed."""
        if self.cache is None:
            return False
        try:
            cleared = await self.cache.clear()
        except Exception as e:
            self._cache_failed("clear", None, e)
            return False
        if not cleared:
            self._cache_failed("clear", None)
        return cleared

    # Internal helpers

    def _committed(self, kind: ChangeKind, record: FlagRecord) -> None:
        feature_flag_mutations_total.labels(operation=kind.value).inc()
        logger.info(
            "Feature flag %s",
            kind.value,
            extra={
                "code": record.code,
                "flag_id": str(record.id),
                "enabled": record.enabled,
                "rule_type": record.rule_type,
                "operation": f"featureflags.{kind.value}",
            },
        )

    async def _cache_get(self, cache: FlagCache, code: str) -> FlagRecord | None:
        try:
            return await cache.get(code)
        except Exception as e:
            self._cache_failed("get", code, e)
            return None

    async def _cache_set(self, record: FlagRecord) -> None:
        if self.cache is None:
            return
        try:
            stored = await self.cache.set(record.code, record, self.cache_ttl)
        except Exception as e:
            self._cache_failed("set", record.code, e)
            return
        if not stored:
            self._cache_failed("set", record.code)

    def _cache_failed(self, operation: str, code: str | None, error: Exception | None = None) -> None:
        if error is not None:
            feature_flag_cache_errors_total.labels(operation=operation).inc()
        logger.warning(
            "Flag cache %s did not succeed, continuing without cache",
            operation,
            extra={
                "code": code,
                "error": str(error) if error is not None else None,
                "operation": f"featureflags.cache.{operation}",
            },
        )

    async def _notify(self, record: FlagRecord, kind: ChangeKind) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.notify(record, kind)
        except Exception as e:
            feature_flag_notifications_failed_total.labels(kind=kind.value).inc()
            logger.exception(
                "Change notification failed after commit",
                extra={"code": record.code, "kind": kind.value, "operation": f"featureflags.notify.{kind.value}"},
            )
            if isinstance(e, NotifierError):
                raise
            msg = f"Failed to notify '{kind.value}' for feature flag '{record.code}': {e}"
            raise NotifierError(msg, code=record.code, kind=kind.value) from e


__all__ = ["DEFAULT_CACHE_TTL", "DEFAULT_PAGE_SIZE", "FlagRegistry"]
