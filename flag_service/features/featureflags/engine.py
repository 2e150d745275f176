"""Flag evaluation."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from flag_service.infra.logging import get_lazy_logger

from .context import EvaluationContext

if TYPE_CHECKING:
    from datetime import datetime

    from .schemas import FlagRecord

_lazy = get_lazy_logger(__name__)


class EvaluationEngine:
    """Answers "is this flag on for this context?" for a flag record.

    Stateless and side-effect free, so one instance can be shared freely.

    Evaluation order:
        1. A disabled flag is off for everyone; its rule is not consulted.
        2. An enabled flag without a rule is on for everyone.
        3. Otherwise the rule decides.
    """

    def is_enabled(
        self,
        record: FlagRecord,
        context: EvaluationContext | Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> bool:
        if not record.enabled:
            return False
        if record.rule is None:
            return True

        result = record.rule.is_enabled(EvaluationContext.of(context), now)
        _lazy.debug(
            lambda: f"Evaluated {record.code} ({record.rule_type}) for {dict(context or {})} -> {result}"
        )
        return result

    def extract_field(self, record: FlagRecord, key: str) -> str | None:
        """String form of one configured rule field, ``None`` if absent or unknown."""
        if record.rule is None:
            return None
        return record.rule.extract(key)


__all__ = ["EvaluationEngine"]
