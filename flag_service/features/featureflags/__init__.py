"""Feature flags with targeting rules.

Provides:
- Nine targeting rule variants (user, group, time window, gradual rollout,
  A/B split, version range, geography, device, custom attributes)
- Deterministic percentage bucketing of identifiers
- A cache-aside registry over a soft-deleting SQL store
- Slack change notifications

Usage:
    from flag_service.features.featureflags import (
        FlagDraft,
        UserTargeting,
        build_registry,
    )

    registry = build_registry(redis_cache=redis_cache)
    await registry.create(FlagDraft(
        code="new_checkout",
        name="New checkout",
        enabled=True,
        rule=UserTargeting(targeted_ids=["u1", "u2"], percentage=73),
    ))

    if await registry.evaluate("new_checkout", {"userId": "u1"}):
        ...
"""

from __future__ import annotations

from .cache import FlagCache, RedisFlagCache
from .context import EvaluationContext
from .dependencies import build_registry
from .engine import EvaluationEngine
from .exceptions import (
    DuplicateCodeError,
    FeatureFlagError,
    NotFoundError,
    NotifierError,
    ValidationError,
)
from .models import FeatureFlag
from .notifier import ChangeNotifier, SlackNotifier, SlackNotifierConfig
from .rules import (
    ABTestingConfig,
    BaseRule,
    CustomRules,
    DeviceTargeting,
    GeographicTargeting,
    GradualRollout,
    GroupTargeting,
    RuleType,
    TargetingRule,
    TimeBasedActivation,
    UserTargeting,
    VersionTargeting,
    parse_rule,
)
from .schemas import ChangeKind, FlagChanges, FlagDraft, FlagRecord
from .service import FlagRegistry
from .store import FlagStore, SQLAlchemyFlagStore

__all__ = [
    # Rules
    "ABTestingConfig",
    "BaseRule",
    # Schemas
    "ChangeKind",
    # Collaborators
    "ChangeNotifier",
    "CustomRules",
    "DeviceTargeting",
    # Errors
    "DuplicateCodeError",
    # Evaluation
    "EvaluationContext",
    "EvaluationEngine",
    # Models
    "FeatureFlag",
    "FeatureFlagError",
    "FlagCache",
    "FlagChanges",
    "FlagDraft",
    "FlagRecord",
    # Service
    "FlagRegistry",
    "FlagStore",
    "GeographicTargeting",
    "GradualRollout",
    "GroupTargeting",
    "NotFoundError",
    "NotifierError",
    "RedisFlagCache",
    "RuleType",
    "SQLAlchemyFlagStore",
    "SlackNotifier",
    "SlackNotifierConfig",
    "TargetingRule",
    "TimeBasedActivation",
    "UserTargeting",
    "ValidationError",
    "VersionTargeting",
    "build_registry",
    "parse_rule",
]
