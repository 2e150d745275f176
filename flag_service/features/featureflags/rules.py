"""Targeting rules.

A flag optionally carries one targeting rule deciding, per evaluation
context, whether the flag is on. Rules form a closed set of pydantic models
discriminated by their ``type`` tag; the serialized form uses camelCase field
names and is what the store and cache persist.

Every rule answers two questions:

* ``is_enabled(context, now)``: is this context inside the rule? Missing or
  wrongly typed context attributes make the rule evaluate to ``False``.
* ``extract(key)``: the string form of one configured field, or ``None``.
"""

from __future__ import annotations

import json
from abc import abstractmethod
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Annotated, Any, ClassVar, Literal

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_serializer,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .context import EvaluationContext
from .exceptions import ValidationError
from .hashing import admitted_exclusive, admitted_inclusive
from .versioning import in_range

Percentage = Annotated[float, Field(ge=0, le=100)]


class RuleType(StrEnum):
    """Discriminator tags of the targeting rule variants."""

    USER_TARGETING = "user_targeting"
    GROUP_TARGETING = "group_targeting"
    TIME_BASED_ACTIVATION = "time_based_activation"
    GRADUAL_ROLLOUT = "gradual_rollout"
    AB_TESTING = "ab_testing"
    VERSION_TARGETING = "version_targeting"
    GEOGRAPHIC_TARGETING = "geographic_targeting"
    DEVICE_TARGETING = "device_targeting"
    CUSTOM_RULES = "custom_rules"


# ============================================================================
# String rendering shared by extract()
# ============================================================================


def format_bool(value: bool) -> str:
    return "true" if value else "false"


def format_number(value: float) -> str:
    return str(float(value))


def format_instant(value: datetime) -> str:
    """ISO-8601 UTC instant with a ``Z`` suffix and only as much fraction as needed."""
    value = value.astimezone(UTC)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if value.microsecond:
        if value.microsecond % 1000 == 0:
            text += f".{value.microsecond // 1000:03d}"
        else:
            text += f".{value.microsecond:06d}"
    return text + "Z"


def format_duration(value: timedelta) -> str:
    """ISO-8601 duration in hours/minutes/seconds, e.g. ``PT720H`` for 30 days."""
    total = value // timedelta(microseconds=1)
    if total == 0:
        return "PT0S"

    sign = "-" if total < 0 else ""
    hours, rest = divmod(abs(total), 3_600_000_000)
    minutes, rest = divmod(rest, 60_000_000)
    seconds, micros = divmod(rest, 1_000_000)

    text = "PT"
    if hours:
        text += f"{sign}{hours}H"
    if minutes:
        text += f"{sign}{minutes}M"
    if seconds or micros:
        text += f"{sign}{seconds}"
        if micros:
            text += f".{micros:06d}".rstrip("0")
        text += "S"
    return text


def _format_values(values: list[str]) -> str:
    return ",".join(values)


def _format_pairs(values: Mapping[str, bool]) -> str:
    return ",".join(f"{key}:{format_bool(flag)}" for key, flag in values.items())


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return format_bool(value)
    return str(value)


def _resolve_now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(UTC)
    if now.tzinfo is None:
        return now.replace(tzinfo=UTC)
    return now


def _invalid_rule(error: PydanticValidationError) -> ValidationError:
    # json round trip keeps the error list free of exception objects
    return ValidationError("Invalid targeting rule", errors=json.loads(error.json(include_url=False)))


# ============================================================================
# Variants
# ============================================================================


class BaseRule(BaseModel):
    """Common configuration of every targeting rule variant."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    rule_type: ClassVar[RuleType]

    def __init__(self, /, **data: Any) -> None:
        try:
            super().__init__(**data)
        except PydanticValidationError as e:
            raise _invalid_rule(e) from e

    @abstractmethod
    def is_enabled(self, context: EvaluationContext, now: datetime | None = None) -> bool:
        """Decide whether ``context`` is inside this rule."""

    @abstractmethod
    def extract(self, key: str) -> str | None:
        """Return the string form of the configured field named ``key``."""


class UserTargeting(BaseRule):
    """Explicit allow/deny lists plus a percentage of targeted users.

    Precedence: blacklist, then whitelist, then targeted ids admitted by
    percentage, then ``default_value``.
    """

    rule_type: ClassVar[RuleType] = RuleType.USER_TARGETING
    type: Literal["user_targeting"] = "user_targeting"

    whitelist: dict[str, bool] = Field(default_factory=dict, alias="whitelistedUsers")
    blacklist: dict[str, bool] = Field(default_factory=dict, alias="blacklistedUsers")
    targeted_ids: list[str] = Field(default_factory=list, alias="targetedUserIds")
    percentage: Percentage
    default_value: bool = False

    def is_enabled(self, context: EvaluationContext, now: datetime | None = None) -> bool:
        user_id = context.get_str("userId")
        if user_id is None:
            return False
        if user_id in self.blacklist:
            return self.blacklist[user_id]
        if user_id in self.whitelist:
            return self.whitelist[user_id]
        if user_id in self.targeted_ids and admitted_inclusive(user_id, self.percentage):
            return True
        return self.default_value

    def extract(self, key: str) -> str | None:
        match key:
            case "whitelistedUsers":
                return _format_pairs(self.whitelist)
            case "blacklistedUsers":
                return _format_pairs(self.blacklist)
            case "targetedUserIds":
                return _format_values(self.targeted_ids)
            case "percentage":
                return format_number(self.percentage)
            case "defaultValue":
                return format_bool(self.default_value)
        return None


class GroupTargeting(BaseRule):
    """Listed groups, admitted by percentage."""

    rule_type: ClassVar[RuleType] = RuleType.GROUP_TARGETING
    type: Literal["group_targeting"] = "group_targeting"

    group_ids: list[str]
    percentage: Percentage

    def is_enabled(self, context: EvaluationContext, now: datetime | None = None) -> bool:
        group_id = context.get_str("groupId")
        if group_id is None:
            return False
        return group_id in self.group_ids and admitted_inclusive(group_id, self.percentage)

    def extract(self, key: str) -> str | None:
        match key:
            case "groupIds":
                return _format_values(self.group_ids)
            case "percentage":
                return format_number(self.percentage)
        return None


class TimeBasedActivation(BaseRule):
    """On strictly between ``start_time`` and ``end_time``."""

    rule_type: ClassVar[RuleType] = RuleType.TIME_BASED_ACTIVATION
    type: Literal["time_based_activation"] = "time_based_activation"

    start_time: AwareDatetime
    end_time: AwareDatetime

    @field_serializer("start_time", "end_time", when_used="json")
    def _serialize_instant(self, value: datetime) -> str:
        return format_instant(value)

    def is_enabled(self, context: EvaluationContext, now: datetime | None = None) -> bool:
        current = _resolve_now(now)
        return self.start_time < current < self.end_time

    def extract(self, key: str) -> str | None:
        match key:
            case "startTime":
                return format_instant(self.start_time)
            case "endTime":
                return format_instant(self.end_time)
        return None


class GradualRollout(BaseRule):
    """Admission threshold moving linearly from start to end percentage.

    Before ``start_time`` the threshold is ``start_percentage``; after
    ``start_time + duration`` it is ``end_percentage``; in between it is
    interpolated over elapsed milliseconds.
    """

    rule_type: ClassVar[RuleType] = RuleType.GRADUAL_ROLLOUT
    type: Literal["gradual_rollout"] = "gradual_rollout"

    start_percentage: Percentage
    end_percentage: Percentage
    start_time: AwareDatetime
    duration: timedelta

    @field_validator("duration")
    @classmethod
    def _require_non_negative_duration(cls, value: timedelta) -> timedelta:
        if value < timedelta(0):
            msg = "Duration must not be negative"
            raise ValueError(msg)
        return value

    @field_serializer("start_time", when_used="json")
    def _serialize_instant(self, value: datetime) -> str:
        return format_instant(value)

    @field_serializer("duration", when_used="json")
    def _serialize_duration(self, value: timedelta) -> str:
        return format_duration(value)

    def threshold(self, now: datetime | None = None) -> float:
        """Admission percentage in force at ``now``."""
        current = _resolve_now(now)
        if current < self.start_time:
            return self.start_percentage
        if current > self.start_time + self.duration:
            return self.end_percentage

        one_ms = timedelta(milliseconds=1)
        elapsed_ms = (current - self.start_time) // one_ms
        duration_ms = self.duration // one_ms
        if duration_ms == 0:
            return self.end_percentage
        spread = self.end_percentage - self.start_percentage
        return self.start_percentage + spread * elapsed_ms / duration_ms

    def is_enabled(self, context: EvaluationContext, now: datetime | None = None) -> bool:
        user_id = context.get_str("userId")
        if user_id is None:
            return False
        return admitted_exclusive(user_id, self.threshold(now))

    def extract(self, key: str) -> str | None:
        match key:
            case "startPercentage":
                return format_number(self.start_percentage)
            case "endPercentage":
                return format_number(self.end_percentage)
            case "startTime":
                return format_instant(self.start_time)
            case "duration":
                return format_duration(self.duration)
        return None


class ABTestingConfig(BaseRule):
    """Two labelled variants; ``distribution`` percent of users get variant A.

    ``is_enabled`` answers "is this user in variant A".
    """

    rule_type: ClassVar[RuleType] = RuleType.AB_TESTING
    type: Literal["ab_testing"] = "ab_testing"

    variant_a: str
    variant_b: str
    distribution: Percentage

    def is_enabled(self, context: EvaluationContext, now: datetime | None = None) -> bool:
        user_id = context.get_str("userId")
        if user_id is None:
            return False
        return admitted_exclusive(user_id, self.distribution)

    def variant_for(self, context: EvaluationContext) -> str | None:
        """Label of the variant assigned to the context's user, if any."""
        if context.get_str("userId") is None:
            return None
        return self.variant_a if self.is_enabled(context) else self.variant_b

    def extract(self, key: str) -> str | None:
        match key:
            case "variantA":
                return self.variant_a
            case "variantB":
                return self.variant_b
            case "distribution":
                return format_number(self.distribution)
        return None


class VersionTargeting(BaseRule):
    """Application versions within ``[min_version, max_version]``."""

    rule_type: ClassVar[RuleType] = RuleType.VERSION_TARGETING
    type: Literal["version_targeting"] = "version_targeting"

    min_version: str
    max_version: str

    def is_enabled(self, context: EvaluationContext, now: datetime | None = None) -> bool:
        version = context.get_str("appVersion")
        if version is None:
            return False
        return in_range(version, self.min_version, self.max_version)

    def extract(self, key: str) -> str | None:
        match key:
            case "minVersion":
                return self.min_version
            case "maxVersion":
                return self.max_version
        return None


def _membership(
    context: EvaluationContext,
    first: tuple[str, list[str]],
    second: tuple[str, list[str]],
) -> bool:
    """Either attribute matches, or both when the context sets ``checkBoth=True``."""
    first_value = context.get_str(first[0])
    second_value = context.get_str(second[0])
    first_hit = first_value is not None and first_value in first[1]
    second_hit = second_value is not None and second_value in second[1]
    if context.get_bool("checkBoth") is True:
        return first_hit and second_hit
    return first_hit or second_hit


class GeographicTargeting(BaseRule):
    """Country and/or region membership."""

    rule_type: ClassVar[RuleType] = RuleType.GEOGRAPHIC_TARGETING
    type: Literal["geographic_targeting"] = "geographic_targeting"

    countries: list[str]
    regions: list[str]

    def is_enabled(self, context: EvaluationContext, now: datetime | None = None) -> bool:
        return _membership(context, ("country", self.countries), ("region", self.regions))

    def extract(self, key: str) -> str | None:
        match key:
            case "countries":
                return _format_values(self.countries)
            case "regions":
                return _format_values(self.regions)
        return None


class DeviceTargeting(BaseRule):
    """Platform (e.g. iOS, Web) and/or device type (e.g. Mobile, Desktop) membership."""

    rule_type: ClassVar[RuleType] = RuleType.DEVICE_TARGETING
    type: Literal["device_targeting"] = "device_targeting"

    platforms: list[str]
    device_types: list[str]

    def is_enabled(self, context: EvaluationContext, now: datetime | None = None) -> bool:
        return _membership(context, ("platform", self.platforms), ("deviceType", self.device_types))

    def extract(self, key: str) -> str | None:
        match key:
            case "platforms":
                return _format_values(self.platforms)
            case "deviceTypes":
                return _format_values(self.device_types)
        return None


class CustomRules(BaseRule):
    """Every configured attribute must be present and match case-insensitively."""

    rule_type: ClassVar[RuleType] = RuleType.CUSTOM_RULES
    type: Literal["custom_rules"] = "custom_rules"

    rules: dict[str, str]

    def is_enabled(self, context: EvaluationContext, now: datetime | None = None) -> bool:
        for key, expected in self.rules.items():
            value = context.get(key)
            if value is None or _stringify(value).casefold() != expected.casefold():
                return False
        return True

    def extract(self, key: str) -> str | None:
        return self.rules.get(key)


TargetingRule = Annotated[
    UserTargeting
    | GroupTargeting
    | TimeBasedActivation
    | GradualRollout
    | ABTestingConfig
    | VersionTargeting
    | GeographicTargeting
    | DeviceTargeting
    | CustomRules,
    Field(discriminator="type"),
]

rule_adapter: TypeAdapter[TargetingRule] = TypeAdapter(TargetingRule)


def parse_rule(data: BaseRule | Mapping[str, Any] | str | bytes) -> TargetingRule:
    """Decode a rule from its serialized form.

    Accepts a rule instance (returned unchanged), a mapping with a ``type``
    tag, or a JSON document.

    Raises:
        ValidationError: The payload is not a valid rule.
    """
    if isinstance(data, BaseRule):
        return data  # type: ignore[return-value]
    try:
        if isinstance(data, str | bytes):
            return rule_adapter.validate_json(data)
        return rule_adapter.validate_python(dict(data))
    except PydanticValidationError as e:
        raise _invalid_rule(e) from e


def dump_rule(rule: BaseRule) -> dict[str, Any]:
    """Serialized (camelCase, JSON-safe) form of a rule."""
    return rule.model_dump(mode="json", by_alias=True)


__all__ = [
    "ABTestingConfig",
    "BaseRule",
    "CustomRules",
    "DeviceTargeting",
    "GeographicTargeting",
    "GradualRollout",
    "GroupTargeting",
    "Percentage",
    "RuleType",
    "TargetingRule",
    "TimeBasedActivation",
    "UserTargeting",
    "VersionTargeting",
    "dump_rule",
    "format_duration",
    "format_instant",
    "parse_rule",
    "rule_adapter",
]
