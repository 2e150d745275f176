"""Change notifications for flag mutations."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import httpx

from flag_service.infra.logging import get_lazy_logger

from .exceptions import NotifierError
from .schemas import ChangeKind

if TYPE_CHECKING:
    from flag_service.core.settings import FeatureFlagSettings

    from .schemas import FlagRecord

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)


@runtime_checkable
class ChangeNotifier(Protocol):
    """Receives one call per committed flag mutation."""

    async def notify(self, record: FlagRecord, kind: ChangeKind) -> None: ...


@dataclass(frozen=True)
class SlackNotifierConfig:
    """Where and how to post change messages."""

    webhook_url: str
    api_key: str | None = None
    client_id: str | None = None
    excluded_statuses: frozenset[ChangeKind] = field(default_factory=frozenset)
    timeout: float = 10.0

    @property
    def request_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if self.client_id:
            headers["X-Client-Id"] = self.client_id
        return headers

    @classmethod
    def from_settings(cls, settings: FeatureFlagSettings) -> SlackNotifierConfig:
        """Build from settings.

        Raises:
            ValueError: No webhook URL is configured, or an excluded status is
                not a known change kind.
        """
        if settings.slack_webhook_url is None:
            msg = "FEATURE_FLAGS_SLACK_WEBHOOK_URL is not set"
            raise ValueError(msg)

        return cls(
            webhook_url=str(settings.slack_webhook_url),
            api_key=settings.slack_api_key.get_secret_value() if settings.slack_api_key else None,
            client_id=settings.slack_client_id,
            excluded_statuses=frozenset(ChangeKind(status) for status in settings.excluded_statuses),
            timeout=settings.slack_timeout,
        )


def format_message(record: FlagRecord, kind: ChangeKind) -> str:
    return f"Feature Flag[Code=`{record.code}`] has been {kind.value}"


class SlackNotifier:
    """Posts a one-line message to a Slack incoming webhook per change.

    Kinds listed in ``config.excluded_statuses`` are dropped silently.
    Delivery failures raise :class:`~.exceptions.NotifierError`.

    Example:
        notifier = SlackNotifier(SlackNotifierConfig(webhook_url="https://hooks.slack.com/..."))
        await notifier.notify(record, ChangeKind.ENABLED)
    """

    def __init__(self, config: SlackNotifierConfig, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the notifier.

        Args:
            config: Webhook location, credentials and exclusions.
            client: Shared HTTP client. When omitted a short-lived client is
                opened for each message.
        """
        self.config = config
        self._client = client

    async def notify(self, record: FlagRecord, kind: ChangeKind) -> None:
        if kind in self.config.excluded_statuses:
            lazy_logger.debug(lambda: f"notify: skipping excluded kind {kind} for {record.code}")
            return

        payload = {"text": format_message(record, kind)}
        try:
            response = await self._post(payload)
        except httpx.HTTPError as e:
            logger.warning(
                "Slack notification failed",
                extra={
                    "code": record.code,
                    "kind": kind.value,
                    "error": str(e),
                    "operation": "featureflags.notify",
                },
            )
            msg = f"Failed to send notification for feature flag '{record.code}': {e}"
            raise NotifierError(msg, code=record.code, kind=kind.value) from e

        if not response.is_success:
            logger.warning(
                "Slack notification rejected with non-2xx status",
                extra={
                    "code": record.code,
                    "kind": kind.value,
                    "status_code": response.status_code,
                    "operation": "featureflags.notify",
                },
            )
            msg = (
                f"Failed to send notification for feature flag '{record.code}': "
                f"HTTP {response.status_code}"
            )
            raise NotifierError(msg, code=record.code, kind=kind.value)

        logger.info(
            "Slack notification sent",
            extra={"code": record.code, "kind": kind.value, "operation": "featureflags.notify"},
        )

    async def _post(self, payload: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(
                self.config.webhook_url,
                json=payload,
                headers=self.config.request_headers,
                timeout=self.config.timeout,
            )

        async with httpx.AsyncClient(timeout=self.config.timeout) as client:
            return await client.post(
                self.config.webhook_url,
                json=payload,
                headers=self.config.request_headers,
            )


__all__ = ["ChangeNotifier", "SlackNotifier", "SlackNotifierConfig", "format_message"]
