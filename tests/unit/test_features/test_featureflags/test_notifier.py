"""Tests for Slack change notifications."""

from __future__ import annotations

from datetime import UTC, datetime
import json
from uuid import uuid4

import httpx
import pytest
import respx

from flag_service.core.settings import FeatureFlagSettings
from flag_service.features.featureflags import (
    ChangeKind,
    ChangeNotifier,
    FlagRecord,
    NotifierError,
    SlackNotifier,
    SlackNotifierConfig,
)
from flag_service.features.featureflags.notifier import format_message

WEBHOOK_URL = "https://hooks.slack.com/services/T000/B000/XXXX"


def make_record(code: str = "checkout") -> FlagRecord:
    return FlagRecord(
        id=uuid4(),
        code=code,
        name="Checkout",
        created_at=datetime(2026, 1, 1, tzinfo=UTC),
    )


def make_notifier(**kwargs) -> SlackNotifier:
    return SlackNotifier(SlackNotifierConfig(webhook_url=WEBHOOK_URL, **kwargs))


def test_format_message() -> None:
    message = format_message(make_record("new_checkout"), ChangeKind.DISABLED)

    assert message == "Feature Flag[Code=`new_checkout`] has been disabled"


def test_slack_notifier_satisfies_protocol() -> None:
    assert isinstance(make_notifier(), ChangeNotifier)


class TestSlackNotifierConfig:
    """Tests for SlackNotifierConfig."""

    def test_headers_without_credentials(self) -> None:
        config = SlackNotifierConfig(webhook_url=WEBHOOK_URL)

        assert config.request_headers == {"Content-Type": "application/json"}

    def test_headers_with_credentials(self) -> None:
        config = SlackNotifierConfig(webhook_url=WEBHOOK_URL, api_key="secret", client_id="svc-1")

        assert config.request_headers == {
            "Content-Type": "application/json",
            "Authorization": "Bearer secret",
            "X-Client-Id": "svc-1",
        }

    def test_from_settings(self) -> None:
        settings = FeatureFlagSettings(
            slack_webhook_url=WEBHOOK_URL,
            slack_api_key="secret",
            slack_client_id="svc-1",
            slack_timeout=3.0,
            excluded_statuses="created, UPDATED",
        )

        config = SlackNotifierConfig.from_settings(settings)

        assert config.webhook_url == WEBHOOK_URL
        assert config.api_key == "secret"
        assert config.client_id == "svc-1"
        assert config.timeout == 3.0
        assert config.excluded_statuses == frozenset({ChangeKind.CREATED, ChangeKind.UPDATED})

    def test_from_settings_requires_webhook(self) -> None:
        with pytest.raises(ValueError, match="SLACK_WEBHOOK_URL"):
            SlackNotifierConfig.from_settings(FeatureFlagSettings())

    def test_from_settings_rejects_unknown_status(self) -> None:
        settings = FeatureFlagSettings(slack_webhook_url=WEBHOOK_URL, excluded_statuses=["archived"])

        with pytest.raises(ValueError):
            SlackNotifierConfig.from_settings(settings)


class TestSlackNotifier:
    """Tests for SlackNotifier.notify."""

    @respx.mock
    async def test_posts_message_with_headers(self) -> None:
        route = respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(200, text="ok"))
        notifier = make_notifier(api_key="secret", client_id="svc-1")

        await notifier.notify(make_record(), ChangeKind.CREATED)

        assert route.call_count == 1
        request = route.calls.last.request
        assert json.loads(request.content) == {
            "text": "Feature Flag[Code=`checkout`] has been created"
        }
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.headers["X-Client-Id"] == "svc-1"
        assert request.headers["Content-Type"] == "application/json"

    @respx.mock
    async def test_uses_shared_client(self) -> None:
        route = respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(204))

        async with httpx.AsyncClient() as client:
            notifier = SlackNotifier(SlackNotifierConfig(webhook_url=WEBHOOK_URL), client=client)
            await notifier.notify(make_record(), ChangeKind.ENABLED)

        assert route.called

    @respx.mock
    async def test_excluded_kind_is_not_sent(self) -> None:
        route = respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(200))
        notifier = make_notifier(excluded_statuses=frozenset({ChangeKind.UPDATED}))

        await notifier.notify(make_record(), ChangeKind.UPDATED)

        assert not route.called

    @respx.mock
    async def test_non_success_status_raises(self) -> None:
        respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(500, text="boom"))

        with pytest.raises(NotifierError, match="HTTP 500") as exc_info:
            await make_notifier().notify(make_record(), ChangeKind.DELETED)

        assert exc_info.value.code == "checkout"
        assert exc_info.value.kind == "deleted"
        assert exc_info.value.status_code == 502

    @respx.mock
    async def test_transport_error_raises(self) -> None:
        respx.post(WEBHOOK_URL).mock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(NotifierError) as exc_info:
            await make_notifier().notify(make_record(), ChangeKind.CREATED)

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
