"""Feature-level fixtures for notification channel tests."""

from unittest.mock import MagicMock

import pytest
import requests

from infrastructure.configuration.integrations.notify import NotifySettings
from infrastructure.configuration.integrations.push import PushSettings
from infrastructure.configuration.integrations.slack import SlackSettings
from infrastructure.configuration.integrations.sms import SMSSettings
from infrastructure.notifications.channels.base import SendOptions
from infrastructure.notifications.models import (
    NotificationPayload,
    NotificationType,
    Priority,
)
from infrastructure.operations import OperationResult


@pytest.fixture
def payload():
    return NotificationPayload(
        title="Room available",
        body="Hotel Sakura, 2026-04-01 - 2026-04-03",
        attributes={"hotel_id": "h-1", "price": 18000},
    )


@pytest.fixture
def options_factory():
    """Factory for SendOptions with overridable fields.

    Example:
        options = options_factory(priority=Priority.CRITICAL)
    """

    def _factory(**kwargs):
        defaults = {
            "request_id": "req-1",
            "priority": Priority.HIGH,
            "notification_type": NotificationType.PRICE_DROP,
        }
        defaults.update(kwargs)
        return SendOptions(**defaults)

    return _factory


@pytest.fixture
def push_settings():
    return PushSettings(
        PUSH_GATEWAY_URL="https://push.example.com",
        PUSH_GATEWAY_ISSUER="issuer",
        PUSH_GATEWAY_SECRET="secret",
        DEFAULT_TTL_SECONDS=86400,
        ALERT_TTL_SECONDS=600,
    )


@pytest.fixture
def sms_settings():
    return SMSSettings(
        GLOBAL_PER_MINUTE=100,
        PER_DESTINATION_PER_HOUR=10,
        MAX_LENGTH=160,
        MMS_ENABLED=False,
    )


@pytest.fixture
def notify_settings():
    return NotifySettings(
        NOTIFY_SERVICE_ID="service-id",
        NOTIFY_API_SECRET="secret",
        NOTIFY_API_URL="https://api.notify.example.com",
        NOTIFY_EMAIL_TEMPLATE_ID="template-1",
    )


@pytest.fixture
def slack_settings():
    return SlackSettings(SLACK_TOKEN="xoxb-test", SLACK_OPS_CHANNEL="C0PS")


@pytest.fixture
def sms_provider_factory():
    """Factory for mock SMS providers.

    Example:
        twilio = sms_provider_factory("twilio", message_id="SM1")
    """

    def _factory(name, message_id="msg-1", result=None):
        provider = MagicMock()
        provider.name = name
        provider.send.return_value = result or OperationResult.success(
            data={"message_id": message_id}
        )
        provider.probe.return_value = OperationResult.success(message=f"{name} reachable")
        return provider

    return _factory


@pytest.fixture
def http_error():
    """Factory for requests.HTTPError carrying a response with a status code."""

    def _factory(status_code, headers=None):
        response = requests.Response()
        response.status_code = status_code
        response._content = b""
        if headers:
            response.headers.update(headers)
        return requests.HTTPError(f"{status_code} error", response=response)

    return _factory


@pytest.fixture
def mock_slack_client():
    """Mock Slack WebClient with successful API responses."""
    client = MagicMock()
    client.auth_test.return_value = {"ok": True, "team": "Test Team", "user": "bot"}
    client.users_lookupByEmail.return_value = {"ok": True, "user": {"id": "U12345TEST"}}
    client.conversations_open.return_value = {"ok": True, "channel": {"id": "D12345TEST"}}
    client.chat_postMessage.return_value = {"ok": True, "ts": "1712345678.000100"}
    return client
