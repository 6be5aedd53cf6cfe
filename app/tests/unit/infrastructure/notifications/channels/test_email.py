"""Unit tests for the email channel."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from infrastructure.configuration.integrations.notify import NotifySettings
from infrastructure.notifications.channels.email import EmailChannel
from infrastructure.notifications.errors import ValidationError
from infrastructure.notifications.models import ChannelKind
from infrastructure.operations import OperationStatus


@pytest.mark.unit
class TestEmailChannel:
    @pytest.fixture
    def channel(self, notify_settings):
        return EmailChannel(notify_settings)

    @patch("infrastructure.notifications.channels.email.send_email")
    def test_send_success(self, mock_send_email, channel, payload, options_factory):
        response = MagicMock()
        response.json.return_value = {"id": "notification_12345"}
        mock_send_email.return_value = response

        result = channel.send("Guest@Example.com", payload, options_factory())

        assert result.is_success
        assert result.data.channel_kind == ChannelKind.EMAIL
        assert result.data.provider_message_id == "notification_12345"
        kwargs = mock_send_email.call_args.kwargs
        assert kwargs["template_id"] == "template-1"
        assert kwargs["reference"] == "req-1"
        assert kwargs["personalisation"]["subject"] == "Room available"
        assert kwargs["personalisation"]["price"] == "18000"

    @patch("infrastructure.notifications.channels.email.send_email")
    def test_invalid_address_is_permanent(
        self, mock_send_email, channel, payload, options_factory
    ):
        result = channel.send("not-an-email", payload, options_factory())

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == "INVALID_DESTINATION"
        mock_send_email.assert_not_called()

    @patch("infrastructure.notifications.channels.email.send_email")
    def test_rejected_request_is_permanent(
        self, mock_send_email, channel, payload, options_factory, http_error
    ):
        mock_send_email.side_effect = http_error(400)

        result = channel.send("guest@example.com", payload, options_factory())

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == "HTTP_ERROR"
        assert not result.is_destination_gone

    @patch("infrastructure.notifications.channels.email.send_email")
    def test_rate_limit_is_transient(
        self, mock_send_email, channel, payload, options_factory, http_error
    ):
        mock_send_email.side_effect = http_error(429, headers={"Retry-After": "30"})

        result = channel.send("guest@example.com", payload, options_factory())

        assert result.is_transient
        assert result.retry_after == 30

    @patch("infrastructure.notifications.channels.email.send_email")
    def test_bad_credentials(self, mock_send_email, channel, payload, options_factory, http_error):
        mock_send_email.side_effect = http_error(403)

        result = channel.send("guest@example.com", payload, options_factory())

        assert result.status == OperationStatus.UNAUTHORIZED

    def test_unconfigured(self, payload, options_factory):
        channel = EmailChannel(NotifySettings(NOTIFY_API_URL=""))

        result = channel.send("guest@example.com", payload, options_factory())

        assert result.status == OperationStatus.UNAUTHORIZED
        assert result.error_code == "NOT_CONFIGURED"

    def test_validate_destination(self, channel):
        assert channel.validate_destination(" guest@example.com ") == "guest@example.com"
        with pytest.raises(ValidationError):
            channel.validate_destination("guest@")

    @patch("infrastructure.notifications.channels.email.get_status")
    def test_probe(self, mock_get_status, channel):
        assert channel.probe().is_success

        mock_get_status.side_effect = requests.Timeout("slow")
        assert channel.probe().error_code == "TIMEOUT"
