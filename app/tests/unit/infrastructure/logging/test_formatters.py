"""Unit tests for infrastructure.logging.formatters module.

Tests cover:
- mask_sensitive_data processor
- mask_value / mask_destinations processors
- truncate_large_values processor
"""

import pytest

from infrastructure.logging.formatters import (
    DESTINATION_KEYS,
    SENSITIVE_PATTERNS,
    mask_destinations,
    mask_sensitive_data,
    mask_value,
    truncate_large_values,
)


@pytest.mark.unit
class TestMaskSensitiveData:
    """Test suite for mask_sensitive_data processor factory."""

    def test_masks_credentials(self):
        processor = mask_sensitive_data()
        event_dict = {
            "event": "provider_configured",
            "api_key": "abc123",
            "SLACK_TOKEN": "xoxb-1",
            "encryption_key": "k",
            "provider": "twilio",
        }

        result = processor(None, "info", event_dict)

        assert result["api_key"] == "***REDACTED***"
        assert result["SLACK_TOKEN"] == "***REDACTED***"
        assert result["encryption_key"] == "***REDACTED***"
        assert result["provider"] == "twilio"

    def test_none_values_are_kept(self):
        processor = mask_sensitive_data()

        result = processor(None, "info", {"event": "x", "token": None})

        assert result["token"] is None

    def test_custom_mask_and_patterns(self):
        processor = mask_sensitive_data(
            mask_value="[hidden]", additional_patterns=frozenset({"subscription_key"})
        )

        result = processor(None, "info", {"event": "x", "subscription_key": "p256dh"})

        assert result["subscription_key"] == "[hidden]"

    def test_patterns_cover_common_secrets(self):
        assert {"password", "token", "api_key", "secret"} <= SENSITIVE_PATTERNS


@pytest.mark.unit
class TestMaskValue:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("+819012345678", "*********5678"),
            ("user@example.com", "u***@example.com"),
            ("123", "***"),
            ("https://push.example.com/abcdef", "***************************cdef"),
        ],
    )
    def test_mask_value(self, value, expected):
        assert mask_value(value) == expected


@pytest.mark.unit
class TestMaskDestinations:
    def test_masks_destination_keys(self):
        processor = mask_destinations()

        result = processor(
            None,
            "info",
            {"event": "sms_sent", "phone_number": "+819012345678", "channel": "sms"},
        )

        assert result["phone_number"] == "*********5678"
        assert result["channel"] == "sms"

    def test_masks_phone_numbers_in_event(self):
        processor = mask_destinations()

        result = processor(None, "info", {"event": "sending to +81 90 1234 5678"})

        assert "1234 5678" not in result["event"]
        assert result["event"].endswith("5678")

    def test_ignores_non_string_values(self):
        processor = mask_destinations()

        result = processor(None, "info", {"event": "x", "to": ["a", "b"]})

        assert result["to"] == ["a", "b"]

    def test_destination_keys(self):
        assert {"destination", "phone_number", "email", "endpoint"} <= DESTINATION_KEYS


@pytest.mark.unit
class TestTruncateLargeValues:
    def test_truncates_long_strings(self):
        processor = truncate_large_values(max_length=10)

        result = processor(None, "info", {"event": "x", "body": "a" * 25})

        assert result["body"] == "a" * 10 + "...[truncated, 25 chars total]"

    def test_short_values_untouched(self):
        processor = truncate_large_values()

        result = processor(None, "info", {"event": "x", "body": "short", "count": 3})

        assert result == {"event": "x", "body": "short", "count": 3}
