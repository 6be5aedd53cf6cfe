"""Unit tests for notification models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from infrastructure.notifications.errors import DispatchTimeout
from infrastructure.notifications.models import (
    AttemptOutcome,
    BatchResult,
    ChannelHealth,
    ChannelKind,
    DispatchAttempt,
    DispatchResult,
    DispatchStatus,
    NotificationRequest,
    NotificationType,
    Priority,
    QuietHours,
    SubscriberPreferences,
)


@pytest.mark.unit
class TestPriority:
    def test_ordered_highest_first(self):
        assert Priority.ordered() == [
            Priority.CRITICAL,
            Priority.HIGH,
            Priority.MEDIUM,
            Priority.LOW,
        ]

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("urgent", Priority.CRITICAL),
            ("normal", Priority.MEDIUM),
            ("HIGH", Priority.HIGH),
            (" low ", Priority.LOW),
        ],
    )
    def test_priority_aliases(self, raw, expected):
        request = NotificationRequest(subscriber_id="user-1", priority=raw)
        assert request.priority == expected

    def test_unknown_priority_is_rejected(self):
        with pytest.raises(PydanticValidationError):
            NotificationRequest(subscriber_id="user-1", priority="asap")


@pytest.mark.unit
class TestNotificationRequest:
    def test_request_is_immutable(self):
        request = NotificationRequest(subscriber_id="user-1")
        with pytest.raises(PydanticValidationError):
            request.priority = Priority.LOW

    def test_generates_unique_ids(self):
        assert NotificationRequest(subscriber_id="a").id != NotificationRequest(subscriber_id="a").id

    def test_requested_channels_are_deduplicated_in_order(self):
        request = NotificationRequest(
            subscriber_id="user-1", requested_channels=["sms", "PUSH", "sms", ChannelKind.PUSH]
        )
        assert request.requested_channels == (ChannelKind.SMS, ChannelKind.PUSH)

    def test_from_inbound_maps_camel_case(self):
        request = NotificationRequest.from_inbound(
            {
                "id": "req-9",
                "subscriberId": "user-9",
                "priority": "urgent",
                "type": "cancellation_alert",
                "payload": {"title": "Room available", "body": "Book now"},
                "requestedChannels": ["push", "sms"],
                "context": {
                    "bypassQuietHours": True,
                    "bypassDailyLimit": True,
                    "requireAllChannelsAttempted": True,
                    "deadline": "2026-03-10T03:00:00",
                },
            }
        )

        assert request.id == "req-9"
        assert request.subscriber_id == "user-9"
        assert request.priority == Priority.CRITICAL
        assert request.notification_type == NotificationType.CANCELLATION_ALERT
        assert request.requested_channels == (ChannelKind.PUSH, ChannelKind.SMS)
        assert request.context.bypass_quiet_hours is True
        assert request.context.bypass_daily_limit is True
        assert request.context.require_all_channels_attempted is True
        assert request.context.deadline == datetime(2026, 3, 10, 3, 0, tzinfo=timezone.utc)

    def test_from_inbound_accepts_snake_case_and_defaults(self):
        request = NotificationRequest.from_inbound(
            {"subscriber_id": "user-1", "payload": {"body": "hello"}, "context": None}
        )

        assert request.priority == Priority.MEDIUM
        assert request.notification_type == NotificationType.GENERAL
        assert request.requested_channels == ()
        assert request.context.bypass_quiet_hours is False


@pytest.mark.unit
class TestQuietHours:
    @pytest.mark.parametrize("hour,quiet", [(21, False), (22, True), (0, True), (6, True), (7, False)])
    def test_window_wraps_midnight(self, hour, quiet):
        assert QuietHours(start=22, end=7).contains(hour) is quiet

    @pytest.mark.parametrize("hour,quiet", [(12, False), (13, True), (14, True), (15, False)])
    def test_same_day_window(self, hour, quiet):
        assert QuietHours(start=13, end=15).contains(hour) is quiet

    def test_equal_bounds_mean_no_window(self):
        assert not any(QuietHours(start=5, end=5).contains(h) for h in range(24))

    def test_rejects_out_of_range_hour(self):
        with pytest.raises(PydanticValidationError):
            QuietHours(start=24, end=7)


@pytest.mark.unit
class TestSubscriberPreferences:
    def test_defaults(self):
        prefs = SubscriberPreferences()
        assert prefs.max_per_day == 10
        assert prefs.quiet_hours == QuietHours(start=22, end=7)
        assert prefs.allows(NotificationType.FLASH_SALE) is True

    def test_enabled_types_restrict(self):
        prefs = SubscriberPreferences(enabled_types={NotificationType.PRICE_DROP})
        assert prefs.allows(NotificationType.PRICE_DROP) is True
        assert prefs.allows(NotificationType.FLASH_SALE) is False

    def test_unknown_timezone_rejected(self):
        with pytest.raises(PydanticValidationError):
            SubscriberPreferences(timezone="Mars/Olympus")

    def test_negative_cap_rejected(self):
        with pytest.raises(PydanticValidationError):
            SubscriberPreferences(max_per_day=-1)


def _attempt(kind, outcome, code=None):
    return DispatchAttempt(request_id="r", channel_kind=kind, outcome=outcome, error_code=code)


@pytest.mark.unit
class TestDispatchResult:
    def test_channel_views(self):
        result = DispatchResult(
            request_id="r",
            status=DispatchStatus.DELIVERED,
            success=True,
            attempts=[
                _attempt(ChannelKind.EMAIL, AttemptOutcome.SKIPPED, "NO_SUBSCRIPTION"),
                _attempt(ChannelKind.PUSH, AttemptOutcome.TRANSIENT_FAILURE),
                _attempt(ChannelKind.PUSH, AttemptOutcome.TRANSIENT_FAILURE),
                _attempt(ChannelKind.SMS, AttemptOutcome.SUCCESS),
            ],
            channels_succeeded=[ChannelKind.SMS],
        )

        assert result.channels_attempted == [ChannelKind.PUSH, ChannelKind.SMS]
        assert result.channels_failed == [ChannelKind.PUSH]
        assert result.channels_skipped == {ChannelKind.EMAIL: "NO_SUBSCRIPTION"}
        assert result.raise_for_status() is result

    @pytest.mark.parametrize(
        "status,suppressed",
        [
            (DispatchStatus.QUIET_HOURS_SUPPRESSED, True),
            (DispatchStatus.RATE_LIMITED, True),
            (DispatchStatus.OPTED_OUT, True),
            (DispatchStatus.NO_ACTIVE_CHANNELS, False),
            (DispatchStatus.ALL_CHANNELS_FAILED, False),
        ],
    )
    def test_suppressed_statuses(self, status, suppressed):
        assert DispatchResult(request_id="r", status=status).is_suppressed is suppressed

    def test_timed_out_raises(self):
        result = DispatchResult(request_id="r", status=DispatchStatus.TIMED_OUT)
        with pytest.raises(DispatchTimeout):
            result.raise_for_status()

    def test_suppression_does_not_raise(self):
        result = DispatchResult(request_id="r", status=DispatchStatus.RATE_LIMITED)
        assert result.raise_for_status() is result

    def test_json_round_trip_keeps_enums(self):
        result = DispatchResult(
            request_id="r",
            status=DispatchStatus.DELIVERED,
            success=True,
            channels_succeeded=[ChannelKind.SMS],
        )
        restored = DispatchResult.model_validate(result.model_dump(mode="json"))
        assert restored == result


@pytest.mark.unit
class TestBatchResult:
    def test_add_counts_by_outcome(self):
        batch = BatchResult()
        batch.add(DispatchResult(request_id="a", status=DispatchStatus.DELIVERED, success=True))
        batch.add(DispatchResult(request_id="b", status=DispatchStatus.RATE_LIMITED))
        batch.add(DispatchResult(request_id="c", status=DispatchStatus.NO_ACTIVE_CHANNELS))

        assert (batch.total_sent, batch.total_suppressed, batch.total_failed) == (1, 1, 1)


@pytest.mark.unit
def test_channel_health_requires_closed_circuit_and_good_probe():
    assert ChannelHealth(channel_kind=ChannelKind.SMS, state="closed").healthy is True
    assert ChannelHealth(channel_kind=ChannelKind.SMS, state="open").healthy is False
    assert (
        ChannelHealth(channel_kind=ChannelKind.SMS, state="closed", last_probe_ok=False).healthy
        is False
    )
