"""Unit tests for the event logging handler."""

import pytest
from unittest.mock import MagicMock

from infrastructure.events.handlers.logging import LoggingHandler
from infrastructure.events.models import CHANNEL_HEALTH_CHANGED, DISPATCH_FAILED

pytestmark = pytest.mark.unit


@pytest.fixture
def handler():
    instance = LoggingHandler()
    instance.log = MagicMock()
    return instance


def test_binds_event_fields(handler, event_factory):
    handler.handle(event_factory(channel_kind="push"))

    handler.log.bind.assert_called_once_with(
        event_type="dispatch.succeeded",
        request_id="req-1",
        channel_kind="push",
    )


def test_success_events_log_at_info(handler, event_factory):
    bound = handler.log.bind.return_value

    handler(event_factory(detail={"attempt": 1}))

    bound.info.assert_called_once_with(
        "dispatch.succeeded",
        detail={"attempt": 1},
        timestamp="2026-03-10T03:00:00+00:00",
    )
    bound.warning.assert_not_called()


def test_failures_log_at_warning(handler, event_factory):
    bound = handler.log.bind.return_value

    handler.handle(event_factory(event_type=DISPATCH_FAILED, detail={"error_code": "TIMEOUT"}))

    bound.warning.assert_called_once()
    assert bound.warning.call_args.kwargs["detail"] == {"error_code": "TIMEOUT"}


def test_health_events_have_no_request(handler, event_factory):
    handler.handle(event_factory(event_type=CHANNEL_HEALTH_CHANGED, request_id=None))

    assert handler.log.bind.call_args.kwargs["request_id"] is None


def test_logging_errors_are_reported(handler, event_factory):
    bound = handler.log.bind.return_value
    bound.info.side_effect = TypeError("not serializable")

    handler.handle(event_factory())

    bound.error.assert_called_once_with("failed_to_log_event", error="not serializable")


def test_breaker_opening_logs_at_warning(handler, event_factory):
    bound = handler.log.bind.return_value

    handler.handle(
        event_factory(
            event_type=CHANNEL_HEALTH_CHANGED,
            request_id=None,
            detail={"previous_state": "closed", "state": "open"},
        )
    )

    bound.warning.assert_called_once()
    assert bound.warning.call_args.args == (CHANNEL_HEALTH_CHANGED,)


def test_breaker_recovery_logs_at_info(handler, event_factory):
    bound = handler.log.bind.return_value

    handler.handle(
        event_factory(
            event_type=CHANNEL_HEALTH_CHANGED,
            request_id=None,
            detail={"previous_state": "half_open", "state": "closed"},
        )
    )

    bound.info.assert_called_once()
    bound.warning.assert_not_called()
