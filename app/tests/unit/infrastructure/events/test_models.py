"""Unit tests for infrastructure event models."""

import pytest
from datetime import datetime, timezone

from infrastructure.events.models import (
    CHANNEL_HEALTH_CHANGED,
    DISPATCH_FAILED,
    EVENT_TYPES,
    Event,
)

pytestmark = pytest.mark.unit


class TestEvent:
    """Tests for the Event record."""

    def test_event_creation_with_defaults(self):
        event = Event(event_type=CHANNEL_HEALTH_CHANGED)

        assert event.request_id is None
        assert event.channel_kind is None
        assert event.detail == {}
        assert event.timestamp.tzinfo is not None

    def test_event_is_immutable(self, event_factory):
        event = event_factory()

        with pytest.raises(AttributeError):
            event.event_type = DISPATCH_FAILED

    def test_event_is_hashable(self, event_factory):
        event = event_factory(detail={"attempt": 1})

        assert event in {event}

    def test_to_dict_serialization(self, event_factory):
        event = event_factory(event_type=DISPATCH_FAILED, detail={"error_code": "TIMEOUT"})

        data = event.to_dict()

        assert data == {
            "event_type": "dispatch.failed",
            "request_id": "req-1",
            "channel_kind": "sms",
            "timestamp": "2026-03-10T03:00:00+00:00",
            "detail": {"error_code": "TIMEOUT"},
        }

    def test_from_dict_restores_event(self, event_factory):
        original = event_factory(detail={"attempt": 2})

        restored = Event.from_dict(original.to_dict())

        assert restored == original

    def test_from_dict_defaults_timestamp(self):
        event = Event.from_dict({"event_type": DISPATCH_FAILED})

        assert isinstance(event.timestamp, datetime)
        assert event.timestamp <= datetime.now(timezone.utc)

    def test_from_dict_missing_type_raises(self):
        with pytest.raises(ValueError, match="Invalid event data"):
            Event.from_dict({"request_id": "abc"})

    def test_from_dict_bad_timestamp_raises(self):
        with pytest.raises(ValueError, match="Invalid event data"):
            Event.from_dict({"event_type": DISPATCH_FAILED, "timestamp": "yesterday"})


def test_event_types_are_unique():
    assert len(set(EVENT_TYPES)) == len(EVENT_TYPES) == 4
