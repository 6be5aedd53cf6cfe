"""Fixtures for infrastructure event system tests."""

import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from infrastructure.events.dispatcher import EventBus
from infrastructure.events.models import DISPATCH_SUCCEEDED, Event


@pytest.fixture
def event_factory():
    """Factory for creating test events."""

    def _factory(
        event_type: str = DISPATCH_SUCCEEDED,
        request_id: str = "req-1",
        channel_kind: str = "sms",
        timestamp: datetime = None,
        detail: dict = None,
    ):
        return Event(
            event_type=event_type,
            request_id=request_id,
            channel_kind=channel_kind,
            timestamp=timestamp or datetime(2026, 3, 10, 3, 0, tzinfo=timezone.utc),
            detail=detail or {},
        )

    return _factory


@pytest.fixture
def bus():
    """Event bus stopped at teardown."""
    instance = EventBus()
    yield instance
    instance.stop()


@pytest.fixture
def mock_event_handler():
    """Mock event handler function."""
    return MagicMock()
