"""Fixtures wiring a NotificationService around scripted channel adapters.

Integration tests exercise the whole engine (admission control, advisor,
failover, health, idempotency, events) and only fake the provider edge.
"""

import pytest

from infrastructure.configuration import DispatchSettings, Settings
from infrastructure.configuration.infrastructure import CircuitBreakerSettings
from infrastructure.idempotency import InMemoryIdempotencyCache
from infrastructure.notifications.models import ChannelKind
from infrastructure.notifications.service import NotificationService
from infrastructure.security import DestinationCipher
from tests.factories.notifications import FakeChannel


@pytest.fixture
def settings():
    return Settings(
        dispatch=DispatchSettings(
            advisor_enabled=False,
            batch_pause_ms=0,
            retry_base_delay_ms=0,
            retry_max_delay_ms=0,
        ),
        circuit_breaker=CircuitBreakerSettings(failure_threshold=3, cooldown_seconds=60),
    )


@pytest.fixture
def adapters():
    """One scripted adapter per channel kind, keyed by kind."""
    return {kind: FakeChannel(kind) for kind in ChannelKind}


@pytest.fixture
def captured_events():
    return []


@pytest.fixture
def service(settings, adapters, captured_events):
    instance = NotificationService(
        settings,
        adapters=list(adapters.values()),
        idempotency_cache=InMemoryIdempotencyCache(),
        cipher=DestinationCipher(key=DestinationCipher.generate_key()),
    )
    instance.event_bus.subscribe("*", captured_events.append)
    yield instance
    instance.stop()


@pytest.fixture
def subscriber(service):
    """Subscriber with push and SMS active and no quiet window."""
    from tests.factories.notifications import make_preferences

    service.register_subscriber("user-1", make_preferences(max_per_day=10))
    service.subscribe("user-1", ChannelKind.PUSH, '{"endpoint": "https://push.example/abc"}')
    service.subscribe("user-1", ChannelKind.SMS, "+819012345678")
    return "user-1"
