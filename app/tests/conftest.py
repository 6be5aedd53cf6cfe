"""Shared fixtures for the notification engine tests.

Components are wired the way NotificationService wires them, with scripted
channel adapters, injectable clocks and zero backoff so tests run fast and
deterministically.
"""

from typing import Callable, Dict, Iterable, List

import pytest

from infrastructure.events import ALL_EVENTS, Event, EventBus
from infrastructure.idempotency import InMemoryIdempotencyCache
from infrastructure.notifications.channels.registry import ChannelRegistry
from infrastructure.notifications.dispatcher import NotificationDispatcher
from infrastructure.notifications.failover import FailoverCoordinator
from infrastructure.notifications.health import HealthMonitor
from infrastructure.notifications.models import ChannelKind, Subscription
from infrastructure.notifications.rate_limiter import RateLimiter
from infrastructure.notifications.store import InMemoryStore
from infrastructure.notifications.subscriptions import SubscriptionRegistry
from infrastructure.resilience.backoff import RetryPolicy
from infrastructure.security import DestinationCipher
from tests.factories.notifications import (
    FakeChannel,
    FakeClock,
    FakeMonotonic,
    make_preferences,
)

DESTINATIONS: Dict[ChannelKind, str] = {
    ChannelKind.PUSH: '{"endpoint": "https://push.example.com/sub/abc", "keys": {}}',
    ChannelKind.SMS: "+819012345678",
    ChannelKind.EMAIL: "guest@example.com",
    ChannelKind.CHAT: "U12345",
}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def cipher():
    return DestinationCipher(key=DestinationCipher.generate_key())


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def push_channel():
    return FakeChannel(ChannelKind.PUSH)


@pytest.fixture
def sms_channel():
    return FakeChannel(ChannelKind.SMS)


@pytest.fixture
def email_channel():
    return FakeChannel(ChannelKind.EMAIL)


@pytest.fixture
def chat_channel():
    return FakeChannel(ChannelKind.CHAT)


@pytest.fixture
def channels(push_channel, sms_channel, email_channel, chat_channel):
    return ChannelRegistry([push_channel, sms_channel, email_channel, chat_channel])


@pytest.fixture
def registry(store, cipher, channels):
    return SubscriptionRegistry(store, cipher, channels)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def captured_events(event_bus) -> List[Event]:
    """Every event published on the bus, in order."""
    events: List[Event] = []
    event_bus.subscribe(ALL_EVENTS, events.append)
    return events


@pytest.fixture
def health(channels, monotonic, event_bus):
    return HealthMonitor(
        channels,
        failure_threshold=3,
        cooldown_seconds=60,
        clock=monotonic,
        event_bus=event_bus,
    )


@pytest.fixture
def retry_policy():
    return RetryPolicy(max_attempts=3, base_delay_seconds=0, max_delay_seconds=0)


@pytest.fixture
def failover(health, registry, retry_policy, event_bus, clock):
    coordinator = FailoverCoordinator(
        health,
        registry,
        retry_policy=retry_policy,
        channel_timeout_seconds=2,
        event_bus=event_bus,
        clock=clock,
        sleep=lambda seconds: None,
    )
    yield coordinator
    coordinator.shutdown()


@pytest.fixture
def rate_limiter(store, clock):
    return RateLimiter(store, global_per_minute=1000, clock=clock)


@pytest.fixture
def idempotency_cache():
    return InMemoryIdempotencyCache()


@pytest.fixture
def dispatcher(registry, rate_limiter, channels, failover, idempotency_cache, clock):
    instance = NotificationDispatcher(
        subscriptions=registry,
        rate_limiter=rate_limiter,
        channels=channels,
        failover=failover,
        idempotency_cache=idempotency_cache,
        batch_size=2,
        max_concurrency=4,
        batch_pause_ms=0,
        clock=clock,
    )
    yield instance
    instance.shutdown()


@pytest.fixture
def subscribe_user(registry) -> Callable[..., Dict[ChannelKind, Subscription]]:
    """Register a subscriber with subscriptions on the given channels.

    Example:
        subs = subscribe_user("user-1", [ChannelKind.PUSH, ChannelKind.SMS], max_per_day=3)
    """

    def _subscribe(
        subscriber_id: str = "user-1",
        kinds: Iterable[ChannelKind] = (ChannelKind.PUSH, ChannelKind.SMS),
        **preferences,
    ) -> Dict[ChannelKind, Subscription]:
        registry.register_subscriber(subscriber_id, make_preferences(**preferences))
        return {
            kind: registry.subscribe(subscriber_id, kind, DESTINATIONS[kind]) for kind in kinds
        }

    return _subscribe
