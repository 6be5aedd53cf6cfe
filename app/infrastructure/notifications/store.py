"""Persistence collaborator for the notification engine.

The engine only depends on the Store interface. InMemoryStore is the
provided implementation; relational or document stores satisfy the same
contract as long as counter updates are atomic per key and subscription
invalidation is atomic per subscription.
"""

import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import (
    RateCounter,
    Subscriber,
    Subscription,
    SubscriptionStatus,
)

logger = get_module_logger()


class Store(ABC):
    """Abstract persistence for subscribers, subscriptions and rate counters."""

    @abstractmethod
    def get_subscriber(self, subscriber_id: str) -> Optional[Subscriber]:
        pass

    @abstractmethod
    def save_subscriber(self, subscriber: Subscriber) -> None:
        pass

    @abstractmethod
    def get_subscriptions(self, subscriber_id: str) -> List[Subscription]:
        """All subscriptions of a subscriber, active and invalid."""
        pass

    @abstractmethod
    def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        pass

    @abstractmethod
    def save_subscription(self, subscription: Subscription) -> None:
        pass

    @abstractmethod
    def invalidate_subscription(
        self, subscription_id: str, reason: str, at: Optional[datetime] = None
    ) -> bool:
        """Mark a subscription invalid.

        Returns:
            True if this call performed the transition, False if the
            subscription was already invalid or does not exist.
        """
        pass

    @abstractmethod
    def touch_subscription(self, subscription_id: str, at: datetime) -> None:
        """Record the last successful use of a subscription."""
        pass

    @abstractmethod
    def increment_counter(self, key: str, window_seconds: float, amount: int = 1) -> int:
        """Atomically add to a counter and return the new count.

        A counter starts its window on first increment and expires
        ``window_seconds`` later.
        """
        pass

    @abstractmethod
    def decrement_counter(self, key: str, amount: int = 1) -> int:
        """Atomically subtract from a counter (floored at 0) and return the new count."""
        pass

    @abstractmethod
    def get_counter(self, key: str) -> Optional[RateCounter]:
        pass


class InMemoryStore(Store):
    """Thread-safe process-local store.

    Args:
        clock: Returns epoch seconds, used for counter expiry (injectable for tests)
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._subscribers: Dict[str, Subscriber] = {}
        self._subscriptions: Dict[str, Subscription] = {}
        # key -> (count, window_start epoch, expires_at epoch)
        self._counters: Dict[str, Tuple[int, float, float]] = {}
        self._lock = threading.RLock()

    def get_subscriber(self, subscriber_id: str) -> Optional[Subscriber]:
        with self._lock:
            subscriber = self._subscribers.get(subscriber_id)
            return subscriber.model_copy(deep=True) if subscriber else None

    def save_subscriber(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers[subscriber.id] = subscriber.model_copy(deep=True)

    def get_subscriptions(self, subscriber_id: str) -> List[Subscription]:
        with self._lock:
            return [
                s.model_copy()
                for s in self._subscriptions.values()
                if s.subscriber_id == subscriber_id
            ]

    def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        with self._lock:
            subscription = self._subscriptions.get(subscription_id)
            return subscription.model_copy() if subscription else None

    def save_subscription(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscriptions[subscription.id] = subscription.model_copy()

    def invalidate_subscription(
        self, subscription_id: str, reason: str, at: Optional[datetime] = None
    ) -> bool:
        with self._lock:
            subscription = self._subscriptions.get(subscription_id)
            if subscription is None or not subscription.is_active:
                return False
            self._subscriptions[subscription_id] = subscription.model_copy(
                update={
                    "status": SubscriptionStatus.INVALID,
                    "invalidated_at": at or datetime.now(timezone.utc),
                    "invalidated_reason": reason,
                }
            )
            return True

    def touch_subscription(self, subscription_id: str, at: datetime) -> None:
        with self._lock:
            subscription = self._subscriptions.get(subscription_id)
            if subscription is not None:
                self._subscriptions[subscription_id] = subscription.model_copy(
                    update={"last_used_at": at}
                )

    def increment_counter(self, key: str, window_seconds: float, amount: int = 1) -> int:
        with self._lock:
            now = self._clock()
            entry = self._live_counter(key, now)
            if entry is None:
                count, window_start, expires_at = 0, now, now + window_seconds
            else:
                count, window_start, expires_at = entry
            count += amount
            self._counters[key] = (count, window_start, expires_at)
            if len(self._counters) > 10_000:
                self._sweep(now)
            return count

    def decrement_counter(self, key: str, amount: int = 1) -> int:
        with self._lock:
            entry = self._live_counter(key, self._clock())
            if entry is None:
                return 0
            count, window_start, expires_at = entry
            count = max(0, count - amount)
            self._counters[key] = (count, window_start, expires_at)
            return count

    def get_counter(self, key: str) -> Optional[RateCounter]:
        with self._lock:
            entry = self._live_counter(key, self._clock())
            if entry is None:
                return None
            count, window_start, _ = entry
            return RateCounter(
                key=key,
                count=count,
                window_start=datetime.fromtimestamp(window_start, tz=timezone.utc),
            )

    def _live_counter(self, key: str, now: float) -> Optional[Tuple[int, float, float]]:
        entry = self._counters.get(key)
        if entry is not None and now >= entry[2]:
            del self._counters[key]
            return None
        return entry

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, _, expires_at) in self._counters.items() if now >= expires_at]
        for k in expired:
            del self._counters[k]
        logger.debug("rate_counters_swept", evicted=len(expired))
