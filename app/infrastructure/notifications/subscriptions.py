"""Subscription registry.

Holds, per subscriber, the active channel destinations and the delivery
preferences. Destinations are encrypted before they reach the store and are
only decrypted when a channel is about to send.
"""

import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.errors import ValidationError
from infrastructure.notifications.models import (
    ChannelKind,
    Subscriber,
    SubscriberPreferences,
    Subscription,
)
from infrastructure.notifications.store import Store
from infrastructure.security.encryption import DestinationCipher

if TYPE_CHECKING:
    from infrastructure.notifications.channels.registry import ChannelRegistry

logger = get_module_logger()

SUPERSEDED = "superseded"
UNSUBSCRIBED = "unsubscribed"


class SubscriptionRegistry:
    """Subscriber and subscription bookkeeping.

    Each subscriber has at most one active subscription per channel kind.
    Subscribing again to the same kind supersedes the previous destination,
    which stays in the store as invalid for audit.

    Args:
        store: Persistence collaborator
        cipher: Encrypts destinations at rest
        channels: Optional channel registry used to validate and normalize
            destinations (phone numbers, email addresses, push subscriptions)
    """

    def __init__(
        self,
        store: Store,
        cipher: DestinationCipher,
        channels: Optional["ChannelRegistry"] = None,
    ):
        self.store = store
        self.cipher = cipher
        self.channels = channels
        self._subscribe_lock = threading.Lock()

    def register_subscriber(
        self,
        subscriber_id: str,
        preferences: Optional[SubscriberPreferences] = None,
    ) -> Subscriber:
        """Create or replace a subscriber's preferences."""
        if not subscriber_id:
            raise ValidationError("subscriber id is required")
        subscriber = Subscriber(
            id=subscriber_id,
            preferences=preferences or SubscriberPreferences(),
        )
        self.store.save_subscriber(subscriber)
        logger.info("subscriber_registered", subscriber_id=subscriber_id)
        return subscriber

    def update_preferences(
        self, subscriber_id: str, preferences: SubscriberPreferences
    ) -> Subscriber:
        return self.register_subscriber(subscriber_id, preferences)

    def get_subscriber(self, subscriber_id: str) -> Optional[Subscriber]:
        return self.store.get_subscriber(subscriber_id)

    def subscribe(
        self, subscriber_id: str, channel_kind: ChannelKind, destination: str
    ) -> Subscription:
        """Register a channel destination for a subscriber.

        Raises:
            ValidationError: If the subscriber is unknown or the destination
                is rejected by the channel adapter.
        """
        if self.store.get_subscriber(subscriber_id) is None:
            raise ValidationError(f"unknown subscriber: {subscriber_id}")
        if not destination:
            raise ValidationError("destination is required")

        if self.channels is not None:
            adapter = self.channels.get(channel_kind)
            if adapter is not None:
                destination = adapter.validate_destination(destination)

        subscription = Subscription(
            subscriber_id=subscriber_id,
            channel_kind=channel_kind,
            destination=self.cipher.encrypt(destination),
        )
        with self._subscribe_lock:
            for existing in self.store.get_subscriptions(subscriber_id):
                if existing.is_active and existing.channel_kind == channel_kind:
                    self.store.invalidate_subscription(existing.id, SUPERSEDED)
            self.store.save_subscription(subscription)

        logger.info(
            "subscription_created",
            subscriber_id=subscriber_id,
            channel_kind=channel_kind.value,
            subscription_id=subscription.id,
        )
        return subscription

    def unsubscribe(self, subscriber_id: str, channel_kind: ChannelKind) -> bool:
        removed = False
        for subscription in self.store.get_subscriptions(subscriber_id):
            if subscription.is_active and subscription.channel_kind == channel_kind:
                removed = self.store.invalidate_subscription(subscription.id, UNSUBSCRIBED) or removed
        return removed

    def subscriptions(self, subscriber_id: str) -> List[Subscription]:
        return self.store.get_subscriptions(subscriber_id)

    def active_subscriptions(self, subscriber_id: str) -> Dict[ChannelKind, Subscription]:
        """Active subscriptions keyed by channel kind (newest wins)."""
        active: Dict[ChannelKind, Subscription] = {}
        for subscription in sorted(
            self.store.get_subscriptions(subscriber_id), key=lambda s: s.created_at
        ):
            if subscription.is_active:
                active[subscription.channel_kind] = subscription
        return active

    def resolve_destination(self, subscription: Subscription) -> str:
        """Plaintext destination for sending.

        Raises:
            DestinationDecryptionError: If the stored token is unreadable.
        """
        return self.cipher.decrypt(subscription.destination)

    def invalidate(self, subscription: Subscription, reason: str) -> bool:
        changed = self.store.invalidate_subscription(subscription.id, reason)
        if changed:
            logger.warning(
                "subscription_invalidated",
                subscriber_id=subscription.subscriber_id,
                channel_kind=subscription.channel_kind.value,
                subscription_id=subscription.id,
                reason=reason,
            )
        return changed

    def touch(self, subscription: Subscription, at: Optional[datetime] = None) -> None:
        self.store.touch_subscription(subscription.id, at or datetime.now(timezone.utc))
