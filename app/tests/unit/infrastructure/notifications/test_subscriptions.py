"""Unit tests for the subscription registry."""

import pytest

from infrastructure.notifications.errors import ValidationError
from infrastructure.notifications.models import ChannelKind, SubscriptionStatus
from infrastructure.notifications.subscriptions import SUPERSEDED, UNSUBSCRIBED
from infrastructure.security.encryption import DestinationDecryptionError
from tests.factories.notifications import make_preferences


@pytest.mark.unit
class TestSubscriptionRegistry:
    def test_register_subscriber_defaults(self, registry):
        subscriber = registry.register_subscriber("user-1")

        assert registry.get_subscriber("user-1") == subscriber
        assert subscriber.preferences.max_per_day == 10

    def test_register_requires_id(self, registry):
        with pytest.raises(ValidationError):
            registry.register_subscriber("")

    def test_update_preferences(self, registry):
        registry.register_subscriber("user-1")

        registry.update_preferences("user-1", make_preferences(max_per_day=2))

        assert registry.get_subscriber("user-1").preferences.max_per_day == 2

    def test_destination_is_encrypted_at_rest(self, registry, store):
        registry.register_subscriber("user-1")

        subscription = registry.subscribe("user-1", ChannelKind.SMS, "+819012345678")

        stored = store.get_subscription(subscription.id)
        assert "+819012345678" not in stored.destination
        assert registry.resolve_destination(stored) == "+819012345678"

    def test_subscribe_unknown_subscriber(self, registry):
        with pytest.raises(ValidationError):
            registry.subscribe("ghost", ChannelKind.SMS, "+819012345678")

    def test_subscribe_requires_destination(self, registry):
        registry.register_subscriber("user-1")

        with pytest.raises(ValidationError):
            registry.subscribe("user-1", ChannelKind.EMAIL, "")

    def test_destination_is_normalized_by_adapter(self, registry):
        registry.register_subscriber("user-1")

        subscription = registry.subscribe("user-1", ChannelKind.EMAIL, " guest@example.com ")

        assert registry.resolve_destination(subscription) == "guest@example.com"

    def test_resubscribe_supersedes(self, registry):
        registry.register_subscriber("user-1")
        first = registry.subscribe("user-1", ChannelKind.SMS, "+819012345678")

        second = registry.subscribe("user-1", ChannelKind.SMS, "+819087654321")

        active = registry.active_subscriptions("user-1")
        assert active == {ChannelKind.SMS: second}
        old = [s for s in registry.subscriptions("user-1") if s.id == first.id][0]
        assert old.status == SubscriptionStatus.INVALID
        assert old.invalidated_reason == SUPERSEDED

    def test_unsubscribe(self, registry):
        registry.register_subscriber("user-1")
        registry.subscribe("user-1", ChannelKind.PUSH, '{"endpoint": "https://push.example.com/x"}')

        assert registry.unsubscribe("user-1", ChannelKind.PUSH) is True
        assert registry.unsubscribe("user-1", ChannelKind.PUSH) is False

        assert registry.active_subscriptions("user-1") == {}
        assert registry.subscriptions("user-1")[0].invalidated_reason == UNSUBSCRIBED

    def test_invalidate_is_idempotent(self, registry):
        registry.register_subscriber("user-1")
        subscription = registry.subscribe("user-1", ChannelKind.SMS, "+819012345678")

        assert registry.invalidate(subscription, "DESTINATION_GONE") is True
        assert registry.invalidate(subscription, "DESTINATION_GONE") is False

    def test_unreadable_destination(self, registry, store):
        registry.register_subscriber("user-1")
        subscription = registry.subscribe("user-1", ChannelKind.SMS, "+819012345678")
        corrupted = subscription.model_copy(update={"destination": "garbage"})

        with pytest.raises(DestinationDecryptionError):
            registry.resolve_destination(corrupted)
