"""Unit tests for the channel registry."""

import pytest

from infrastructure.notifications.channels.registry import ChannelRegistry
from infrastructure.notifications.models import ChannelKind
from tests.factories.notifications import FakeChannel


@pytest.mark.unit
class TestChannelRegistry:
    def test_lookup_by_kind(self):
        push = FakeChannel(ChannelKind.PUSH)
        registry = ChannelRegistry([push, FakeChannel(ChannelKind.SMS)])

        assert registry.get(ChannelKind.PUSH) is push
        assert registry.get(ChannelKind.EMAIL) is None
        assert ChannelKind.SMS in registry
        assert ChannelKind.CHAT not in registry
        assert len(registry) == 2

    def test_kinds_keep_registration_order(self):
        registry = ChannelRegistry()
        registry.register(FakeChannel(ChannelKind.EMAIL))
        registry.register(FakeChannel(ChannelKind.PUSH))

        assert registry.kinds() == [ChannelKind.EMAIL, ChannelKind.PUSH]

    def test_register_replaces_existing_adapter(self):
        registry = ChannelRegistry([FakeChannel(ChannelKind.SMS, provider_name="old")])
        replacement = FakeChannel(ChannelKind.SMS, provider_name="new")

        registry.register(replacement)

        assert registry.get(ChannelKind.SMS) is replacement
        assert [adapter.provider_name for adapter in registry] == ["new"]
