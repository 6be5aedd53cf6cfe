"""Test data factories for deterministic test data generation."""

from tests.factories.notifications import (
    NIGHT_JST,
    NOON_JST,
    FakeChannel,
    FakeClock,
    FakeMonotonic,
    make_inbound,
    make_preferences,
    make_request,
    make_subscriber,
)

__all__ = [
    "NIGHT_JST",
    "NOON_JST",
    "FakeChannel",
    "FakeClock",
    "FakeMonotonic",
    "make_inbound",
    "make_preferences",
    "make_request",
    "make_subscriber",
]
