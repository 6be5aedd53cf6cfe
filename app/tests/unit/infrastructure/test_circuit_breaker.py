"""Unit tests for infrastructure circuit breaker functionality."""

import pytest

from infrastructure.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
)
from tests.factories.notifications import FakeMonotonic


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def breaker(monotonic):
    return CircuitBreaker("sms", failure_threshold=3, cooldown_seconds=60, clock=monotonic)


def _fail(breaker, times):
    for _ in range(times):
        breaker.record_failure("boom")


@pytest.mark.unit
class TestCircuitBreakerInitialization:
    """Tests for CircuitBreaker initialization."""

    def test_starts_in_closed_state(self, breaker):
        assert breaker.state == CircuitState.CLOSED
        assert breaker.is_closed()

    def test_initializes_with_zero_stats(self, breaker):
        stats = breaker.get_stats()
        assert stats["failure_count"] == 0
        assert stats["last_failure_time"] is None
        assert stats["cooldown_remaining_seconds"] == 0

    def test_default_configuration(self):
        cb = CircuitBreaker("push")
        assert cb.failure_threshold == 5
        assert cb.cooldown_seconds == 60


@pytest.mark.unit
class TestStateTransitions:
    def test_opens_after_failure_threshold(self, breaker):
        _fail(breaker, 2)
        assert breaker.state == CircuitState.CLOSED

        _fail(breaker, 1)

        assert breaker.state == CircuitState.OPEN
        assert breaker.cooldown_remaining() == 60

    def test_resets_failure_count_on_success(self, breaker):
        _fail(breaker, 2)
        breaker.record_success()

        assert breaker.failure_count == 0
        _fail(breaker, 2)
        assert breaker.state == CircuitState.CLOSED

    def test_failures_while_open_are_ignored(self, breaker, monotonic):
        _fail(breaker, 3)
        monotonic.advance(30)
        _fail(breaker, 5)

        assert breaker.cooldown_remaining() == 30

    def test_single_probe_after_cooldown(self, breaker, monotonic):
        _fail(breaker, 3)
        assert breaker.try_begin_probe() is False

        monotonic.advance(60)

        assert breaker.try_begin_probe() is True
        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.try_begin_probe() is False

    def test_closes_after_successful_probe(self, breaker, monotonic):
        _fail(breaker, 3)
        monotonic.advance(60)
        breaker.try_begin_probe()

        breaker.record_success()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0

    def test_reopens_after_failed_probe(self, breaker, monotonic):
        _fail(breaker, 3)
        monotonic.advance(60)
        breaker.try_begin_probe()

        breaker.record_failure("still down")

        assert breaker.state == CircuitState.OPEN
        assert breaker.cooldown_remaining() == 60

    def test_state_change_listener(self, monotonic):
        changes = []
        cb = CircuitBreaker(
            "email",
            failure_threshold=1,
            cooldown_seconds=10,
            clock=monotonic,
            on_state_change=lambda name, old, new: changes.append((name, old, new)),
        )

        cb.record_failure()
        monotonic.advance(10)
        cb.try_begin_probe()
        cb.record_success()

        assert changes == [
            ("email", CircuitState.CLOSED, CircuitState.OPEN),
            ("email", CircuitState.OPEN, CircuitState.HALF_OPEN),
            ("email", CircuitState.HALF_OPEN, CircuitState.CLOSED),
        ]

    def test_listener_errors_do_not_break_transitions(self, monotonic):
        def listener(name, old, new):
            raise RuntimeError("listener down")

        cb = CircuitBreaker("chat", failure_threshold=1, clock=monotonic, on_state_change=listener)

        cb.record_failure()

        assert cb.state == CircuitState.OPEN


@pytest.mark.unit
class TestStats:
    def test_stats_after_opening(self, breaker, monotonic):
        _fail(breaker, 3)
        monotonic.advance(20)

        stats = breaker.get_stats()

        assert stats["name"] == "sms"
        assert stats["state"] == "open"
        assert stats["failure_count"] == 3
        assert stats["last_failure_time"] is not None
        assert stats["cooldown_remaining_seconds"] == 40

    def test_probe_in_flight_is_reported(self, breaker, monotonic):
        _fail(breaker, 3)
        monotonic.advance(60)
        breaker.try_begin_probe()

        assert breaker.get_stats()["probe_in_flight"] is True

        breaker.record_success()

        assert breaker.get_stats()["probe_in_flight"] is False
