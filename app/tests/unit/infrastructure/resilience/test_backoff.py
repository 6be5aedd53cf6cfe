"""Unit tests for the retry backoff policy."""

import pytest

from infrastructure.configuration.infrastructure.dispatch import DispatchSettings
from infrastructure.resilience.backoff import RetryPolicy


def _ceiling(low, high):
    return high


@pytest.mark.unit
class TestValidation:
    def test_defaults(self):
        policy = RetryPolicy()

        assert policy.max_attempts == 3
        assert policy.base_delay_seconds == 1.0
        assert policy.max_delay_seconds == 8.0

    @pytest.mark.parametrize(
        "kwargs,message",
        [
            ({"max_attempts": 0}, "max_attempts"),
            ({"base_delay_seconds": -1}, "base_delay_seconds"),
            ({"base_delay_seconds": 5, "max_delay_seconds": 1}, "max_delay_seconds"),
        ],
    )
    def test_rejects_invalid_values(self, kwargs, message):
        with pytest.raises(ValueError, match=message):
            RetryPolicy(**kwargs)

    def test_from_settings(self):
        settings = DispatchSettings(
            max_retries=5, retry_base_delay_ms=250, retry_max_delay_ms=4000
        )

        policy = RetryPolicy.from_settings(settings)

        assert policy == RetryPolicy(
            max_attempts=5, base_delay_seconds=0.25, max_delay_seconds=4.0
        )


@pytest.mark.unit
class TestComputeDelay:
    def test_ceiling_doubles_per_attempt(self):
        policy = RetryPolicy(base_delay_seconds=1.0, max_delay_seconds=8.0, rand=_ceiling)

        assert [policy.compute_delay(a) for a in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 8.0]

    def test_full_jitter_starts_at_zero(self):
        bounds = []
        policy = RetryPolicy(rand=lambda low, high: bounds.append((low, high)) or low)

        assert policy.compute_delay(3) == 0
        assert bounds == [(0, 4.0)]

    def test_attempt_zero_uses_base(self):
        policy = RetryPolicy(base_delay_seconds=0.5, rand=_ceiling)

        assert policy.compute_delay(0) == 0.5

    def test_random_delay_within_bounds(self):
        policy = RetryPolicy(base_delay_seconds=0.1, max_delay_seconds=0.4)

        for attempt in range(1, 10):
            assert 0 <= policy.compute_delay(attempt) <= 0.4
