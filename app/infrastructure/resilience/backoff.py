"""Retry backoff policy.

Exponential backoff with full jitter, used by the failover coordinator
between attempts on the same channel.
"""

import random
from dataclasses import dataclass, field
from typing import Callable


@dataclass
class RetryPolicy:
    """Configuration for per-channel retry behavior.

    Attributes:
        max_attempts: Total attempts per channel, including the first one
        base_delay_seconds: Base delay for exponential backoff (first retry)
        max_delay_seconds: Maximum delay between retries
        rand: Uniform random source, injectable for tests

    Example:
        policy = RetryPolicy(max_attempts=3, base_delay_seconds=1.0)
        delay = policy.compute_delay(attempt=2)  # uniform(0, 2.0)
    """

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 8.0
    rand: Callable[[float, float], float] = field(
        default=random.uniform, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be >= 0")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")

    @classmethod
    def from_settings(cls, dispatch_settings) -> "RetryPolicy":
        return cls(
            max_attempts=dispatch_settings.max_retries,
            base_delay_seconds=dispatch_settings.retry_base_delay_ms / 1000,
            max_delay_seconds=dispatch_settings.retry_max_delay_ms / 1000,
        )

    def compute_delay(self, attempt: int) -> float:
        """Delay before the retry following ``attempt`` (1-based).

        Full jitter: uniform(0, min(base * 2 ^ (attempt - 1), max)).
        """
        ceiling = min(
            self.base_delay_seconds * (2 ** max(attempt - 1, 0)),
            self.max_delay_seconds,
        )
        return self.rand(0, ceiling)
