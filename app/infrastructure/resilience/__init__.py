"""Resilience patterns and implementations.

This module contains resilience-related infrastructure components such as
circuit breakers and retry backoff.
"""

from infrastructure.resilience.backoff import RetryPolicy
from infrastructure.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
)

__all__ = [
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitState",
    # Retry
    "RetryPolicy",
]
