"""Infrastructure settings __init__ - exports all engine settings."""

from infrastructure.configuration.infrastructure.dispatch import (
    DispatchSettings,
    PriorityThresholds,
)
from infrastructure.configuration.infrastructure.idempotency import IdempotencySettings
from infrastructure.configuration.infrastructure.rate_limit import RateLimitSettings
from infrastructure.configuration.infrastructure.resilience import (
    CircuitBreakerSettings,
    HealthSettings,
)
from infrastructure.configuration.infrastructure.security import SecuritySettings

__all__ = [
    "DispatchSettings",
    "PriorityThresholds",
    "IdempotencySettings",
    "RateLimitSettings",
    "CircuitBreakerSettings",
    "HealthSettings",
    "SecuritySettings",
]
