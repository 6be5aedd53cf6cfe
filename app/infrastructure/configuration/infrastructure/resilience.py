"""Circuit breaker and health monitoring settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class CircuitBreakerSettings(InfrastructureSettings):
    """Per-channel circuit breaker configuration.

    Environment Variables:
        CIRCUIT_BREAKER_ENABLED: Enable circuit breaking (default: True)
        CIRCUIT_BREAKER_FAILURE_THRESHOLD: Consecutive transient failures before opening (default: 5)
        CIRCUIT_BREAKER_COOLDOWN_SECONDS: Seconds before a half-open probe (default: 60)
    """

    enabled: bool = Field(default=True, alias="CIRCUIT_BREAKER_ENABLED")
    failure_threshold: int = Field(
        default=5,
        alias="CIRCUIT_BREAKER_FAILURE_THRESHOLD",
        description="Consecutive failures before opening the circuit",
    )
    cooldown_seconds: int = Field(
        default=60,
        alias="CIRCUIT_BREAKER_COOLDOWN_SECONDS",
        description="Seconds to wait before attempting recovery",
    )


class HealthSettings(InfrastructureSettings):
    """Health monitor configuration.

    Environment Variables:
        HEALTH_CHECK_INTERVAL_SECONDS: Probe interval (default: 30s)
        HEALTH_PROBE_ADVISOR: Include the optimization advisor in probes (default: True)
    """

    check_interval_seconds: int = Field(
        default=30, alias="HEALTH_CHECK_INTERVAL_SECONDS"
    )
    probe_advisor: bool = Field(default=True, alias="HEALTH_PROBE_ADVISOR")
