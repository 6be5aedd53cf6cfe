"""Admission control settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class RateLimitSettings(InfrastructureSettings):
    """Rate limit configuration shared by all subscribers.

    Per-subscriber daily caps come from subscriber preferences; this section
    only holds the global guard protecting downstream providers.

    Environment Variables:
        RATE_LIMIT_GLOBAL_PER_MINUTE: Sends per minute across all subscribers (default: 1000)
        RATE_LIMIT_DEFAULT_MAX_PER_DAY: Daily cap for subscribers without one (default: 10)
    """

    global_per_minute: int = Field(
        default=1000,
        alias="RATE_LIMIT_GLOBAL_PER_MINUTE",
        description="Global fixed-window cap shared across all subscribers",
    )
    default_max_per_day: int = Field(
        default=10,
        alias="RATE_LIMIT_DEFAULT_MAX_PER_DAY",
        description="Daily cap used when a subscriber has none configured",
    )
