"""Dispatch engine settings."""

from pydantic import BaseModel, Field, field_validator

from infrastructure.configuration.base import InfrastructureSettings


class PriorityThresholds(BaseModel):
    """Minimum advisor priority score (0-10) for each tier.

    Scores below ``medium`` map to the low tier. The thresholds are business
    policy and are meant to be tuned through ``PRIORITY_THRESHOLDS``.
    """

    critical: float = 9.0
    high: float = 7.0
    medium: float = 5.0


class DispatchSettings(InfrastructureSettings):
    """Dispatch, failover and batching configuration.

    Environment Variables:
        DISPATCH_MAX_RETRIES: Attempts per channel on transient errors (default: 3)
        DISPATCH_RETRY_BASE_DELAY_MS: Base exponential backoff delay (default: 1000ms)
        DISPATCH_RETRY_MAX_DELAY_MS: Backoff cap (default: 8000ms)
        DISPATCH_CHANNEL_TIMEOUT_SECONDS: Per channel call timeout (default: 10s)
        DISPATCH_ADVISOR_ENABLED: Ask the optimization advisor for hints (default: True)
        DISPATCH_ADVISOR_TIMEOUT_MS: Hard timeout for the optimization advisor (default: 300ms)
        DISPATCH_BATCH_SIZE: Sub-batch size for batch sends and queue drains (default: 100)
        DISPATCH_MAX_CONCURRENCY: Worker pool size (default: 10)
        DISPATCH_BATCH_PAUSE_MS: Pause between batch sends (default: 100ms)
        DISPATCH_QUEUE_INTERVAL_SECONDS: Queue drain tick (default: 5s)
        DISPATCH_FALLBACK_ORDER: Comma separated static channel order
        PRIORITY_THRESHOLDS: JSON mapping of tier -> minimum score

    Backoff:
        Delay calculation: uniform(0, min(base_delay * 2 ^ (attempt - 1), max_delay))

    Example:
        ```python
        from infrastructure.services import get_settings

        dispatch = get_settings().dispatch
        for kind in dispatch.fallback_order:
            ...
        ```
    """

    max_retries: int = Field(
        default=3,
        alias="DISPATCH_MAX_RETRIES",
        description="Maximum attempts per channel for transient failures",
    )
    retry_base_delay_ms: int = Field(
        default=1000,
        alias="DISPATCH_RETRY_BASE_DELAY_MS",
        description="Base delay for exponential backoff (milliseconds)",
    )
    retry_max_delay_ms: int = Field(
        default=8000,
        alias="DISPATCH_RETRY_MAX_DELAY_MS",
        description="Maximum delay for exponential backoff (milliseconds)",
    )
    channel_timeout_seconds: float = Field(
        default=10.0,
        alias="DISPATCH_CHANNEL_TIMEOUT_SECONDS",
        description="Timeout applied to a single channel call",
    )
    advisor_enabled: bool = Field(default=True, alias="DISPATCH_ADVISOR_ENABLED")
    advisor_timeout_ms: int = Field(
        default=300,
        alias="DISPATCH_ADVISOR_TIMEOUT_MS",
        description="Hard timeout for the optimization advisor",
    )
    batch_size: int = Field(
        default=100,
        alias="DISPATCH_BATCH_SIZE",
        description="Requests per sub-batch / queue drain cycle",
    )
    max_concurrency: int = Field(
        default=10,
        alias="DISPATCH_MAX_CONCURRENCY",
        description="Maximum concurrent dispatches",
    )
    batch_pause_ms: int = Field(
        default=100,
        alias="DISPATCH_BATCH_PAUSE_MS",
        description="Pause between sub-batches to avoid provider throttling",
    )
    queue_interval_seconds: int = Field(
        default=5,
        alias="DISPATCH_QUEUE_INTERVAL_SECONDS",
        description="Interval of the scheduled queue drain",
    )
    fallback_order_raw: str = Field(
        default="push,sms,email,chat",
        alias="DISPATCH_FALLBACK_ORDER",
        description="Static channel order used when no ranking is available",
    )
    priority_thresholds: PriorityThresholds = Field(
        default_factory=PriorityThresholds,
        alias="PRIORITY_THRESHOLDS",
    )

    @field_validator("max_retries", "batch_size", "max_concurrency")
    @classmethod
    def _at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    @property
    def fallback_order(self) -> list[str]:
        """Static channel order as a list of channel kind values."""
        return [
            part.strip().lower()
            for part in self.fallback_order_raw.split(",")
            if part.strip()
        ]
