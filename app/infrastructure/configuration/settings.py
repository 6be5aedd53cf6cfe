"""Notification engine configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Integration settings
from infrastructure.configuration.integrations import (
    NotifySettings,
    PushSettings,
    SlackSettings,
    SMSSettings,
)

# Infrastructure settings
from infrastructure.configuration.infrastructure import (
    CircuitBreakerSettings,
    DispatchSettings,
    HealthSettings,
    IdempotencySettings,
    RateLimitSettings,
    SecuritySettings,
)


class Settings(BaseSettings):
    """Notification engine configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object.
    Settings are organized by concern:

    - **Integrations**: Delivery providers (push gateway, SMS, email, Slack)
    - **Infrastructure**: Engine behavior (dispatch, rate limits, circuit
      breaking, health probes, idempotency, destination encryption)

    Environment Variables:
        PREFIX: Environment prefix for multi-tenant deployments
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.circuit_breaker.enabled:
            threshold = settings.circuit_breaker.failure_threshold

        # Check environment
        if settings.is_production:
            # Production-specific logic...
        ```
    """

    # Application-level settings
    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    # Integration settings
    push: PushSettings
    sms: SMSSettings
    notify: NotifySettings
    slack: SlackSettings

    # Infrastructure settings
    dispatch: DispatchSettings
    rate_limit: RateLimitSettings
    circuit_breaker: CircuitBreakerSettings
    health: HealthSettings
    idempotency: IdempotencySettings
    security: SecuritySettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            # Integrations
            "push": PushSettings,
            "sms": SMSSettings,
            "notify": NotifySettings,
            "slack": SlackSettings,
            # Infrastructure
            "dispatch": DispatchSettings,
            "rate_limit": RateLimitSettings,
            "circuit_breaker": CircuitBreakerSettings,
            "health": HealthSettings,
            "idempotency": IdempotencySettings,
            "security": SecuritySettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
