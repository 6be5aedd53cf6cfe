"""Shared base classes for settings modules."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class IntegrationSettings(BaseSettings):
    """Base class for external provider settings.

    All provider settings (push gateway, SMS providers, email, chat bridge)
    inherit from this class so env file loading and case sensitivity behave
    the same everywhere.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )


class InfrastructureSettings(BaseSettings):
    """Base class for engine-level settings.

    Infrastructure settings control core dispatch behavior like retries,
    admission control, circuit breaking and idempotency.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )
