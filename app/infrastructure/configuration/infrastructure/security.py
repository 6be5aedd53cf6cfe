"""Destination encryption settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class SecuritySettings(InfrastructureSettings):
    """Encryption of subscription destinations at rest.

    Environment Variables:
        DESTINATION_ENCRYPTION_KEY: Fernet key (urlsafe base64, 32 bytes).
            A random key is generated per process when empty, which is only
            suitable for development.
    """

    DESTINATION_ENCRYPTION_KEY: str | None = Field(
        default=None, alias="DESTINATION_ENCRYPTION_KEY"
    )
