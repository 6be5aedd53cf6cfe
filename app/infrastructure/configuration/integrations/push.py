"""Web push gateway integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class PushSettings(IntegrationSettings):
    """Push gateway configuration.

    The gateway relays web push messages to browser endpoints. Requests are
    authenticated with a short lived JWT signed with ``PUSH_GATEWAY_SECRET``.

    Environment Variables:
        PUSH_GATEWAY_URL: Push gateway base URL
        PUSH_GATEWAY_ISSUER: JWT issuer claim
        PUSH_GATEWAY_SECRET: JWT signing secret
        PUSH_DEFAULT_TTL_SECONDS: Default message TTL (default: 86400)
        PUSH_ALERT_TTL_SECONDS: TTL for time sensitive alerts (default: 600)
        PUSH_REQUEST_TIMEOUT_SECONDS: HTTP timeout (default: 10)

    Example:
        ```python
        from infrastructure.services import get_settings

        push = get_settings().push
        if push.is_configured:
            ...
        ```
    """

    PUSH_GATEWAY_URL: str = Field(default="", alias="PUSH_GATEWAY_URL")
    PUSH_GATEWAY_ISSUER: str | None = Field(default=None, alias="PUSH_GATEWAY_ISSUER")
    PUSH_GATEWAY_SECRET: str | None = Field(default=None, alias="PUSH_GATEWAY_SECRET")
    DEFAULT_TTL_SECONDS: int = Field(default=86400, alias="PUSH_DEFAULT_TTL_SECONDS")
    ALERT_TTL_SECONDS: int = Field(default=600, alias="PUSH_ALERT_TTL_SECONDS")
    REQUEST_TIMEOUT_SECONDS: float = Field(
        default=10.0, alias="PUSH_REQUEST_TIMEOUT_SECONDS"
    )

    @property
    def is_configured(self) -> bool:
        return bool(
            self.PUSH_GATEWAY_URL and self.PUSH_GATEWAY_ISSUER and self.PUSH_GATEWAY_SECRET
        )
