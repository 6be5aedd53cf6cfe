"""GC Notify style email integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class NotifySettings(IntegrationSettings):
    """Email API configuration (GC Notify compatible).

    Environment Variables:
        NOTIFY_SERVICE_ID: Service id used as the JWT issuer
        NOTIFY_API_SECRET: Secret used to sign the JWT
        NOTIFY_API_URL: API endpoint URL
        NOTIFY_EMAIL_TEMPLATE_ID: Template used for notification emails
        NOTIFY_REQUEST_TIMEOUT_SECONDS: HTTP timeout (default: 10)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        api_url = settings.notify.NOTIFY_API_URL
        template = settings.notify.NOTIFY_EMAIL_TEMPLATE_ID
        ```
    """

    NOTIFY_SERVICE_ID: str | None = Field(default=None, alias="NOTIFY_SERVICE_ID")
    NOTIFY_API_SECRET: str | None = Field(default=None, alias="NOTIFY_API_SECRET")
    NOTIFY_API_URL: str = Field(default="", alias="NOTIFY_API_URL")
    NOTIFY_EMAIL_TEMPLATE_ID: str = Field(default="", alias="NOTIFY_EMAIL_TEMPLATE_ID")
    REQUEST_TIMEOUT_SECONDS: float = Field(
        default=10.0, alias="NOTIFY_REQUEST_TIMEOUT_SECONDS"
    )

    @property
    def is_configured(self) -> bool:
        return bool(
            self.NOTIFY_API_URL and self.NOTIFY_SERVICE_ID and self.NOTIFY_API_SECRET
        )
