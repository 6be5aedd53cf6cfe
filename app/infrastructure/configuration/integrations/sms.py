"""SMS provider integration settings."""

from typing import Dict

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings

DEFAULT_PROVIDER_MATRIX: Dict[str, Dict[str, str]] = {
    "JP": {"urgent": "twilio", "high": "twilio", "normal": "nexmo"},
    "US": {"urgent": "twilio", "high": "twilio", "normal": "aws_sns"},
    "default": {"urgent": "twilio", "high": "nexmo", "normal": "aws_sns"},
}


class SMSSettings(IntegrationSettings):
    """SMS channel configuration.

    Provider selection is driven by ``SMS_PROVIDER_MATRIX``: country code ->
    tier (urgent, high, normal) -> provider name. The ``default`` row applies
    to countries without their own row.

    Environment Variables:
        SMS_TWILIO_URL / SMS_TWILIO_ACCOUNT / SMS_TWILIO_TOKEN / SMS_TWILIO_FROM
        SMS_NEXMO_URL / SMS_NEXMO_KEY / SMS_NEXMO_SECRET / SMS_NEXMO_FROM
        SMS_SNS_ENABLED: Enable the AWS SNS provider (default: False)
        SMS_SNS_REGION: AWS region for SNS (default: ap-northeast-1)
        SMS_SENDER_ID: Sender id used by SNS
        SMS_GLOBAL_PER_MINUTE: Channel-wide send cap per minute (default: 100)
        SMS_PER_DESTINATION_PER_HOUR: Cap per phone number per hour (default: 10)
        SMS_MAX_LENGTH: Max SMS length (default: 160)
        SMS_MMS_MAX_LENGTH: Max length when MMS is supported (default: 1600)
        SMS_MMS_ENABLED: Whether long messages are sent as MMS (default: False)
        SMS_REQUEST_TIMEOUT_SECONDS: HTTP timeout (default: 10)

    Example:
        ```python
        from infrastructure.services import get_settings

        sms = get_settings().sms
        provider = sms.PROVIDER_MATRIX["JP"]["urgent"]
        ```
    """

    TWILIO_URL: str = Field(default="", alias="SMS_TWILIO_URL")
    TWILIO_ACCOUNT: str | None = Field(default=None, alias="SMS_TWILIO_ACCOUNT")
    TWILIO_TOKEN: str | None = Field(default=None, alias="SMS_TWILIO_TOKEN")
    TWILIO_FROM: str = Field(default="", alias="SMS_TWILIO_FROM")

    NEXMO_URL: str = Field(default="", alias="SMS_NEXMO_URL")
    NEXMO_KEY: str | None = Field(default=None, alias="SMS_NEXMO_KEY")
    NEXMO_SECRET: str | None = Field(default=None, alias="SMS_NEXMO_SECRET")
    NEXMO_FROM: str = Field(default="", alias="SMS_NEXMO_FROM")

    SNS_ENABLED: bool = Field(default=False, alias="SMS_SNS_ENABLED")
    SNS_REGION: str = Field(default="ap-northeast-1", alias="SMS_SNS_REGION")
    SENDER_ID: str = Field(default="", alias="SMS_SENDER_ID")

    GLOBAL_PER_MINUTE: int = Field(default=100, alias="SMS_GLOBAL_PER_MINUTE")
    PER_DESTINATION_PER_HOUR: int = Field(
        default=10, alias="SMS_PER_DESTINATION_PER_HOUR"
    )
    MAX_LENGTH: int = Field(default=160, alias="SMS_MAX_LENGTH")
    MMS_MAX_LENGTH: int = Field(default=1600, alias="SMS_MMS_MAX_LENGTH")
    MMS_ENABLED: bool = Field(default=False, alias="SMS_MMS_ENABLED")
    REQUEST_TIMEOUT_SECONDS: float = Field(
        default=10.0, alias="SMS_REQUEST_TIMEOUT_SECONDS"
    )

    PROVIDER_MATRIX: Dict[str, Dict[str, str]] = Field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_PROVIDER_MATRIX.items()},
        alias="SMS_PROVIDER_MATRIX",
    )
