"""Email channel implementation using a GC Notify style API."""

from typing import TYPE_CHECKING

import requests
from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import ChannelAdapter, SendOptions
from infrastructure.notifications.errors import ValidationError
from infrastructure.notifications.models import ChannelKind, NotificationPayload
from infrastructure.operations import OperationResult, OperationStatus, classify_http_error
from integrations.notify import get_status, send_email

if TYPE_CHECKING:
    from infrastructure.configuration.integrations.notify import NotifySettings

logger = get_module_logger()

_email_adapter = TypeAdapter(EmailStr)


class EmailChannel(ChannelAdapter):
    """Email notification channel.

    Sends a templated email through the Notify API. Title and body are passed
    as template personalisation, together with the payload attributes.
    """

    kind = ChannelKind.EMAIL
    provider_name = "gc_notify"

    def __init__(self, settings: "NotifySettings"):
        self._settings = settings
        logger.info("initialized_email_channel", configured=settings.is_configured)

    def send(
        self, destination: str, payload: NotificationPayload, options: SendOptions
    ) -> OperationResult:
        if not self._settings.is_configured:
            return OperationResult.error(
                OperationStatus.UNAUTHORIZED,
                "Email API is not configured",
                error_code="NOT_CONFIGURED",
            )
        try:
            email_address = self.validate_destination(destination)
        except ValidationError as e:
            return OperationResult.permanent_error(str(e), error_code="INVALID_DESTINATION")

        personalisation = {
            key: str(value) for key, value in payload.attributes.items()
        }
        personalisation.update(
            {
                "subject": payload.title or "Notification",
                "body": payload.body,
                "priority": options.priority.value,
            }
        )
        if options.content_variant:
            personalisation["variant"] = options.content_variant

        try:
            response = send_email(
                self._settings.NOTIFY_API_URL,
                self._settings.NOTIFY_SERVICE_ID,
                self._settings.NOTIFY_API_SECRET,
                email_address=email_address,
                template_id=self._settings.NOTIFY_EMAIL_TEMPLATE_ID,
                personalisation=personalisation,
                reference=options.request_id,
                timeout=self._settings.REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            result = classify_http_error(e, provider="notify")
            logger.warning(
                "email_send_failed",
                request_id=options.request_id,
                status=result.status.value,
                error_code=result.error_code,
            )
            return result

        try:
            notification_id = response.json().get("id")
        except ValueError:
            notification_id = None
        logger.info("email_sent", request_id=options.request_id)
        return self._receipt(notification_id)

    def probe(self) -> OperationResult:
        if not self._settings.is_configured:
            return OperationResult.error(
                OperationStatus.UNAUTHORIZED,
                "Email API is not configured",
                error_code="NOT_CONFIGURED",
            )
        try:
            get_status(self._settings.NOTIFY_API_URL)
        except requests.RequestException as e:
            return classify_http_error(e, provider="notify")
        return OperationResult.success(message="Email API reachable")

    def validate_destination(self, destination: str) -> str:
        try:
            return str(_email_adapter.validate_python(destination.strip()))
        except PydanticValidationError:
            raise ValidationError("invalid email address")
