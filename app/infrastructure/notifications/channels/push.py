"""Push channel implementation using a web push gateway."""

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict

import requests
from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import ChannelAdapter, SendOptions
from infrastructure.notifications.errors import ValidationError
from infrastructure.notifications.models import (
    ChannelKind,
    NotificationPayload,
    NotificationType,
    Priority,
)
from infrastructure.operations import OperationResult, OperationStatus, classify_http_error
from integrations.push import check_health, send_push

if TYPE_CHECKING:
    from infrastructure.configuration.integrations.push import PushSettings

logger = get_module_logger()

URGENCY_BY_PRIORITY = {
    Priority.CRITICAL: "high",
    Priority.HIGH: "high",
    Priority.MEDIUM: "normal",
    Priority.LOW: "low",
}


class PushChannel(ChannelAdapter):
    """Web push notification channel.

    Destinations are browser push subscriptions serialized as JSON
    (``{"endpoint": "https://...", "keys": {"p256dh": ..., "auth": ...}}``).
    A 404/410 from the gateway means the subscription expired.
    """

    kind = ChannelKind.PUSH
    provider_name = "web_push"

    def __init__(self, settings: "PushSettings"):
        self._settings = settings
        logger.info(
            "initialized_push_channel",
            configured=settings.is_configured,
            gateway=settings.PUSH_GATEWAY_URL or None,
        )

    def send(
        self, destination: str, payload: NotificationPayload, options: SendOptions
    ) -> OperationResult:
        if not self._settings.is_configured:
            return OperationResult.error(
                OperationStatus.UNAUTHORIZED,
                "Push gateway is not configured",
                error_code="NOT_CONFIGURED",
            )

        ttl = self.ttl_for(options)
        if ttl <= 0:
            return OperationResult.permanent_error(
                "Push message expired before delivery", error_code="MESSAGE_EXPIRED"
            )

        try:
            subscription = self._parse_subscription(destination)
        except ValidationError as e:
            return OperationResult.permanent_error(str(e), error_code="INVALID_DESTINATION")

        message = {
            "title": payload.title,
            "body": payload.body,
            "data": {
                **payload.attributes,
                "notification_id": options.request_id,
                "type": options.notification_type.value,
                "priority": options.priority.value,
            },
            "requireInteraction": options.priority == Priority.CRITICAL,
            "tag": options.notification_type.value,
        }
        if options.content_variant:
            message["data"]["variant"] = options.content_variant

        try:
            response = send_push(
                self._settings.PUSH_GATEWAY_URL,
                self._settings.PUSH_GATEWAY_ISSUER,
                self._settings.PUSH_GATEWAY_SECRET,
                subscription=subscription,
                message=message,
                ttl=ttl,
                urgency=URGENCY_BY_PRIORITY[options.priority],
                timeout=self._settings.REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            result = classify_http_error(e, provider="push_gateway")
            logger.warning(
                "push_send_failed",
                request_id=options.request_id,
                status=result.status.value,
                error_code=result.error_code,
            )
            return result

        message_id = _response_id(response)
        logger.info(
            "push_sent",
            request_id=options.request_id,
            urgency=URGENCY_BY_PRIORITY[options.priority],
            ttl=ttl,
        )
        return self._receipt(message_id)

    def probe(self) -> OperationResult:
        if not self._settings.is_configured:
            return OperationResult.error(
                OperationStatus.UNAUTHORIZED,
                "Push gateway is not configured",
                error_code="NOT_CONFIGURED",
            )
        try:
            check_health(self._settings.PUSH_GATEWAY_URL)
        except requests.RequestException as e:
            return classify_http_error(e, provider="push_gateway")
        return OperationResult.success(message="Push gateway reachable")

    def validate_destination(self, destination: str) -> str:
        subscription = self._parse_subscription(destination)
        return json.dumps(subscription, sort_keys=True)

    def ttl_for(self, options: SendOptions) -> int:
        """Seconds the push service should keep the message.

        Cancellation alerts are time sensitive and expire quickly. An explicit
        expiry on the request wins over the defaults.
        """
        if options.expires_at is not None:
            remaining = (options.expires_at - datetime.now(timezone.utc)).total_seconds()
            return int(remaining)
        if options.notification_type == NotificationType.CANCELLATION_ALERT:
            return self._settings.ALERT_TTL_SECONDS
        return self._settings.DEFAULT_TTL_SECONDS

    @staticmethod
    def _parse_subscription(destination: str) -> Dict[str, Any]:
        try:
            subscription = json.loads(destination)
        except (TypeError, ValueError):
            raise ValidationError("push destination must be a subscription JSON object")
        if not isinstance(subscription, dict):
            raise ValidationError("push destination must be a subscription JSON object")
        endpoint = subscription.get("endpoint")
        if not isinstance(endpoint, str) or not endpoint.startswith("https://"):
            raise ValidationError("push subscription endpoint must be an https URL")
        return subscription


def _response_id(response: requests.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("id") or body.get("message_id")
    return None
