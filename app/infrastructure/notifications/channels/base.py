"""Channel adapter abstract base class.

All channel implementations (Push, SMS, Email, Chat) must implement this interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from infrastructure.notifications.models import (
    ChannelKind,
    DeliveryReceipt,
    NotificationPayload,
    NotificationType,
    Priority,
)
from infrastructure.operations import OperationResult


@dataclass(frozen=True)
class SendOptions:
    """Per-send metadata handed to an adapter.

    Attributes:
        request_id: Notification request id (provider reference)
        priority: Effective priority of the request
        notification_type: Business event behind the notification
        expires_at: Absolute time after which delivery is pointless
        attempt: 1-based attempt number on this channel
        content_variant: A/B variant chosen by the advisor, if any
    """

    request_id: str
    priority: Priority
    notification_type: NotificationType = NotificationType.GENERAL
    expires_at: Optional[datetime] = None
    attempt: int = 1
    content_variant: Optional[str] = None


class ChannelAdapter(ABC):
    """Abstract base class for delivery channels.

    Each adapter handles delivery through one provider family:
    - PushChannel: web push gateway
    - SMSChannel: SMS providers selected by country and priority
    - EmailChannel: Notify style email API
    - ChatChannel: Slack relay

    Adapters never raise for delivery problems. Every outcome is an
    OperationResult whose status is the classification the failover
    coordinator acts on:

    - SUCCESS: ``data`` is a DeliveryReceipt
    - TRANSIENT_ERROR: retry on the same channel may succeed
    - PERMANENT_ERROR / NOT_FOUND / UNAUTHORIZED: move on to the next channel

    Example Implementation:
        class FaxChannel(ChannelAdapter):
            kind = ChannelKind.CHAT
            provider_name = "fax"

            def send(self, destination, payload, options):
                try:
                    message_id = fax_api.send(destination, payload.body)
                except requests.RequestException as e:
                    return classify_http_error(e, provider="fax")
                return self._receipt(message_id)

            def probe(self):
                return OperationResult.success(message="fax api reachable")
    """

    kind: ChannelKind
    provider_name: str = ""

    @abstractmethod
    def send(
        self, destination: str, payload: NotificationPayload, options: SendOptions
    ) -> OperationResult:
        """Deliver one message to one destination.

        Args:
            destination: Plaintext destination (decrypted by the caller)
            payload: Message content
            options: Request metadata

        Returns:
            Classified OperationResult, a DeliveryReceipt in ``data`` on success
        """
        pass

    @abstractmethod
    def probe(self) -> OperationResult:
        """Cheap health check of the provider (connectivity, credentials)."""
        pass

    def validate_destination(self, destination: str) -> str:
        """Validate and normalize a destination before it is stored.

        Returns:
            The normalized destination

        Raises:
            ValidationError: If the destination can never be delivered to.
        """
        return destination.strip()

    def _receipt(
        self, provider_message_id: Optional[str], provider: Optional[str] = None
    ) -> OperationResult:
        receipt = DeliveryReceipt(
            channel_kind=self.kind,
            provider=provider or self.provider_name,
            provider_message_id=provider_message_id,
        )
        return OperationResult.success(
            data=receipt, message=f"{self.kind.value} accepted by {receipt.provider}"
        )
