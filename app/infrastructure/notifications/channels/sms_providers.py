"""SMS provider clients used by the SMS channel.

Each provider takes an E.164 number and a ready-to-send text and returns a
classified OperationResult. Provider choice per destination is made by
SMSChannel through the provider matrix.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError

from infrastructure.logging import get_module_logger
from infrastructure.operations import (
    OperationResult,
    classify_aws_error,
    classify_http_error,
)

if TYPE_CHECKING:
    from infrastructure.configuration.integrations.sms import SMSSettings

logger = get_module_logger()

TWILIO = "twilio"
NEXMO = "nexmo"
AWS_SNS = "aws_sns"


class SMSProvider(ABC):
    """One SMS provider account."""

    name: str = ""

    @abstractmethod
    def send(self, phone_number: str, text: str, urgent: bool = False) -> OperationResult:
        """Send ``text`` to ``phone_number``.

        Returns:
            OperationResult with ``{"message_id": ...}`` in data on success
        """
        pass

    @abstractmethod
    def probe(self) -> OperationResult:
        pass


class HttpSMSProvider(SMSProvider):
    """REST SMS provider authenticated with HTTP basic auth.

    Covers the Twilio and Nexmo style APIs: a JSON POST of ``{to, from, text}``
    answered with a message id.
    """

    def __init__(
        self,
        name: str,
        url: str,
        username: str,
        password: str,
        sender: str = "",
        timeout: float = 10.0,
    ):
        self.name = name
        self.url = url
        self._auth = (username, password)
        self.sender = sender
        self.timeout = timeout

    def send(self, phone_number: str, text: str, urgent: bool = False) -> OperationResult:
        body = {"to": phone_number, "from": self.sender, "text": text}
        try:
            response = requests.post(
                self.url, json=body, auth=self._auth, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            return classify_http_error(e, provider=self.name)

        return OperationResult.success(
            data={"message_id": _message_id(response)},
            message=f"SMS accepted by {self.name}",
        )

    def probe(self) -> OperationResult:
        try:
            response = requests.head(self.url, auth=self._auth, timeout=self.timeout)
        except requests.RequestException as e:
            return classify_http_error(e, provider=self.name)
        if response.status_code >= 500:
            return OperationResult.transient_error(
                f"{self.name} returned {response.status_code}", error_code="SERVER_ERROR"
            )
        return OperationResult.success(message=f"{self.name} reachable")


class SnsSMSProvider(SMSProvider):
    """AWS SNS direct-to-phone publishing.

    Urgent traffic is sent as Transactional (higher delivery priority), the
    rest as Promotional.
    """

    name = AWS_SNS

    def __init__(self, region: str, sender_id: str = "", client: Any = None):
        self.region = region
        self.sender_id = sender_id
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("sns", region_name=self.region)
        return self._client

    def send(self, phone_number: str, text: str, urgent: bool = False) -> OperationResult:
        attributes: Dict[str, Dict[str, str]] = {
            "AWS.SNS.SMS.SMSType": {
                "DataType": "String",
                "StringValue": "Transactional" if urgent else "Promotional",
            }
        }
        if self.sender_id:
            attributes["AWS.SNS.SMS.SenderID"] = {
                "DataType": "String",
                "StringValue": self.sender_id,
            }
        try:
            response = self.client.publish(
                PhoneNumber=phone_number, Message=text, MessageAttributes=attributes
            )
        except (ClientError, BotoCoreError) as e:
            return classify_aws_error(e)

        return OperationResult.success(
            data={"message_id": response.get("MessageId")},
            message="SMS accepted by SNS",
        )

    def probe(self) -> OperationResult:
        try:
            self.client.get_sms_attributes(attributes=["DefaultSMSType"])
        except (ClientError, BotoCoreError) as e:
            return classify_aws_error(e)
        return OperationResult.success(message="SNS reachable")


def build_sms_providers(settings: "SMSSettings") -> Dict[str, SMSProvider]:
    """Providers with credentials present in settings, keyed by name."""
    providers: Dict[str, SMSProvider] = {}
    if settings.TWILIO_URL and settings.TWILIO_ACCOUNT and settings.TWILIO_TOKEN:
        providers[TWILIO] = HttpSMSProvider(
            TWILIO,
            settings.TWILIO_URL,
            settings.TWILIO_ACCOUNT,
            settings.TWILIO_TOKEN,
            sender=settings.TWILIO_FROM,
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
        )
    if settings.NEXMO_URL and settings.NEXMO_KEY and settings.NEXMO_SECRET:
        providers[NEXMO] = HttpSMSProvider(
            NEXMO,
            settings.NEXMO_URL,
            settings.NEXMO_KEY,
            settings.NEXMO_SECRET,
            sender=settings.NEXMO_FROM,
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
        )
    if settings.SNS_ENABLED:
        providers[AWS_SNS] = SnsSMSProvider(settings.SNS_REGION, settings.SENDER_ID)

    logger.info("sms_providers_configured", providers=sorted(providers))
    return providers


def _message_id(response: requests.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    if "messages" in body and body["messages"]:
        return body["messages"][0].get("message-id")
    return body.get("sid") or body.get("id") or body.get("message_id")
