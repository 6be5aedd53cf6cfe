"""SMS channel implementation with per-country provider selection."""

import re
import threading
import time
from collections import deque
from typing import TYPE_CHECKING, Callable, Deque, Dict, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import ChannelAdapter, SendOptions
from infrastructure.notifications.channels.sms_providers import (
    SMSProvider,
    build_sms_providers,
)
from infrastructure.notifications.errors import ValidationError
from infrastructure.notifications.models import (
    ChannelKind,
    NotificationPayload,
    Priority,
)
from infrastructure.operations import OperationResult, OperationStatus

if TYPE_CHECKING:
    from infrastructure.configuration.integrations.sms import SMSSettings

logger = get_module_logger()

PHONE_PATTERNS = {
    "JP": re.compile(r"^\+81[789]0?\d{8}$"),
    "US": re.compile(r"^\+1[2-9]\d{9}$"),
    "global": re.compile(r"^\+[1-9]\d{6,14}$"),
}

COUNTRY_PREFIXES = (
    ("+81", "JP"),
    ("+1", "US"),
    ("+44", "GB"),
    ("+86", "CN"),
)

URGENT = "urgent"
HIGH = "high"
NORMAL = "normal"

PREFIXES = {URGENT: "🚨 ", HIGH: "⚡ "}


def normalize_phone_number(phone_number: str) -> str:
    """Normalize to E.164.

    Strips everything but digits and ``+``. Domestic Japanese numbers
    (``0`` followed by 10 digits) get the ``+81`` country code.
    """
    normalized = re.sub(r"[^\d+]", "", phone_number or "")
    if normalized.startswith("0") and len(normalized) == 11:
        normalized = "+81" + normalized[1:]
    if not normalized.startswith("+"):
        normalized = "+" + normalized
    return normalized


def validate_phone_number(phone_number: str) -> bool:
    return any(pattern.match(phone_number) for pattern in PHONE_PATTERNS.values())


def detect_country(phone_number: str) -> str:
    for prefix, country in COUNTRY_PREFIXES:
        if phone_number.startswith(prefix):
            return country
    return "default"


def tier_for(priority: Priority) -> str:
    """Provider matrix tier of a priority."""
    if priority == Priority.CRITICAL:
        return URGENT
    if priority == Priority.HIGH:
        return HIGH
    return NORMAL


def format_message(
    payload: NotificationPayload,
    tier: str,
    max_length: int = 160,
) -> str:
    """Render the SMS text: urgency prefix, title, body, truncated to fit."""
    if payload.title and payload.body:
        text = f"{payload.title}\n{payload.body}"
    else:
        text = payload.title or payload.body
    prefix = PREFIXES.get(tier, "")
    available = max_length - len(prefix)
    if len(text) > available:
        text = text[: max(available - 3, 0)] + "..."
    return prefix + text


class SMSChannel(ChannelAdapter):
    """SMS notification channel.

    Selects a provider from the country/tier matrix and falls back to any
    configured provider when the preferred one is missing. Keeps its own
    sliding-window caps (channel wide per minute, per number per hour) that
    are independent from subscriber admission control; a cap hit is a
    transient failure so the coordinator may try another channel.

    Args:
        settings: SMS settings section
        providers: Provider clients by name (built from settings when omitted)
        clock: Monotonic seconds, injectable for tests
    """

    kind = ChannelKind.SMS
    provider_name = "sms"

    def __init__(
        self,
        settings: "SMSSettings",
        providers: Optional[Dict[str, SMSProvider]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._settings = settings
        self.providers = providers if providers is not None else build_sms_providers(settings)
        self._clock = clock
        self._global_sends: Deque[float] = deque()
        self._destination_sends: Dict[str, Deque[float]] = {}
        self._swept_at = clock()
        self._lock = threading.Lock()
        logger.info("initialized_sms_channel", providers=sorted(self.providers))

    def send(
        self, destination: str, payload: NotificationPayload, options: SendOptions
    ) -> OperationResult:
        phone_number = normalize_phone_number(destination)
        if not validate_phone_number(phone_number):
            return OperationResult.permanent_error(
                "Phone number is not a valid E.164 number",
                error_code="INVALID_DESTINATION",
            )

        tier = tier_for(options.priority)
        provider = self.select_provider(phone_number, tier)
        if provider is None:
            return OperationResult.error(
                OperationStatus.UNAUTHORIZED,
                "No SMS provider configured",
                error_code="NOT_CONFIGURED",
            )

        if not self._reserve(phone_number):
            logger.warning("sms_rate_limited", request_id=options.request_id)
            return OperationResult.transient_error(
                "SMS channel rate limit reached", error_code="SMS_RATE_LIMITED", retry_after=60
            )

        max_length = (
            self._settings.MMS_MAX_LENGTH if self._settings.MMS_ENABLED else self._settings.MAX_LENGTH
        )
        text = format_message(payload, tier, max_length)
        result = provider.send(phone_number, text, urgent=tier == URGENT)
        if not result.is_success:
            logger.warning(
                "sms_send_failed",
                request_id=options.request_id,
                provider=provider.name,
                status=result.status.value,
                error_code=result.error_code,
            )
            return result

        logger.info(
            "sms_sent",
            request_id=options.request_id,
            provider=provider.name,
            country=detect_country(phone_number),
            tier=tier,
        )
        return self._receipt((result.data or {}).get("message_id"), provider=provider.name)

    def probe(self) -> OperationResult:
        if not self.providers:
            return OperationResult.error(
                OperationStatus.UNAUTHORIZED,
                "No SMS provider configured",
                error_code="NOT_CONFIGURED",
            )
        last: Optional[OperationResult] = None
        for provider in self.providers.values():
            last = provider.probe()
            if last.is_success:
                return last
        return last

    def validate_destination(self, destination: str) -> str:
        phone_number = normalize_phone_number(destination)
        if not validate_phone_number(phone_number):
            raise ValidationError("invalid phone number")
        return phone_number

    def select_provider(self, phone_number: str, tier: str) -> Optional[SMSProvider]:
        matrix = self._settings.PROVIDER_MATRIX
        row = matrix.get(detect_country(phone_number)) or matrix.get("default", {})
        preferred = row.get(tier) or matrix.get("default", {}).get(tier)
        if preferred in self.providers:
            return self.providers[preferred]
        if self.providers:
            fallback = next(iter(self.providers.values()))
            logger.debug(
                "sms_provider_fallback", preferred=preferred, provider=fallback.name
            )
            return fallback
        return None

    def _reserve(self, phone_number: str) -> bool:
        """Take one slot in both sliding windows, or none."""
        now = self._clock()
        with self._lock:
            _expire(self._global_sends, now - 60)
            if now - self._swept_at >= 60:
                self._sweep_destinations(now - 3600)
                self._swept_at = now
            sends = self._destination_sends.setdefault(phone_number, deque())
            _expire(sends, now - 3600)
            if len(self._global_sends) >= self._settings.GLOBAL_PER_MINUTE:
                return False
            if len(sends) >= self._settings.PER_DESTINATION_PER_HOUR:
                return False
            self._global_sends.append(now)
            sends.append(now)
            return True

    def _sweep_destinations(self, cutoff: float) -> None:
        """Forget destinations with no send inside the hourly window. Caller holds the lock."""
        for number in list(self._destination_sends):
            sends = self._destination_sends[number]
            _expire(sends, cutoff)
            if not sends:
                del self._destination_sends[number]


def _expire(window: Deque[float], cutoff: float) -> None:
    while window and window[0] <= cutoff:
        window.popleft()
