"""Notification engine core models.

Channel-agnostic models for subscriber preferences, notification requests and
dispatch outcomes. Callers describe what to send; the dispatcher decides which
channel delivers it, when to suppress it and how to fail over.

Uses Pydantic BaseModel for:
- Runtime input validation of inbound requests
- Immutable request objects (frozen models)
- JSON serialization of results for the idempotency cache
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple
from uuid import uuid4

import pytz
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Reasons recorded on skipped attempts
NO_SUBSCRIPTION = "NO_SUBSCRIPTION"
CHANNEL_CIRCUIT_OPEN = "CHANNEL_CIRCUIT_OPEN"
DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"
NO_ADAPTER = "NO_ADAPTER"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChannelKind(Enum):
    """Delivery channels.

    CHAT is the messaging-platform relay (Slack).
    """

    PUSH = "push"
    SMS = "sms"
    EMAIL = "email"
    CHAT = "chat"


class Priority(Enum):
    """Notification priority levels, highest first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """0 for critical up to 3 for low."""
        return _PRIORITY_RANK[self]

    @classmethod
    def ordered(cls) -> List["Priority"]:
        return sorted(cls, key=lambda p: p.rank)


_PRIORITY_RANK = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}

# Names used by older producers
PRIORITY_ALIASES = {"urgent": "critical", "normal": "medium"}


class NotificationType(Enum):
    """Business event behind a notification."""

    CANCELLATION_ALERT = "cancellation_alert"
    PRICE_DROP = "price_drop"
    FLASH_SALE = "flash_sale"
    DAILY_DIGEST = "daily_digest"
    GENERAL = "general"


class NotificationPayload(BaseModel):
    """Channel-agnostic message content.

    Attributes:
        title: Short headline (push title, email subject, SMS prefix)
        body: Message text
        attributes: Structured data (hotel id, prices, deep links...)
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    body: str = ""
    attributes: Dict[str, Any] = Field(default_factory=dict)


class DispatchContext(BaseModel):
    """Per-request dispatch controls.

    Attributes:
        bypass_quiet_hours: Deliver even inside the subscriber's quiet hours
        bypass_daily_limit: Deliver even when the daily cap is reached
        require_all_channels_attempted: Fan out to every candidate channel
            instead of stopping at the first success
        deadline: Absolute time after which no new attempt is started
    """

    model_config = ConfigDict(frozen=True)

    bypass_quiet_hours: bool = False
    bypass_daily_limit: bool = False
    require_all_channels_attempted: bool = False
    deadline: Optional[datetime] = None

    @field_validator("deadline")
    @classmethod
    def _aware_deadline(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Naive deadlines are taken as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class NotificationRequest(BaseModel):
    """A request to notify one subscriber.

    Immutable once created. Advisor hints travel next to the request in the
    dispatch result and never modify it.

    Example:
        request = NotificationRequest(
            subscriber_id="user-42",
            priority=Priority.HIGH,
            notification_type=NotificationType.PRICE_DROP,
            payload=NotificationPayload(title="Price drop", body="Now 12,000 JPY"),
        )
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    subscriber_id: str
    priority: Priority = Priority.MEDIUM
    notification_type: NotificationType = NotificationType.GENERAL
    payload: NotificationPayload = Field(default_factory=NotificationPayload)
    requested_channels: Tuple[ChannelKind, ...] = ()
    context: DispatchContext = Field(default_factory=DispatchContext)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority_alias(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            return PRIORITY_ALIASES.get(v, v)
        return v

    @field_validator("requested_channels", mode="before")
    @classmethod
    def _dedupe_channels(cls, v: Any) -> Any:
        """Keep the caller's order, drop repeats."""
        if v is None:
            return ()
        seen = []
        for item in v:
            key = item.value if isinstance(item, ChannelKind) else str(item).lower()
            if key not in seen:
                seen.append(key)
        return tuple(seen)

    @classmethod
    def from_inbound(cls, data: Mapping[str, Any]) -> "NotificationRequest":
        """Build a request from the inbound (camelCase) shape.

        Accepts ``{id, subscriberId, priority, type, payload: {title, body,
        attributes}, requestedChannels, context: {bypassQuietHours,
        bypassDailyLimit, requireAllChannelsAttempted, deadline}}``. Snake
        case keys are accepted as well.

        Raises:
            pydantic.ValidationError: If the data does not match the shape.
        """

        def pick(source: Mapping[str, Any], *names: str) -> Any:
            for name in names:
                if name in source and source[name] is not None:
                    return source[name]
            return None

        raw_context = pick(data, "context") or {}
        context = {
            "bypass_quiet_hours": pick(raw_context, "bypassQuietHours", "bypass_quiet_hours"),
            "bypass_daily_limit": pick(raw_context, "bypassDailyLimit", "bypass_daily_limit"),
            "require_all_channels_attempted": pick(
                raw_context,
                "requireAllChannelsAttempted",
                "require_all_channels_attempted",
            ),
            "deadline": pick(raw_context, "deadline"),
        }

        fields: Dict[str, Any] = {
            "id": pick(data, "id"),
            "subscriber_id": pick(data, "subscriberId", "subscriber_id"),
            "priority": pick(data, "priority"),
            "notification_type": pick(data, "type", "notificationType", "notification_type"),
            "payload": pick(data, "payload"),
            "requested_channels": pick(data, "requestedChannels", "requested_channels"),
            "context": {k: v for k, v in context.items() if v is not None},
        }
        return cls(**{k: v for k, v in fields.items() if v is not None})


class QuietHours(BaseModel):
    """Hour-of-day window during which only bypass-flagged deliveries are sent.

    The window is ``[start, end)``. ``start > end`` spans midnight (22..7 is
    quiet from 22:00 until 06:59). ``start == end`` means no quiet window.
    """

    start: int = 22
    end: int = 7

    @field_validator("start", "end")
    @classmethod
    def _hour_range(cls, v: int) -> int:
        if not 0 <= v <= 23:
            raise ValueError("hour must be between 0 and 23")
        return v

    def contains(self, hour: int) -> bool:
        if self.start == self.end:
            return False
        if self.start < self.end:
            return self.start <= hour < self.end
        return hour >= self.start or hour < self.end


class SubscriberPreferences(BaseModel):
    """Per-subscriber delivery preferences.

    Attributes:
        enabled_types: Notification types the subscriber accepts (None = all)
        quiet_hours: Quiet window in the subscriber's timezone (None = never quiet)
        max_per_day: Daily cap across all channels
        timezone: IANA timezone used for quiet hours and the daily window
    """

    enabled_types: Optional[FrozenSet[NotificationType]] = None
    quiet_hours: Optional[QuietHours] = Field(default_factory=QuietHours)
    max_per_day: int = 10
    timezone: str = "Asia/Tokyo"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, v: str) -> str:
        try:
            pytz.timezone(v)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator("max_per_day")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_per_day must be >= 0")
        return v

    def allows(self, notification_type: NotificationType) -> bool:
        return self.enabled_types is None or notification_type in self.enabled_types

    @property
    def tz(self):
        return pytz.timezone(self.timezone)


class Subscriber(BaseModel):
    id: str
    preferences: SubscriberPreferences = Field(default_factory=SubscriberPreferences)


class SubscriptionStatus(Enum):
    ACTIVE = "active"
    INVALID = "invalid"


class Subscription(BaseModel):
    """One channel destination of a subscriber.

    ``destination`` holds the encrypted token, never the plaintext address.
    Invalid subscriptions are kept for audit.
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    subscriber_id: str
    channel_kind: ChannelKind
    destination: str
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    created_at: datetime = Field(default_factory=utcnow)
    last_used_at: Optional[datetime] = None
    invalidated_at: Optional[datetime] = None
    invalidated_reason: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE


class DeliveryReceipt(BaseModel):
    """Proof of acceptance by a provider."""

    channel_kind: ChannelKind
    provider: str
    provider_message_id: Optional[str] = None
    delivered_at: datetime = Field(default_factory=utcnow)


class AttemptOutcome(Enum):
    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"
    SKIPPED = "skipped"


class DispatchAttempt(BaseModel):
    """One try of one channel (or a skip decision) for a request."""

    request_id: str
    channel_kind: ChannelKind
    attempt_number: int = 0
    started_at: datetime = Field(default_factory=utcnow)
    outcome: AttemptOutcome
    provider_message_id: Optional[str] = None
    error_code: Optional[str] = None
    error_detail: Optional[str] = None


class DispatchStatus(Enum):
    DELIVERED = "delivered"
    QUIET_HOURS_SUPPRESSED = "quiet_hours_suppressed"
    RATE_LIMITED = "rate_limited"
    OPTED_OUT = "opted_out"
    NO_ACTIVE_CHANNELS = "no_active_channels"
    ALL_CHANNELS_FAILED = "all_channels_failed"
    TIMED_OUT = "timed_out"


SUPPRESSED_STATUSES = frozenset(
    {
        DispatchStatus.QUIET_HOURS_SUPPRESSED,
        DispatchStatus.RATE_LIMITED,
        DispatchStatus.OPTED_OUT,
    }
)


class OptimizationHints(BaseModel):
    """Advisor output carried alongside a request.

    Attributes:
        channel_ranking: Preferred channel order, best first
        priority_score: Score on a 0-10 scale
        adjusted_priority: Tier derived from priority_score (never set for critical requests)
        content_variant: A/B content variant to render
        suggested_send_time: When the advisor would deliver
        confidence: Share of advisor analyses that completed (0-1)
        variant_id: A/B test assignment id
    """

    channel_ranking: List[ChannelKind] = Field(default_factory=list)
    priority_score: Optional[float] = None
    adjusted_priority: Optional[Priority] = None
    content_variant: Optional[str] = None
    suggested_send_time: Optional[datetime] = None
    confidence: float = 0.0
    variant_id: Optional[str] = None


class DispatchResult(BaseModel):
    """Outcome of dispatching one request.

    ``success`` is True only for DELIVERED. Suppression (quiet hours, rate
    limit, opt-out) is a no-op decision with zero attempts, not an error.
    """

    request_id: str
    status: DispatchStatus
    success: bool = False
    attempts: List[DispatchAttempt] = Field(default_factory=list)
    channels_succeeded: List[ChannelKind] = Field(default_factory=list)
    receipts: List[DeliveryReceipt] = Field(default_factory=list)
    reason: Optional[str] = None
    hints: Optional[OptimizationHints] = None
    duplicate: bool = False

    @property
    def is_suppressed(self) -> bool:
        return self.status in SUPPRESSED_STATUSES

    @property
    def channels_attempted(self) -> List[ChannelKind]:
        kinds: List[ChannelKind] = []
        for attempt in self.attempts:
            if attempt.outcome != AttemptOutcome.SKIPPED and attempt.channel_kind not in kinds:
                kinds.append(attempt.channel_kind)
        return kinds

    @property
    def channels_failed(self) -> List[ChannelKind]:
        return [k for k in self.channels_attempted if k not in self.channels_succeeded]

    @property
    def channels_skipped(self) -> Dict[ChannelKind, str]:
        return {
            a.channel_kind: a.error_code or ""
            for a in self.attempts
            if a.outcome == AttemptOutcome.SKIPPED
        }

    def raise_for_status(self) -> "DispatchResult":
        """Raise for failed dispatches, return self otherwise.

        Raises:
            AllChannelsFailed: status is ALL_CHANNELS_FAILED or NO_ACTIVE_CHANNELS
            DispatchTimeout: status is TIMED_OUT
        """
        from infrastructure.notifications.errors import AllChannelsFailed, DispatchTimeout

        if self.status == DispatchStatus.TIMED_OUT:
            raise DispatchTimeout(self)
        if self.status in (
            DispatchStatus.ALL_CHANNELS_FAILED,
            DispatchStatus.NO_ACTIVE_CHANNELS,
        ):
            raise AllChannelsFailed(self)
        return self


class BatchResult(BaseModel):
    total_sent: int = 0
    total_failed: int = 0
    total_suppressed: int = 0
    results: List[DispatchResult] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    def add(self, result: DispatchResult) -> None:
        self.results.append(result)
        if result.success:
            self.total_sent += 1
        elif result.is_suppressed:
            self.total_suppressed += 1
        else:
            self.total_failed += 1


class ChannelHealth(BaseModel):
    channel_kind: ChannelKind
    state: str
    consecutive_failures: int = 0
    last_probe_at: Optional[datetime] = None
    last_probe_ok: Optional[bool] = None

    @property
    def healthy(self) -> bool:
        return self.state == "closed" and self.last_probe_ok is not False


class RateCounter(BaseModel):
    key: str
    count: int
    window_start: datetime
