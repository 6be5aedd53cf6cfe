"""Event models for the dispatch event system.

Provides the Event record published by the notification engine and the
event type names it uses.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional

DISPATCH_ATTEMPTED = "dispatch.attempted"
DISPATCH_SUCCEEDED = "dispatch.succeeded"
DISPATCH_FAILED = "dispatch.failed"
CHANNEL_HEALTH_CHANGED = "channel.health.changed"

EVENT_TYPES = (
    DISPATCH_ATTEMPTED,
    DISPATCH_SUCCEEDED,
    DISPATCH_FAILED,
    CHANNEL_HEALTH_CHANGED,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Event:
    """Immutable record of something that happened during dispatch.

    Events are consumed by handlers for audit trails, metrics and
    cross-module communication. They never influence the dispatch itself.
    """

    event_type: str
    """The type of event (e.g., 'dispatch.succeeded')."""

    request_id: Optional[str] = None
    """Notification request the event belongs to (None for health events)."""

    channel_kind: Optional[str] = None
    """Channel involved, if any."""

    timestamp: datetime = field(default_factory=_utcnow)
    """When the event occurred (UTC)."""

    detail: Dict[str, Any] = field(default_factory=dict)
    """Event specific data (attempt number, error code, states...)."""

    def to_dict(self) -> Dict[str, Any]:
        """Serialize event to dictionary.

        Returns:
            Dictionary representation of the event with ISO format timestamp.
        """
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        """Deserialize event from dictionary.

        Args:
            data: Dictionary with event fields.

        Returns:
            Event instance.

        Raises:
            ValueError: If required fields are missing or invalid.
        """
        try:
            timestamp = data.get("timestamp")
            if isinstance(timestamp, str):
                timestamp = datetime.fromisoformat(timestamp)
            elif timestamp is None:
                timestamp = _utcnow()

            return cls(
                event_type=data["event_type"],
                request_id=data.get("request_id"),
                channel_kind=data.get("channel_kind"),
                timestamp=timestamp,
                detail=dict(data.get("detail") or {}),
            )
        except (KeyError, ValueError) as e:
            raise ValueError(f"Invalid event data: {e}")

    def __hash__(self) -> int:
        """Hash based on type, request, channel and timestamp."""
        return hash((self.event_type, self.request_id, self.channel_kind, self.timestamp))
