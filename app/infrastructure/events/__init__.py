"""Infrastructure event system - dispatch event bus.

The event system provides a lightweight, in-process event bus used by the
notification engine to publish attempts, outcomes and channel health changes.

Usage:

    from infrastructure.events import Event, EventBus, DISPATCH_SUCCEEDED

    bus = EventBus()

    @bus.register_event_handler(DISPATCH_SUCCEEDED)
    def handle_succeeded(event: Event) -> None:
        # Process the event
        pass

    bus.publish(Event(event_type=DISPATCH_SUCCEEDED, request_id="abc", channel_kind="sms"))
"""

from infrastructure.events.dispatcher import ALL_EVENTS, EventBus
from infrastructure.events.handlers.logging import LoggingHandler
from infrastructure.events.models import (
    CHANNEL_HEALTH_CHANGED,
    DISPATCH_ATTEMPTED,
    DISPATCH_FAILED,
    DISPATCH_SUCCEEDED,
    EVENT_TYPES,
    Event,
)

__all__ = [
    "Event",
    "EventBus",
    "LoggingHandler",
    "ALL_EVENTS",
    "DISPATCH_ATTEMPTED",
    "DISPATCH_SUCCEEDED",
    "DISPATCH_FAILED",
    "CHANNEL_HEALTH_CHANGED",
    "EVENT_TYPES",
]
