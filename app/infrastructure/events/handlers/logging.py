"""Event bus subscriber that writes every event to the structured log."""

import structlog

from infrastructure.events.models import CHANNEL_HEALTH_CHANGED, DISPATCH_FAILED, Event

logger = structlog.get_logger()


def _is_warning(event: Event) -> bool:
    if event.event_type == DISPATCH_FAILED:
        return True
    # Breaker opening is the only health transition operators act on.
    return (
        event.event_type == CHANNEL_HEALTH_CHANGED
        and (event.detail or {}).get("state") == "open"
    )


class LoggingHandler:
    """Log dispatch and health events; failures and opened breakers at warning."""

    def __init__(self):
        self.log = logger.bind(component="event_log")

    def __call__(self, event: Event) -> None:
        self.handle(event)

    def handle(self, event: Event) -> None:
        log = self.log.bind(
            event_type=event.event_type,
            request_id=event.request_id,
            channel_kind=event.channel_kind,
        )
        emit = log.warning if _is_warning(event) else log.info
        try:
            emit(
                event.event_type,
                detail=event.detail,
                timestamp=event.timestamp.isoformat(),
            )
        except Exception as e:
            log.error("failed_to_log_event", error=str(e))
