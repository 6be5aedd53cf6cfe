"""Multi-channel notification dispatch.

Provides delivery to push, SMS, email and chat with:
- Advisor driven channel ranking and sequential failover
- Quiet hours, per-subscriber daily caps and a global rate guard
- Retries with backoff and per-channel circuit breakers
- Idempotency (a request id is dispatched at most once)
- Priority queueing and batched sends

Usage:
    from infrastructure.notifications import (
        ChannelKind,
        NotificationRequest,
        NotificationService,
        Priority,
    )
    from infrastructure.services import get_settings

    service = NotificationService(get_settings())
    service.register_subscriber("user-42")
    service.subscribe("user-42", ChannelKind.SMS, "090-1234-5678")

    result = service.send(
        NotificationRequest(
            subscriber_id="user-42",
            priority=Priority.HIGH,
            payload={"title": "Price drop", "body": "Now 12,000 JPY"},
        )
    )
    logger.info("dispatched", status=result.status.value)
"""

# Models
from infrastructure.notifications.models import (
    AttemptOutcome,
    BatchResult,
    ChannelKind,
    DeliveryReceipt,
    DispatchAttempt,
    DispatchContext,
    DispatchResult,
    DispatchStatus,
    NotificationPayload,
    NotificationRequest,
    NotificationType,
    OptimizationHints,
    Priority,
    QuietHours,
    Subscriber,
    SubscriberPreferences,
    Subscription,
    SubscriptionStatus,
)

# Errors
from infrastructure.notifications.errors import (
    AllChannelsFailed,
    DispatchFailed,
    DispatchTimeout,
    NotificationError,
    ValidationError,
)

# Engine
from infrastructure.notifications.advisor import (
    AdvisorGateway,
    HeuristicAdvisor,
    OptimizationAdvisor,
)
from infrastructure.notifications.dispatcher import NotificationDispatcher
from infrastructure.notifications.failover import FailoverCoordinator
from infrastructure.notifications.health import HealthMonitor
from infrastructure.notifications.queue import PriorityDispatchQueue
from infrastructure.notifications.rate_limiter import RateLimiter
from infrastructure.notifications.service import NotificationService
from infrastructure.notifications.store import InMemoryStore, Store
from infrastructure.notifications.subscriptions import SubscriptionRegistry

# Channels
from infrastructure.notifications.channels import (
    ChannelAdapter,
    ChannelRegistry,
    ChatChannel,
    EmailChannel,
    PushChannel,
    SMSChannel,
)

# Export all public interfaces
__all__ = [
    # Models
    "AttemptOutcome",
    "BatchResult",
    "ChannelKind",
    "DeliveryReceipt",
    "DispatchAttempt",
    "DispatchContext",
    "DispatchResult",
    "DispatchStatus",
    "NotificationPayload",
    "NotificationRequest",
    "NotificationType",
    "OptimizationHints",
    "Priority",
    "QuietHours",
    "Subscriber",
    "SubscriberPreferences",
    "Subscription",
    "SubscriptionStatus",
    # Errors
    "AllChannelsFailed",
    "DispatchFailed",
    "DispatchTimeout",
    "NotificationError",
    "ValidationError",
    # Engine
    "AdvisorGateway",
    "HeuristicAdvisor",
    "OptimizationAdvisor",
    "NotificationDispatcher",
    "FailoverCoordinator",
    "HealthMonitor",
    "PriorityDispatchQueue",
    "RateLimiter",
    "NotificationService",
    "InMemoryStore",
    "Store",
    "SubscriptionRegistry",
    # Channels
    "ChannelAdapter",
    "ChannelRegistry",
    "ChatChannel",
    "EmailChannel",
    "PushChannel",
    "SMSChannel",
]
