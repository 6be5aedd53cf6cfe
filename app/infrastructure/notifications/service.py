"""Notification service for dependency injection.

Builds the dispatch engine from settings and owns its lifecycle (event bus
worker, scheduled health probes and queue drains).
"""

import threading
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

import schedule

from infrastructure.events import ALL_EVENTS, EventBus, LoggingHandler
from infrastructure.idempotency import IdempotencyCache, create_idempotency_cache
from infrastructure.logging import get_module_logger
from infrastructure.notifications.advisor import (
    AdvisorGateway,
    HeuristicAdvisor,
    OptimizationAdvisor,
)
from infrastructure.notifications.channels import (
    ChannelAdapter,
    ChannelRegistry,
    ChatChannel,
    EmailChannel,
    PushChannel,
    SMSChannel,
)
from infrastructure.notifications.dispatcher import NotificationDispatcher, RequestLike
from infrastructure.notifications.failover import FailoverCoordinator
from infrastructure.notifications.health import HealthMonitor
from infrastructure.notifications.models import (
    BatchResult,
    ChannelKind,
    DispatchResult,
    Subscriber,
    SubscriberPreferences,
    Subscription,
)
from infrastructure.notifications.rate_limiter import RateLimiter
from infrastructure.notifications.store import InMemoryStore, Store
from infrastructure.notifications.subscriptions import SubscriptionRegistry
from infrastructure.resilience import CircuitBreaker, RetryPolicy
from infrastructure.security import DestinationCipher

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()


class NotificationService:
    """Composition root of the notification engine.

    Every collaborator can be injected for tests; anything not given is
    built from settings.

    Usage:
        # Via the provider
        from infrastructure.services import get_notification_service

        service = get_notification_service()
        service.start()
        service.register_subscriber("user-42")
        service.subscribe("user-42", ChannelKind.SMS, "090-1234-5678")
        result = service.send({"subscriberId": "user-42", "priority": "high", ...})

        # Direct instantiation
        from infrastructure.services import get_settings

        service = NotificationService(get_settings())
    """

    def __init__(
        self,
        settings: "Settings",
        store: Optional[Store] = None,
        adapters: Optional[List[ChannelAdapter]] = None,
        advisor: Optional[OptimizationAdvisor] = None,
        idempotency_cache: Optional[IdempotencyCache] = None,
        event_bus: Optional[EventBus] = None,
        cipher: Optional[DestinationCipher] = None,
    ):
        """Initialize the notification service.

        Args:
            settings: Settings instance (required, passed from provider).
            store: Persistence backend (in-memory when omitted).
            adapters: Channel adapters (push, SMS, email and chat built from
                settings when omitted).
            advisor: Optimization advisor (the heuristic advisor when omitted
                and settings.dispatch.advisor_enabled is set).
            idempotency_cache: Cache de-duplicating request ids (built from
                settings.idempotency when omitted).
            event_bus: Bus receiving dispatch and health events.
            cipher: Encrypts destinations at rest.
        """
        self.settings = settings
        dispatch = settings.dispatch
        breaker_settings = settings.circuit_breaker
        if advisor is None and dispatch.advisor_enabled:
            advisor = HeuristicAdvisor()

        self.event_bus = event_bus or EventBus()
        self.event_bus.subscribe(ALL_EVENTS, LoggingHandler())

        self.store = store or InMemoryStore()
        self.cipher = cipher or DestinationCipher(
            key=settings.security.DESTINATION_ENCRYPTION_KEY
        )
        self.channels = ChannelRegistry(
            adapters
            if adapters is not None
            else [
                PushChannel(settings.push),
                SMSChannel(settings.sms),
                EmailChannel(settings.notify),
                ChatChannel(settings.slack),
            ]
        )
        self.subscriptions = SubscriptionRegistry(self.store, self.cipher, self.channels)

        self.advisor = AdvisorGateway(
            advisor,
            timeout_ms=dispatch.advisor_timeout_ms,
            thresholds=dispatch.priority_thresholds,
            breaker=CircuitBreaker(
                name="advisor",
                failure_threshold=breaker_settings.failure_threshold,
                cooldown_seconds=breaker_settings.cooldown_seconds,
            ),
        )
        self.health = HealthMonitor(
            self.channels,
            failure_threshold=breaker_settings.failure_threshold,
            cooldown_seconds=breaker_settings.cooldown_seconds,
            event_bus=self.event_bus,
            advisor=self.advisor if settings.health.probe_advisor else None,
            enabled=breaker_settings.enabled,
        )
        self.failover = FailoverCoordinator(
            self.health,
            self.subscriptions,
            retry_policy=RetryPolicy.from_settings(dispatch),
            channel_timeout_seconds=dispatch.channel_timeout_seconds,
            event_bus=self.event_bus,
        )
        self.rate_limiter = RateLimiter(
            self.store, global_per_minute=settings.rate_limit.global_per_minute
        )
        self.dispatcher = NotificationDispatcher(
            subscriptions=self.subscriptions,
            rate_limiter=self.rate_limiter,
            channels=self.channels,
            failover=self.failover,
            advisor=self.advisor,
            idempotency_cache=(
                idempotency_cache
                if idempotency_cache is not None
                else create_idempotency_cache(settings.idempotency)
            ),
            idempotency_ttl_seconds=settings.idempotency.IDEMPOTENCY_TTL_SECONDS,
            fallback_order=dispatch.fallback_order,
            batch_size=dispatch.batch_size,
            max_concurrency=dispatch.max_concurrency,
            batch_pause_ms=dispatch.batch_pause_ms,
        )

        self.scheduler = schedule.Scheduler()
        self._stop_scheduler: Optional[threading.Event] = None
        logger.info(
            "initialized_notification_service",
            channels=[kind.value for kind in self.channels.kinds()],
            advisor_enabled=advisor is not None,
        )

    def start(self) -> None:
        """Start the event bus worker and the scheduled jobs."""
        from jobs import scheduled_tasks

        if self._stop_scheduler is not None:
            return
        self.event_bus.start()
        scheduled_tasks.init(self, self.scheduler)
        self._stop_scheduler = scheduled_tasks.run_continuously(scheduler=self.scheduler)
        logger.info("notification_service_started")

    def stop(self) -> None:
        """Stop scheduled jobs, flush events and release worker threads."""
        if self._stop_scheduler is not None:
            self._stop_scheduler.set()
            self._stop_scheduler = None
        self.scheduler.clear()
        self.event_bus.stop()
        self.dispatcher.shutdown()
        self.failover.shutdown()
        self.advisor.shutdown()
        logger.info("notification_service_stopped")

    def register_subscriber(
        self, subscriber_id: str, preferences: Optional[SubscriberPreferences] = None
    ) -> Subscriber:
        if preferences is None:
            preferences = SubscriberPreferences(
                max_per_day=self.settings.rate_limit.default_max_per_day
            )
        return self.subscriptions.register_subscriber(subscriber_id, preferences)

    def subscribe(
        self, subscriber_id: str, channel_kind: ChannelKind, destination: str
    ) -> Subscription:
        return self.subscriptions.subscribe(subscriber_id, channel_kind, destination)

    def unsubscribe(self, subscriber_id: str, channel_kind: ChannelKind) -> bool:
        return self.subscriptions.unsubscribe(subscriber_id, channel_kind)

    def send(self, request: RequestLike) -> DispatchResult:
        return self.dispatcher.send(request)

    def send_batch(self, requests: Sequence[RequestLike]) -> BatchResult:
        return self.dispatcher.send_batch(requests)

    def enqueue(self, request: RequestLike) -> int:
        return self.dispatcher.enqueue(request)

    def health_report(self) -> Dict[str, Any]:
        return self.health.health_report()

    def get_statistics(self) -> Dict[str, Any]:
        stats = self.dispatcher.get_statistics()
        stats["health"] = self.health.overall_status()
        return stats
