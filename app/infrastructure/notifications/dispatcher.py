"""Notification dispatcher.

Entry point of the engine. For one request it:

1. validates the request (raw inbound dicts are accepted)
2. returns the cached result if the request id was already dispatched
3. asks the optimization advisor for hints, under a hard timeout
4. builds the ranked list of candidate channels
5. runs admission control (quiet hours, daily cap, global cap)
6. hands the channels to the failover coordinator
7. releases unused rate reservations, touches used subscriptions, caches
   and records the result

Usage Example:
    from infrastructure.notifications import NotificationRequest, Priority

    result = dispatcher.send(
        NotificationRequest(
            subscriber_id="user-42",
            priority=Priority.HIGH,
            payload={"title": "Price drop", "body": "Now 12,000 JPY"},
        )
    )
    if result.success:
        logger.info("delivered", channels=[k.value for k in result.channels_succeeded])
"""

import threading
import time
from collections import Counter, defaultdict
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.idempotency.key_builder import IdempotencyKeyBuilder
from infrastructure.logging import bind_request_context, get_module_logger
from infrastructure.notifications.advisor import AdvisorGateway
from infrastructure.notifications.channels.registry import ChannelRegistry
from infrastructure.notifications.errors import ValidationError
from infrastructure.notifications.failover import (
    ChannelTarget,
    FailoverCoordinator,
    FailoverOutcome,
)
from infrastructure.notifications.models import (
    NO_SUBSCRIPTION,
    AttemptOutcome,
    BatchResult,
    ChannelKind,
    DispatchAttempt,
    DispatchContext,
    DispatchResult,
    DispatchStatus,
    NotificationPayload,
    NotificationRequest,
    NotificationType,
    OptimizationHints,
    Priority,
    Subscriber,
    utcnow,
)
from infrastructure.notifications.queue import PriorityDispatchQueue
from infrastructure.notifications.rate_limiter import RateLimiter
from infrastructure.notifications.subscriptions import SubscriptionRegistry

logger = get_module_logger()

DEFAULT_FALLBACK_ORDER = (ChannelKind.PUSH, ChannelKind.SMS, ChannelKind.EMAIL, ChannelKind.CHAT)
CANCELLATION_ALERT_TTL = timedelta(minutes=10)

RequestLike = Union[NotificationRequest, Mapping[str, Any]]


class NotificationDispatcher:
    """Multi-channel notification dispatcher.

    Attributes:
        subscriptions: Subscriber preferences and channel destinations
        rate_limiter: Admission control
        channels: Adapter lookup table
        failover: Runs the channel attempts
        advisor: Optional advisor gateway
        idempotency_cache: Optional cache de-duplicating request ids
        queue: Priority queue feeding this dispatcher

    Example:
        dispatcher = NotificationDispatcher(
            subscriptions=registry,
            rate_limiter=RateLimiter(store),
            channels=ChannelRegistry([push, sms]),
            failover=FailoverCoordinator(health, registry),
        )
        result = dispatcher.send(request)
    """

    def __init__(
        self,
        subscriptions: SubscriptionRegistry,
        rate_limiter: RateLimiter,
        channels: ChannelRegistry,
        failover: FailoverCoordinator,
        advisor: Optional[AdvisorGateway] = None,
        idempotency_cache: Optional[IdempotencyCache] = None,
        idempotency_ttl_seconds: int = 3600,
        fallback_order: Optional[Sequence[Union[str, ChannelKind]]] = None,
        batch_size: int = 100,
        max_concurrency: int = 10,
        batch_pause_ms: int = 100,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.subscriptions = subscriptions
        self.rate_limiter = rate_limiter
        self.channels = channels
        self.failover = failover
        self.advisor = advisor
        self.idempotency_cache = idempotency_cache
        self.idempotency_ttl_seconds = idempotency_ttl_seconds
        self.fallback_order = _channel_kinds(fallback_order or DEFAULT_FALLBACK_ORDER)
        self.batch_size = batch_size
        self.batch_pause_seconds = batch_pause_ms / 1000
        self._clock = clock
        self._sleep = sleep
        self._key_builder = IdempotencyKeyBuilder(namespace="notification_dispatch")

        self._request_locks: Dict[str, List[Any]] = {}
        self._request_locks_guard = threading.Lock()

        self._workers = ThreadPoolExecutor(
            max_workers=max_concurrency, thread_name_prefix="dispatch"
        )
        self.queue = PriorityDispatchQueue(
            self.send, batch_size=batch_size, executor=self._workers
        )

        self._stats_lock = threading.Lock()
        self._status_counts: Counter = Counter()
        self._channel_counts: Dict[str, Counter] = defaultdict(Counter)
        self._duplicates = 0

        logger.info(
            "initialized_notification_dispatcher",
            channels=[kind.value for kind in channels.kinds()],
            fallback_order=[kind.value for kind in self.fallback_order],
            advisor_enabled=advisor is not None and advisor.advisor is not None,
            idempotency_enabled=idempotency_cache is not None,
        )

    def send(
        self, request: RequestLike, cancel_event: Optional[threading.Event] = None
    ) -> DispatchResult:
        """Dispatch one request.

        Args:
            request: NotificationRequest or inbound dict
            cancel_event: Set to stop further channel attempts

        Returns:
            DispatchResult. Suppression and delivery failures are statuses,
            call raise_for_status() to turn failures into exceptions.

        Raises:
            ValidationError: If the request is malformed (no side effects happened).
        """
        request = self.validate(request)
        with bind_request_context(
            correlation_id=request.id,
            subscriber_id=request.subscriber_id,
            notification_type=request.notification_type.value,
        ):
            with self._request_lock(request.id):
                cached = self._cached_result(request)
                if cached is not None:
                    return cached

                result = self._dispatch(request, cancel_event)
                self._remember(request, result)
                self._record(result)
                logger.info(
                    "dispatch_completed",
                    status=result.status.value,
                    priority=request.priority.value,
                    channels_succeeded=[k.value for k in result.channels_succeeded],
                    attempts=len(result.attempts),
                )
                return result

    def send_batch(self, requests: Sequence[RequestLike]) -> BatchResult:
        """Dispatch many requests.

        Requests run in sub-batches of ``batch_size`` on the worker pool,
        with a pause between sub-batches. Invalid requests count as failures.
        """
        batch = BatchResult()
        valid: List[NotificationRequest] = []
        for item in requests:
            try:
                valid.append(self.validate(item))
            except ValidationError as e:
                batch.total_failed += 1
                batch.errors.append(str(e))

        for offset in range(0, len(valid), self.batch_size):
            if offset:
                self._sleep(self.batch_pause_seconds)
            chunk = valid[offset : offset + self.batch_size]
            futures = [(request, self._workers.submit(self.send, request)) for request in chunk]
            for request, future in futures:
                try:
                    batch.add(future.result())
                except Exception as e:  # pylint: disable=broad-except
                    batch.total_failed += 1
                    batch.errors.append(f"{request.id}: {e}")
                    logger.error("batch_dispatch_failed", request_id=request.id, error=str(e))

        logger.info(
            "batch_dispatch_completed",
            total=len(requests),
            sent=batch.total_sent,
            failed=batch.total_failed,
            suppressed=batch.total_suppressed,
        )
        return batch

    def enqueue(self, request: RequestLike) -> int:
        """Queue a request for the scheduled drain. Returns the queue size."""
        return self.queue.enqueue(self.validate(request))

    def send_cancellation_alert(
        self, subscriber_id: str, hotel: Mapping[str, Any]
    ) -> DispatchResult:
        """Room freed up by a cancellation: push and SMS, never suppressed."""
        expires_at = self._clock() + CANCELLATION_ALERT_TTL
        lines = [
            hotel.get("name", ""),
            _join(" - ", hotel.get("check_in"), hotel.get("check_out")),
            _join(" ", _price(hotel.get("price")), hotel.get("room_type")),
            "Book within 10 minutes.",
            hotel.get("booking_url", ""),
        ]
        request = NotificationRequest(
            subscriber_id=subscriber_id,
            priority=Priority.CRITICAL,
            notification_type=NotificationType.CANCELLATION_ALERT,
            payload=NotificationPayload(
                title="Room available",
                body="\n".join(line for line in lines if line),
                attributes={
                    **{k: v for k, v in hotel.items() if v is not None},
                    "expires_at": expires_at.isoformat(),
                },
            ),
            requested_channels=(ChannelKind.PUSH, ChannelKind.SMS),
            context=DispatchContext(
                bypass_quiet_hours=True,
                bypass_daily_limit=True,
                require_all_channels_attempted=True,
            ),
        )
        return self.send(request)

    def send_price_drop_alert(
        self,
        subscriber_id: str,
        hotel: Mapping[str, Any],
        price_info: Mapping[str, Any],
    ) -> DispatchResult:
        """The price of a watched hotel went down."""
        old_price = price_info.get("old_price")
        new_price = price_info.get("new_price")
        discount = price_info.get("discount_percent")
        if discount is None and old_price and new_price:
            discount = round((old_price - new_price) * 100 / old_price)
        body = _join(" -> ", _price(old_price), _price(new_price))
        if discount is not None:
            body = f"{body} ({discount}% off)"
        request = NotificationRequest(
            subscriber_id=subscriber_id,
            priority=Priority.HIGH,
            notification_type=NotificationType.PRICE_DROP,
            payload=NotificationPayload(
                title=f"Price drop: {hotel.get('name', '')}".strip(),
                body=body,
                attributes={
                    **{k: v for k, v in hotel.items() if v is not None},
                    **{k: v for k, v in price_info.items() if v is not None},
                    "discount_percent": discount,
                },
            ),
        )
        return self.send(request)

    def send_flash_sale_alert(
        self, subscriber_ids: Sequence[str], sale: Mapping[str, Any]
    ) -> BatchResult:
        """Time limited sale announced to many subscribers."""
        title = sale.get("title") or "Flash sale"
        body = _join(" ", sale.get("description"), _until(sale.get("ends_at")))
        requests = [
            NotificationRequest(
                subscriber_id=subscriber_id,
                priority=Priority.HIGH,
                notification_type=NotificationType.FLASH_SALE,
                payload=NotificationPayload(
                    title=title,
                    body=body or title,
                    attributes={k: v for k, v in sale.items() if v is not None},
                ),
            )
            for subscriber_id in subscriber_ids
        ]
        return self.send_batch(requests)

    def get_statistics(self) -> Dict[str, Any]:
        """Dispatch totals per status and per channel since startup."""
        with self._stats_lock:
            return {
                "total": sum(self._status_counts.values()),
                "duplicates": self._duplicates,
                "by_status": dict(self._status_counts),
                "by_channel": {kind: dict(counts) for kind, counts in self._channel_counts.items()},
                "queue": self.queue.sizes(),
            }

    def validate(self, request: RequestLike) -> NotificationRequest:
        """Coerce and validate a request.

        Raises:
            ValidationError: If required fields are missing or malformed.
        """
        if isinstance(request, Mapping):
            try:
                request = NotificationRequest.from_inbound(request)
            except PydanticValidationError as e:
                errors = [
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
                ]
                raise ValidationError("invalid notification request", errors)
        if not isinstance(request, NotificationRequest):
            raise ValidationError(f"unsupported request type: {type(request).__name__}")

        errors = []
        if not request.subscriber_id or not request.subscriber_id.strip():
            errors.append("subscriber_id is required")
        if not (request.payload.title or request.payload.body):
            errors.append("payload title or body is required")
        if errors:
            raise ValidationError("invalid notification request", errors)
        return request

    def shutdown(self) -> None:
        self._workers.shutdown(wait=True)

    def _dispatch(
        self, request: NotificationRequest, cancel_event: Optional[threading.Event]
    ) -> DispatchResult:
        subscriber = self.subscriptions.get_subscriber(request.subscriber_id)
        if subscriber is None:
            return self._result(request, DispatchStatus.NO_ACTIVE_CHANNELS, reason="unknown_subscriber")
        if not subscriber.preferences.allows(request.notification_type):
            logger.info("notification_opted_out")
            return self._result(request, DispatchStatus.OPTED_OUT, reason="notification_type_disabled")

        hints = self.advisor.advise(subscriber, request) if self.advisor else None
        priority = (
            self.advisor.effective_priority(request, hints) if self.advisor else request.priority
        )

        targets = self._targets(request, subscriber, hints)
        if not any(target.subscription is not None for target in targets):
            attempts = [
                DispatchAttempt(
                    request_id=request.id,
                    channel_kind=target.kind,
                    started_at=self._clock(),
                    outcome=AttemptOutcome.SKIPPED,
                    error_code=NO_SUBSCRIPTION,
                )
                for target in targets
            ]
            return self._result(
                request,
                DispatchStatus.NO_ACTIVE_CHANNELS,
                reason="no_active_channels",
                hints=hints,
                attempts=attempts,
            )

        # Admission uses the declared tier; the advised tier only shapes delivery.
        decision = self.rate_limiter.admit(
            subscriber, request.priority, request.context, at=self._clock()
        )
        if not decision.allowed:
            return self._result(request, decision.status, reason=decision.reason, hints=hints)

        outcome = self.failover.dispatch(
            request,
            targets,
            require_all=request.context.require_all_channels_attempted,
            cancel_event=cancel_event,
            priority=priority,
            content_variant=hints.content_variant if hints else None,
        )

        if not outcome.attempted:
            self.rate_limiter.release(decision.reservation)

        for target in targets:
            if target.kind in outcome.succeeded and target.subscription is not None:
                self.subscriptions.touch(target.subscription, self._clock())

        return self._from_outcome(request, outcome, hints)

    def _targets(
        self,
        request: NotificationRequest,
        subscriber: Subscriber,
        hints: Optional[OptimizationHints],
    ) -> List[ChannelTarget]:
        active = self.subscriptions.active_subscriptions(subscriber.id)
        kinds = list(request.requested_channels) or list(active)
        ranking = list(hints.channel_ranking) if hints and hints.channel_ranking else []
        ranking += [kind for kind in self.fallback_order if kind not in ranking]

        def rank(kind: ChannelKind) -> int:
            return ranking.index(kind) if kind in ranking else len(ranking)

        ordered = sorted(kinds, key=rank)
        return [
            ChannelTarget(kind=kind, subscription=active.get(kind), adapter=self.channels.get(kind))
            for kind in ordered
        ]

    def _from_outcome(
        self,
        request: NotificationRequest,
        outcome: FailoverOutcome,
        hints: Optional[OptimizationHints],
    ) -> DispatchResult:
        if outcome.succeeded:
            status = DispatchStatus.DELIVERED
            reason = None
        elif outcome.timed_out:
            status = DispatchStatus.TIMED_OUT
            reason = "deadline_exceeded"
        else:
            status = DispatchStatus.ALL_CHANNELS_FAILED
            reason = "all_channels_failed"
        return self._result(
            request,
            status,
            reason=reason,
            hints=hints,
            attempts=outcome.attempts,
            succeeded=outcome.succeeded,
            receipts=outcome.receipts,
        )

    def _result(
        self,
        request: NotificationRequest,
        status: DispatchStatus,
        reason: Optional[str] = None,
        hints: Optional[OptimizationHints] = None,
        attempts: Optional[List[DispatchAttempt]] = None,
        succeeded: Optional[List[ChannelKind]] = None,
        receipts: Optional[list] = None,
    ) -> DispatchResult:
        return DispatchResult(
            request_id=request.id,
            status=status,
            success=status == DispatchStatus.DELIVERED,
            attempts=attempts or [],
            channels_succeeded=succeeded or [],
            receipts=receipts or [],
            reason=reason,
            hints=hints,
        )

    def _cached_result(self, request: NotificationRequest) -> Optional[DispatchResult]:
        if self.idempotency_cache is None:
            return None
        cached = self.idempotency_cache.get(self._key_builder.for_request(request.id))
        if not cached:
            return None
        with self._stats_lock:
            self._duplicates += 1
        logger.info("notification_already_dispatched", status=cached.get("status"))
        return DispatchResult.model_validate(cached).model_copy(update={"duplicate": True})

    def _remember(self, request: NotificationRequest, result: DispatchResult) -> None:
        if self.idempotency_cache is None:
            return
        try:
            self.idempotency_cache.set(
                self._key_builder.for_request(request.id),
                result.model_dump(mode="json"),
                ttl_seconds=self.idempotency_ttl_seconds,
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.error("idempotency_cache_write_failed", error=str(e))

    def _record(self, result: DispatchResult) -> None:
        with self._stats_lock:
            self._status_counts[result.status.value] += 1
            for attempt in result.attempts:
                self._channel_counts[attempt.channel_kind.value][attempt.outcome.value] += 1

    @contextmanager
    def _request_lock(self, request_id: str) -> Iterator[None]:
        """Serialize dispatches sharing a request id."""
        with self._request_locks_guard:
            entry = self._request_locks.setdefault(request_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._request_locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._request_locks[request_id]


def _channel_kinds(values: Sequence[Union[str, ChannelKind]]) -> List[ChannelKind]:
    kinds: List[ChannelKind] = []
    for value in values:
        try:
            kind = value if isinstance(value, ChannelKind) else ChannelKind(str(value).strip().lower())
        except ValueError:
            logger.warning("unknown_channel_in_fallback_order", channel=value)
            continue
        if kind not in kinds:
            kinds.append(kind)
    return kinds


def _join(separator: str, *parts: Any) -> str:
    return separator.join(str(part) for part in parts if part)


def _price(value: Any) -> str:
    if value is None or value == "":
        return ""
    if isinstance(value, (int, float)):
        return f"{value:,.0f} JPY"
    return str(value)


def _until(value: Any) -> str:
    if not value:
        return ""
    if isinstance(value, datetime):
        value = value.strftime("%Y-%m-%d %H:%M")
    return f"Until {value}."
