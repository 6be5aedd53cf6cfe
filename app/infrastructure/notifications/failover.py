"""Failover coordinator.

Drives adapter calls over a ranked list of channels:

- sequential by default, stopping at the first success
- concurrent fan-out when every channel must be attempted
- transient failures are retried on the same channel with backoff
- permanent failures move on, retiring the subscription when the
  destination is gone
- a deadline or cancellation stops new attempts; channels not reached are
  recorded as skipped

Every attempt and skip is recorded in order of the ranked list.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from infrastructure.events import (
    DISPATCH_ATTEMPTED,
    DISPATCH_FAILED,
    DISPATCH_SUCCEEDED,
    Event,
    EventBus,
)
from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import ChannelAdapter, SendOptions
from infrastructure.notifications.health import HealthMonitor
from infrastructure.notifications.models import (
    CHANNEL_CIRCUIT_OPEN,
    DEADLINE_EXCEEDED,
    NO_ADAPTER,
    NO_SUBSCRIPTION,
    AttemptOutcome,
    ChannelKind,
    DeliveryReceipt,
    DispatchAttempt,
    NotificationPayload,
    NotificationRequest,
    Priority,
    Subscription,
    utcnow,
)
from infrastructure.notifications.subscriptions import SubscriptionRegistry
from infrastructure.operations import OperationResult
from infrastructure.resilience.backoff import RetryPolicy
from infrastructure.security.encryption import DestinationDecryptionError

logger = get_module_logger()


@dataclass
class ChannelTarget:
    """A candidate channel for one request."""

    kind: ChannelKind
    subscription: Optional[Subscription] = None
    adapter: Optional[ChannelAdapter] = None


@dataclass
class FailoverOutcome:
    attempts: List[DispatchAttempt] = field(default_factory=list)
    succeeded: List[ChannelKind] = field(default_factory=list)
    receipts: List[DeliveryReceipt] = field(default_factory=list)
    timed_out: bool = False

    @property
    def attempted(self) -> bool:
        """True if at least one adapter call was made."""
        return any(a.outcome != AttemptOutcome.SKIPPED for a in self.attempts)


@dataclass
class _TargetOutcome:
    attempts: List[DispatchAttempt] = field(default_factory=list)
    receipt: Optional[DeliveryReceipt] = None
    timed_out: bool = False


class FailoverCoordinator:
    """Runs the channel attempts of a dispatch.

    Args:
        health: Channel availability and breaker bookkeeping
        subscriptions: Resolves destinations and retires dead ones
        retry_policy: Attempts per channel and backoff
        channel_timeout_seconds: Timeout of a single adapter call
        event_bus: Receives dispatch.* events
        clock: Returns the current aware datetime (deadline checks)
        sleep: Used for backoff when no cancellation token is given
        max_workers: Threads available for adapter calls
    """

    def __init__(
        self,
        health: HealthMonitor,
        subscriptions: SubscriptionRegistry,
        retry_policy: Optional[RetryPolicy] = None,
        channel_timeout_seconds: float = 10.0,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
        max_workers: int = 32,
    ):
        self.health = health
        self.subscriptions = subscriptions
        self.retry_policy = retry_policy or RetryPolicy()
        self.channel_timeout_seconds = channel_timeout_seconds
        self.event_bus = event_bus
        self._clock = clock
        self._sleep = sleep
        self._calls = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="channel-call"
        )

    def dispatch(
        self,
        request: NotificationRequest,
        targets: List[ChannelTarget],
        payload: Optional[NotificationPayload] = None,
        require_all: bool = False,
        cancel_event: Optional[threading.Event] = None,
        priority: Optional[Priority] = None,
        content_variant: Optional[str] = None,
    ) -> FailoverOutcome:
        """Attempt the ranked targets.

        Args:
            request: The request being dispatched
            targets: Candidate channels, best first
            payload: Content to send (the request payload when omitted)
            require_all: Attempt every target concurrently instead of
                stopping at the first success
            cancel_event: Set to stop further attempts
            priority: Effective priority (the request priority when omitted)
            content_variant: A/B variant passed to adapters
        """
        payload = payload or request.payload
        options = SendOptions(
            request_id=request.id,
            priority=priority or request.priority,
            notification_type=request.notification_type,
            expires_at=_expires_at(request),
            content_variant=content_variant,
        )
        deadline = request.context.deadline

        if require_all and len(targets) > 1:
            results = self._fan_out(request, targets, payload, options, deadline, cancel_event)
        else:
            results = self._sequential(request, targets, payload, options, deadline, cancel_event)

        outcome = FailoverOutcome()
        for target, result in zip(targets, results):
            outcome.attempts.extend(result.attempts)
            if result.receipt is not None:
                outcome.succeeded.append(target.kind)
                outcome.receipts.append(result.receipt)
            outcome.timed_out = outcome.timed_out or result.timed_out
        return outcome

    def shutdown(self) -> None:
        self._calls.shutdown(wait=False)

    def _sequential(
        self,
        request: NotificationRequest,
        targets: List[ChannelTarget],
        payload: NotificationPayload,
        options: SendOptions,
        deadline: Optional[datetime],
        cancel_event: Optional[threading.Event],
    ) -> List[_TargetOutcome]:
        results: List[_TargetOutcome] = []
        stop = False
        for target in targets:
            if stop or self._stopped(deadline, cancel_event):
                results.append(self._skipped(request, target, DEADLINE_EXCEEDED, timed_out=True))
                continue
            result = self._run_target(request, target, payload, options, deadline, cancel_event)
            results.append(result)
            if result.receipt is not None:
                break
            stop = result.timed_out
        return results

    def _fan_out(
        self,
        request: NotificationRequest,
        targets: List[ChannelTarget],
        payload: NotificationPayload,
        options: SendOptions,
        deadline: Optional[datetime],
        cancel_event: Optional[threading.Event],
    ) -> List[_TargetOutcome]:
        with ThreadPoolExecutor(
            max_workers=len(targets), thread_name_prefix="fan-out"
        ) as pool:
            futures = [
                pool.submit(
                    self._run_target, request, target, payload, options, deadline, cancel_event
                )
                for target in targets
            ]
            return [future.result() for future in futures]

    def _run_target(
        self,
        request: NotificationRequest,
        target: ChannelTarget,
        payload: NotificationPayload,
        options: SendOptions,
        deadline: Optional[datetime],
        cancel_event: Optional[threading.Event],
    ) -> _TargetOutcome:
        if target.subscription is None:
            return self._skipped(request, target, NO_SUBSCRIPTION)
        if target.adapter is None:
            return self._skipped(request, target, NO_ADAPTER)
        if self._stopped(deadline, cancel_event):
            return self._skipped(request, target, DEADLINE_EXCEEDED, timed_out=True)
        available = self.health.is_available(
            target.kind,
            runner=lambda probe: self._bounded(
                probe, (), self._call_timeout(deadline), request.id, target.kind, "probe"
            ),
        )
        # A lazy recovery probe may have used up the time left.
        if self._stopped(deadline, cancel_event):
            return self._skipped(request, target, DEADLINE_EXCEEDED, timed_out=True)
        if not available:
            return self._skipped(request, target, CHANNEL_CIRCUIT_OPEN)

        outcome = _TargetOutcome()
        try:
            destination = self.subscriptions.resolve_destination(target.subscription)
        except DestinationDecryptionError as e:
            outcome.attempts.append(
                self._attempt(
                    request,
                    target.kind,
                    1,
                    self._clock(),
                    OperationResult.permanent_error(str(e), error_code="DESTINATION_UNREADABLE"),
                )
            )
            return outcome

        max_attempts = self.retry_policy.max_attempts
        for attempt_number in range(1, max_attempts + 1):
            if attempt_number > 1 and self._stopped(deadline, cancel_event):
                outcome.timed_out = True
                break

            started_at = self._clock()
            self._publish(DISPATCH_ATTEMPTED, request, target.kind, {"attempt": attempt_number})
            result = self._call(
                target.adapter,
                destination,
                payload,
                SendOptions(
                    request_id=options.request_id,
                    priority=options.priority,
                    notification_type=options.notification_type,
                    expires_at=options.expires_at,
                    attempt=attempt_number,
                    content_variant=options.content_variant,
                ),
                self._call_timeout(deadline),
            )
            attempt = self._attempt(request, target.kind, attempt_number, started_at, result)
            outcome.attempts.append(attempt)

            if result.is_success:
                self.health.record_success(target.kind)
                outcome.receipt = _receipt_of(result, target)
                self._publish(
                    DISPATCH_SUCCEEDED,
                    request,
                    target.kind,
                    {
                        "attempt": attempt_number,
                        "provider": outcome.receipt.provider,
                        "provider_message_id": outcome.receipt.provider_message_id,
                    },
                )
                return outcome

            final = not result.is_transient or attempt_number == max_attempts
            self._publish(
                DISPATCH_FAILED,
                request,
                target.kind,
                {
                    "attempt": attempt_number,
                    "status": result.status.value,
                    "error_code": result.error_code,
                    "final": final,
                },
            )

            if not result.is_transient:
                if result.is_destination_gone:
                    self.subscriptions.invalidate(
                        target.subscription, result.error_code or result.status.value
                    )
                break

            self.health.record_failure(target.kind, result.message)
            if final:
                break
            if not self.health.breaker(target.kind).is_closed():
                logger.info(
                    "retry_abandoned_circuit_open",
                    request_id=request.id,
                    channel_kind=target.kind.value,
                )
                break
            if not self._backoff(attempt_number, deadline, cancel_event):
                outcome.timed_out = True
                break

        return outcome

    def _call(
        self,
        adapter: ChannelAdapter,
        destination: str,
        payload: NotificationPayload,
        options: SendOptions,
        timeout: float,
    ) -> OperationResult:
        """Adapter send bounded by ``timeout``; never raises."""
        return self._bounded(
            adapter.send,
            (destination, payload, options),
            timeout,
            options.request_id,
            adapter.kind,
            "send",
        )

    def _bounded(
        self,
        func: Callable[..., OperationResult],
        args: tuple,
        timeout: float,
        request_id: str,
        kind: ChannelKind,
        operation: str,
    ) -> OperationResult:
        """Run an adapter operation on the call pool, bounded by ``timeout``."""
        future = self._calls.submit(func, *args)
        try:
            return future.result(timeout=timeout)
        except FuturesTimeout:
            logger.warning(
                "channel_call_timeout",
                request_id=request_id,
                channel_kind=kind.value,
                operation=operation,
                timeout_seconds=timeout,
            )
            return OperationResult.transient_error(
                f"{kind.value} {operation} did not answer within {timeout:.1f}s",
                error_code="CHANNEL_TIMEOUT",
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.exception(
                "channel_adapter_raised",
                request_id=request_id,
                channel_kind=kind.value,
                operation=operation,
                error=str(e),
            )
            return OperationResult.transient_error(
                f"{type(e).__name__}: {e}", error_code="ADAPTER_ERROR"
            )

    def _backoff(
        self,
        attempt_number: int,
        deadline: Optional[datetime],
        cancel_event: Optional[threading.Event],
    ) -> bool:
        """Wait before the next attempt. False if the wait would cross the deadline or was cancelled."""
        delay = self.retry_policy.compute_delay(attempt_number)
        if deadline is not None:
            remaining = (deadline - self._clock()).total_seconds()
            if remaining <= delay:
                return False
        if cancel_event is not None:
            return not cancel_event.wait(delay)
        if delay > 0:
            self._sleep(delay)
        return True

    def _call_timeout(self, deadline: Optional[datetime]) -> float:
        if deadline is None:
            return self.channel_timeout_seconds
        remaining = (deadline - self._clock()).total_seconds()
        return max(min(self.channel_timeout_seconds, remaining), 0.001)

    def _stopped(
        self, deadline: Optional[datetime], cancel_event: Optional[threading.Event]
    ) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return True
        return deadline is not None and self._clock() >= deadline

    def _skipped(
        self,
        request: NotificationRequest,
        target: ChannelTarget,
        reason: str,
        timed_out: bool = False,
    ) -> _TargetOutcome:
        logger.info(
            "channel_skipped",
            request_id=request.id,
            channel_kind=target.kind.value,
            reason=reason,
        )
        attempt = DispatchAttempt(
            request_id=request.id,
            channel_kind=target.kind,
            attempt_number=0,
            started_at=self._clock(),
            outcome=AttemptOutcome.SKIPPED,
            error_code=reason,
        )
        return _TargetOutcome(attempts=[attempt], timed_out=timed_out)

    def _attempt(
        self,
        request: NotificationRequest,
        kind: ChannelKind,
        attempt_number: int,
        started_at: datetime,
        result: OperationResult,
    ) -> DispatchAttempt:
        if result.is_success:
            outcome = AttemptOutcome.SUCCESS
        elif result.is_transient:
            outcome = AttemptOutcome.TRANSIENT_FAILURE
        else:
            outcome = AttemptOutcome.PERMANENT_FAILURE
        receipt = result.data if isinstance(result.data, DeliveryReceipt) else None
        return DispatchAttempt(
            request_id=request.id,
            channel_kind=kind,
            attempt_number=attempt_number,
            started_at=started_at,
            outcome=outcome,
            provider_message_id=receipt.provider_message_id if receipt else None,
            error_code=None if result.is_success else result.error_code,
            error_detail=None if result.is_success else result.message,
        )

    def _publish(
        self, event_type: str, request: NotificationRequest, kind: ChannelKind, detail: dict
    ) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(
                Event(
                    event_type=event_type,
                    request_id=request.id,
                    channel_kind=kind.value,
                    detail=detail,
                )
            )


def _receipt_of(result: OperationResult, target: ChannelTarget) -> DeliveryReceipt:
    if isinstance(result.data, DeliveryReceipt):
        return result.data
    return DeliveryReceipt(
        channel_kind=target.kind,
        provider=target.adapter.provider_name if target.adapter else target.kind.value,
    )


def _expires_at(request: NotificationRequest) -> Optional[datetime]:
    value = request.payload.attributes.get("expires_at")
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None

