"""Optimization advisor and the gateway that bounds it.

The advisor suggests a channel ranking, a priority score, a send time and an
A/B content variant for a request. It is optional and never trusted to be
fast: the gateway races every call against a hard timeout and falls back to
no hints, so the dispatch path works the same with the advisor down.
"""

import hashlib
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from infrastructure.configuration.infrastructure.dispatch import PriorityThresholds
from infrastructure.logging import get_module_logger
from infrastructure.notifications.errors import AdvisorTimeout
from infrastructure.notifications.models import (
    ChannelKind,
    NotificationRequest,
    NotificationType,
    OptimizationHints,
    Priority,
    Subscriber,
    utcnow,
)
from infrastructure.resilience.circuit_breaker import CircuitBreaker

logger = get_module_logger()

CONTENT_TEST_ID = "content_optimization"
CONTENT_VARIANTS = ("urgent", "friendly", "data_driven", "emotional")

# Base affinity of each channel for each notification type (0-1)
CHANNEL_SCORES: Dict[NotificationType, Dict[ChannelKind, float]] = {
    NotificationType.CANCELLATION_ALERT: {
        ChannelKind.PUSH: 0.9,
        ChannelKind.SMS: 0.85,
        ChannelKind.CHAT: 0.5,
        ChannelKind.EMAIL: 0.4,
    },
    NotificationType.PRICE_DROP: {
        ChannelKind.PUSH: 0.8,
        ChannelKind.EMAIL: 0.7,
        ChannelKind.CHAT: 0.5,
        ChannelKind.SMS: 0.4,
    },
    NotificationType.FLASH_SALE: {
        ChannelKind.PUSH: 0.85,
        ChannelKind.EMAIL: 0.6,
        ChannelKind.CHAT: 0.4,
        ChannelKind.SMS: 0.3,
    },
    NotificationType.DAILY_DIGEST: {
        ChannelKind.EMAIL: 0.9,
        ChannelKind.CHAT: 0.5,
        ChannelKind.PUSH: 0.4,
        ChannelKind.SMS: 0.1,
    },
    NotificationType.GENERAL: {
        ChannelKind.PUSH: 0.7,
        ChannelKind.EMAIL: 0.6,
        ChannelKind.CHAT: 0.5,
        ChannelKind.SMS: 0.3,
    },
}

# Night time shifts weight away from interruptive channels
NIGHT_ADJUSTMENTS = {
    ChannelKind.EMAIL: 0.1,
    ChannelKind.PUSH: -0.1,
    ChannelKind.SMS: -0.2,
}

TYPE_URGENCY = {
    NotificationType.CANCELLATION_ALERT: 1.0,
    NotificationType.FLASH_SALE: 0.8,
    NotificationType.PRICE_DROP: 0.7,
    NotificationType.GENERAL: 0.5,
    NotificationType.DAILY_DIGEST: 0.2,
}

PRIORITY_VALUE = {
    Priority.CRITICAL: 1.0,
    Priority.HIGH: 0.75,
    Priority.MEDIUM: 0.5,
    Priority.LOW: 0.25,
}

PRIORITY_WEIGHTS = {"urgency": 0.35, "requested": 0.35, "discount": 0.15, "timing": 0.15}


def is_night(hour: int) -> bool:
    return hour >= 22 or hour < 7


class OptimizationAdvisor(ABC):
    """Source of optimization hints.

    Implementations may be slow or fail; callers go through AdvisorGateway.
    """

    @abstractmethod
    def advise(
        self, subscriber: Subscriber, request: NotificationRequest, at: datetime
    ) -> OptimizationHints:
        pass

    def probe(self) -> bool:
        return True


class HeuristicAdvisor(OptimizationAdvisor):
    """Rule based advisor.

    Runs independent analyses (channel ranking, priority score, send time,
    content variant). A failing analysis is dropped; confidence is the share
    of analyses that completed.
    """

    def advise(
        self, subscriber: Subscriber, request: NotificationRequest, at: datetime
    ) -> OptimizationHints:
        local = at.astimezone(subscriber.preferences.tz)
        analyses: Dict[str, Callable[[], object]] = {
            "channel_ranking": lambda: self.rank_channels(request.notification_type, local.hour),
            "priority_score": lambda: self.priority_score(request, local.hour),
            "suggested_send_time": lambda: self.suggested_send_time(subscriber, at),
            "content_variant": lambda: self.content_variant(subscriber.id),
        }

        results: Dict[str, object] = {}
        for name, analysis in analyses.items():
            try:
                results[name] = analysis()
            except Exception as e:  # pylint: disable=broad-except
                logger.warning("advisor_analysis_failed", analysis=name, error=str(e))

        variant = results.get("content_variant")
        return OptimizationHints(
            channel_ranking=results.get("channel_ranking") or [],
            priority_score=results.get("priority_score"),
            suggested_send_time=results.get("suggested_send_time"),
            content_variant=variant,
            variant_id=f"{CONTENT_TEST_ID}:{variant}" if variant else None,
            confidence=len(results) / len(analyses),
        )

    def rank_channels(self, notification_type: NotificationType, hour: int) -> List[ChannelKind]:
        base = CHANNEL_SCORES.get(notification_type, CHANNEL_SCORES[NotificationType.GENERAL])
        scores = {
            kind: score + (NIGHT_ADJUSTMENTS.get(kind, 0.0) if is_night(hour) else 0.0)
            for kind, score in base.items()
        }
        order = list(ChannelKind)
        return sorted(scores, key=lambda kind: (-scores[kind], order.index(kind)))

    def priority_score(self, request: NotificationRequest, hour: int) -> float:
        """Weighted score on a 1-10 scale."""
        discount = request.payload.attributes.get("discount_percent")
        factors = {
            "urgency": TYPE_URGENCY.get(request.notification_type, 0.5),
            "requested": PRIORITY_VALUE[request.priority],
            "discount": min(float(discount) / 100, 1.0) if discount is not None else 0.5,
            "timing": 0.5 if is_night(hour) else 1.0,
        }
        total = sum(factors[name] * weight for name, weight in PRIORITY_WEIGHTS.items())
        return round(min(max(total * 10, 1.0), 10.0), 2)

    def suggested_send_time(self, subscriber: Subscriber, at: datetime) -> datetime:
        """Now, or the end of the subscriber's quiet window."""
        quiet_hours = subscriber.preferences.quiet_hours
        tz = subscriber.preferences.tz
        local = at.astimezone(tz)
        if quiet_hours is None or not quiet_hours.contains(local.hour):
            return at
        wake = local.replace(hour=quiet_hours.end, minute=0, second=0, microsecond=0)
        if wake <= local:
            wake = wake + timedelta(days=1)
        return tz.normalize(wake)

    def content_variant(self, subscriber_id: str) -> str:
        """Stable A/B assignment derived from the subscriber id."""
        digest = hashlib.sha256(subscriber_id.encode("utf-8")).hexdigest()
        return CONTENT_VARIANTS[int(digest, 16) % len(CONTENT_VARIANTS)]


class AdvisorGateway:
    """Calls the advisor with a hard timeout.

    ``advise()`` never raises: timeouts and advisor errors are logged and
    yield None, and the caller proceeds with defaults. Repeated failures
    open a circuit so a dead advisor stops costing the timeout on every
    request.

    Args:
        advisor: Advisor implementation (None disables hints)
        timeout_ms: Hard timeout per call
        thresholds: Score thresholds mapping priority_score to a tier
        breaker: Optional circuit breaker guarding the advisor
        max_workers: Threads racing advisor calls
    """

    def __init__(
        self,
        advisor: Optional[OptimizationAdvisor],
        timeout_ms: int = 300,
        thresholds: Optional[PriorityThresholds] = None,
        breaker: Optional[CircuitBreaker] = None,
        max_workers: int = 4,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.advisor = advisor
        self.timeout_seconds = timeout_ms / 1000
        self.thresholds = thresholds or PriorityThresholds()
        self.breaker = breaker
        self._clock = clock
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="advisor"
        )

    def advise(
        self, subscriber: Subscriber, request: NotificationRequest
    ) -> Optional[OptimizationHints]:
        if self.advisor is None:
            return None
        if self.breaker is not None and not self.breaker.is_closed():
            if not self.breaker.try_begin_probe():
                logger.debug("advisor_skipped_circuit_open", request_id=request.id)
                return None

        try:
            hints = self._call(subscriber, request)
        except AdvisorTimeout as e:
            logger.warning(
                "advisor_timeout",
                request_id=request.id,
                timeout_ms=int(self.timeout_seconds * 1000),
            )
            self._record_failure(e)
            return None
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("advisor_failed", request_id=request.id, error=str(e))
            self._record_failure(e)
            return None

        if self.breaker is not None:
            self.breaker.record_success()

        adjusted = None
        if hints.priority_score is not None and request.priority != Priority.CRITICAL:
            adjusted = self.tier_for_score(hints.priority_score)
        return hints.model_copy(update={"adjusted_priority": adjusted})

    def effective_priority(
        self, request: NotificationRequest, hints: Optional[OptimizationHints]
    ) -> Priority:
        """Priority used for dispatch. Critical requests keep their tier."""
        if request.priority == Priority.CRITICAL or hints is None:
            return request.priority
        return hints.adjusted_priority or request.priority

    def tier_for_score(self, score: float) -> Priority:
        if score >= self.thresholds.critical:
            return Priority.CRITICAL
        if score >= self.thresholds.high:
            return Priority.HIGH
        if score >= self.thresholds.medium:
            return Priority.MEDIUM
        return Priority.LOW

    def probe(self) -> bool:
        """Health probe of the advisor, bounded by the same timeout."""
        if self.advisor is None:
            return True
        future = self._executor.submit(self.advisor.probe)
        try:
            healthy = bool(future.result(timeout=self.timeout_seconds))
        except FuturesTimeout:
            healthy = False
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("advisor_probe_failed", error=str(e))
            healthy = False
        breaker = self.breaker
        if breaker is not None and (breaker.is_closed() or breaker.try_begin_probe()):
            if healthy:
                breaker.record_success()
            else:
                breaker.record_failure("probe failed")
        return healthy

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

    def _call(self, subscriber: Subscriber, request: NotificationRequest) -> OptimizationHints:
        future = self._executor.submit(self.advisor.advise, subscriber, request, self._clock())
        try:
            return future.result(timeout=self.timeout_seconds)
        except FuturesTimeout:
            future.cancel()
            raise AdvisorTimeout(f"advisor did not answer within {self.timeout_seconds}s")

    def _record_failure(self, error: Exception) -> None:
        if self.breaker is not None:
            self.breaker.record_failure(error)
