"""Channel health monitoring.

One circuit breaker per channel kind. The failover coordinator asks the
monitor whether a channel is available before calling it and reports every
transient outcome back. Probes run lazily when a cooled-down channel is
asked for, and periodically from the scheduled health check.
"""

import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from infrastructure.events import CHANNEL_HEALTH_CHANGED, Event, EventBus
from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.registry import ChannelRegistry
from infrastructure.notifications.models import ChannelHealth, ChannelKind, utcnow
from infrastructure.operations import OperationResult
from infrastructure.resilience.circuit_breaker import CircuitBreaker, CircuitState

logger = get_module_logger()

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"

ProbeRunner = Callable[[Callable[[], OperationResult]], OperationResult]


class HealthMonitor:
    """Per-channel availability backed by circuit breakers.

    Args:
        channels: Registry of adapters to probe
        failure_threshold: Consecutive transient failures before a channel opens
        cooldown_seconds: Seconds an open channel waits before a probe
        clock: Monotonic clock for the breakers (injectable for tests)
        event_bus: Receives channel.health.changed events
        advisor: Optional AdvisorGateway included in periodic probes
        enabled: When False every channel is always available
    """

    def __init__(
        self,
        channels: ChannelRegistry,
        failure_threshold: int = 5,
        cooldown_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
        event_bus: Optional[EventBus] = None,
        advisor: Any = None,
        enabled: bool = True,
    ):
        self.channels = channels
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self.event_bus = event_bus
        self.advisor = advisor
        self.enabled = enabled
        self._clock = clock
        self._breakers: Dict[ChannelKind, CircuitBreaker] = {}
        self._probes: Dict[ChannelKind, Tuple[datetime, bool]] = {}
        self._advisor_healthy: Optional[bool] = None
        self._lock = threading.Lock()

    def breaker(self, kind: ChannelKind) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(kind)
            if breaker is None:
                breaker = CircuitBreaker(
                    name=kind.value,
                    failure_threshold=self.failure_threshold,
                    cooldown_seconds=self.cooldown_seconds,
                    clock=self._clock,
                    on_state_change=self._on_state_change,
                )
                self._breakers[kind] = breaker
            return breaker

    def is_available(self, kind: ChannelKind, runner: Optional[ProbeRunner] = None) -> bool:
        """True if the channel may be called now.

        An open channel whose cool-down has elapsed is probed first; it is
        available again only if that probe succeeds.

        Args:
            kind: Channel to check
            runner: Runs the adapter probe, e.g. bounded by a dispatch
                deadline. The probe is called inline when omitted.
        """
        if not self.enabled:
            return True
        breaker = self.breaker(kind)
        if breaker.is_closed():
            return True
        if breaker.try_begin_probe():
            return self._run_probe(kind, breaker, runner).is_success
        return False

    def record_success(self, kind: ChannelKind) -> None:
        if self.enabled:
            self.breaker(kind).record_success()

    def record_failure(self, kind: ChannelKind, error: Any = None) -> None:
        if self.enabled:
            self.breaker(kind).record_failure(error)

    def probe(self, kind: ChannelKind) -> Optional[OperationResult]:
        """Probe one channel and feed the outcome to its breaker.

        An open channel is only probed once its cool-down has elapsed.

        Returns:
            The probe result, or None if the probe was not run.
        """
        breaker = self.breaker(kind)
        if breaker.is_closed() or breaker.try_begin_probe():
            return self._run_probe(kind, breaker)
        return None

    def probe_all(self) -> Dict[str, Any]:
        """Probe every registered channel (and the advisor) and return the report."""
        for kind in self.channels.kinds():
            self.probe(kind)
        if self.advisor is not None:
            self._advisor_healthy = self.advisor.probe()
        report = self.health_report()
        logger.info("health_probe_completed", status=report["status"])
        return report

    def channel_health(self, kind: ChannelKind) -> ChannelHealth:
        breaker = self.breaker(kind)
        last_probe_at, last_probe_ok = self._probes.get(kind, (None, None))
        return ChannelHealth(
            channel_kind=kind,
            state=breaker.state.value,
            consecutive_failures=breaker.failure_count,
            last_probe_at=last_probe_at,
            last_probe_ok=last_probe_ok,
        )

    def overall_status(self) -> str:
        """Aggregate over every channel plus the advisor when one is monitored.

        An advisor that has not been probed yet counts as healthy.
        """
        subsystems = [self.channel_health(kind).healthy for kind in self.channels.kinds()]
        if self.advisor is not None:
            subsystems.append(self._advisor_healthy is not False)
        if not subsystems:
            return HEALTHY
        healthy = sum(1 for ok in subsystems if ok)
        if healthy == len(subsystems):
            return HEALTHY
        if healthy * 2 >= len(subsystems):
            return DEGRADED
        return UNHEALTHY

    def health_report(self) -> Dict[str, Any]:
        return {
            "status": self.overall_status(),
            "channels": {
                kind.value: self._channel_report(kind) for kind in self.channels.kinds()
            },
            "advisor": self._advisor_healthy,
        }

    def _channel_report(self, kind: ChannelKind) -> Dict[str, Any]:
        stats = self.breaker(kind).get_stats()
        return {
            **self.channel_health(kind).model_dump(mode="json"),
            "last_failure_time": stats["last_failure_time"],
            "cooldown_remaining_seconds": stats["cooldown_remaining_seconds"],
        }

    def _run_probe(
        self,
        kind: ChannelKind,
        breaker: CircuitBreaker,
        runner: Optional[ProbeRunner] = None,
    ) -> OperationResult:
        adapter = self.channels.get(kind)
        if adapter is None:
            result = OperationResult.permanent_error(
                f"no adapter registered for {kind.value}", error_code="NO_ADAPTER"
            )
        else:
            try:
                result = runner(adapter.probe) if runner else adapter.probe()
            except Exception as e:  # pylint: disable=broad-except
                result = OperationResult.transient_error(
                    f"probe raised {type(e).__name__}: {e}", error_code="PROBE_ERROR"
                )

        self._probes[kind] = (utcnow(), result.is_success)
        if result.is_success:
            breaker.record_success()
        else:
            breaker.record_failure(result.message)
        logger.debug(
            "channel_probed",
            channel_kind=kind.value,
            ok=result.is_success,
            error_code=result.error_code,
        )
        return result

    def _on_state_change(self, name: str, old: CircuitState, new: CircuitState) -> None:
        logger.warning(
            "channel_health_changed",
            channel_kind=name,
            previous_state=old.value,
            state=new.value,
        )
        if self.event_bus is not None:
            self.event_bus.publish(
                Event(
                    event_type=CHANNEL_HEALTH_CHANGED,
                    channel_kind=name,
                    detail={"previous_state": old.value, "state": new.value},
                )
            )
