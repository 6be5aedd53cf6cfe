"""Circuit breaker implementation for channel resilience.

The circuit breaker pattern prevents cascading failures by:
1. CLOSED state: Normal operation, requests pass through
2. OPEN state: Fast-fail requests without calling the channel (after threshold failures)
3. HALF_OPEN state: A single probe tests recovery

State transitions:
- CLOSED -> OPEN: After failure_threshold consecutive failures
- OPEN -> HALF_OPEN: After the cool-down period expires
- HALF_OPEN -> CLOSED: After a successful probe
- HALF_OPEN -> OPEN: If the probe fails

Channel adapters return classified results instead of raising, so callers
report outcomes explicitly with ``record_success()`` and ``record_failure()``
and claim the single recovery probe with ``try_begin_probe()``.
"""

import threading
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from infrastructure.logging import get_module_logger

logger = get_module_logger()

StateChangeCallback = Callable[[str, "CircuitState", "CircuitState"], None]


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests immediately
    HALF_OPEN = "half_open"  # Testing recovery


class CircuitBreaker:
    """Circuit breaker for channel and advisor operations.

    Args:
        name: Name of the circuit (typically the channel kind)
        failure_threshold: Number of consecutive failures before opening
        cooldown_seconds: Seconds to wait before attempting recovery (HALF_OPEN)
        clock: Monotonic clock returning seconds, injectable for tests
        on_state_change: Called with (name, old_state, new_state) on every
            transition, while the breaker lock is held
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        cooldown_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Optional[StateChangeCallback] = None,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._on_state_change = on_state_change

        # State management
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: Optional[float] = None
        self._last_failure_at: Optional[datetime] = None
        self._probe_in_flight = False

        # Thread safety
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        """Get current circuit state."""
        with self._lock:
            return self._state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    def is_closed(self) -> bool:
        return self.state == CircuitState.CLOSED

    def cooldown_remaining(self) -> float:
        """Seconds left before a probe may be attempted (0 when not OPEN)."""
        with self._lock:
            return self._cooldown_remaining()

    def try_begin_probe(self) -> bool:
        """Move OPEN -> HALF_OPEN if the cool-down elapsed.

        Returns:
            True if the caller won the right to run the single recovery probe.
            The caller must then report the outcome with record_success() or
            record_failure().
        """
        with self._lock:
            if self._state == CircuitState.OPEN and self._cooldown_remaining() <= 0:
                self._transition(CircuitState.HALF_OPEN)
                self._probe_in_flight = True
                return True
            if self._state == CircuitState.HALF_OPEN and not self._probe_in_flight:
                self._probe_in_flight = True
                return True
            return False

    def record_success(self) -> None:
        """Handle successful request or probe."""
        with self._lock:
            self._probe_in_flight = False
            if self._state == CircuitState.HALF_OPEN:
                logger.info("circuit_breaker_probe_succeeded", name=self.name)
                self._transition(CircuitState.CLOSED)
            elif self._state == CircuitState.CLOSED and self._failure_count > 0:
                logger.debug(
                    "circuit_breaker_failure_count_reset",
                    name=self.name,
                    previous_failures=self._failure_count,
                )
                self._failure_count = 0

    def record_failure(self, error: Any = None) -> None:
        """Handle failed request or probe."""
        with self._lock:
            self._probe_in_flight = False
            self._last_failure_at = datetime.now(timezone.utc)

            if self._state == CircuitState.HALF_OPEN:
                # Failed during recovery test, go back to OPEN
                logger.warning(
                    "circuit_breaker_recovery_failed",
                    name=self.name,
                    error=str(error),
                )
                self._transition(CircuitState.OPEN)
                return

            if self._state == CircuitState.OPEN:
                return

            self._failure_count += 1
            if self._failure_count >= self.failure_threshold:
                logger.error(
                    "circuit_breaker_threshold_exceeded",
                    name=self.name,
                    failure_count=self._failure_count,
                    threshold=self.failure_threshold,
                    error=str(error),
                )
                self._transition(CircuitState.OPEN)
            else:
                logger.warning(
                    "circuit_breaker_failure",
                    name=self.name,
                    failure_count=self._failure_count,
                    threshold=self.failure_threshold,
                    error=str(error),
                )

    def _cooldown_remaining(self) -> float:
        if self._state != CircuitState.OPEN or self._opened_at is None:
            return 0.0
        elapsed = self._clock() - self._opened_at
        return max(0.0, self.cooldown_seconds - elapsed)

    def _transition(self, new_state: CircuitState) -> None:
        """Apply a state change. Caller holds the lock."""
        old_state = self._state
        if old_state == new_state:
            return

        self._state = new_state
        if new_state == CircuitState.OPEN:
            self._opened_at = self._clock()
            logger.error(
                "circuit_breaker_opened",
                name=self.name,
                cooldown_seconds=self.cooldown_seconds,
            )
        elif new_state == CircuitState.HALF_OPEN:
            logger.info("circuit_breaker_half_open", name=self.name)
        else:
            self._failure_count = 0
            self._opened_at = None
            logger.info("circuit_breaker_closed", name=self.name)

        if self._on_state_change is not None:
            try:
                self._on_state_change(self.name, old_state, new_state)
            except Exception as e:  # pylint: disable=broad-except
                logger.error(
                    "circuit_breaker_listener_failed", name=self.name, error=str(e)
                )

    def get_stats(self) -> dict:
        """Get circuit breaker statistics."""
        with self._lock:
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "last_failure_time": (
                    self._last_failure_at.isoformat()
                    if self._last_failure_at
                    else None
                ),
                "cooldown_remaining_seconds": round(self._cooldown_remaining(), 3),
                "probe_in_flight": self._probe_in_flight,
            }

