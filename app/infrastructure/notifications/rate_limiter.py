"""Admission control: quiet hours, per-subscriber daily cap, global cap.

Counters live in the Store so they are shared by every worker using the
same store. Admission reserves counter units up front (increment, then roll
back when over the cap), which keeps concurrent dispatches from overshooting
a cap. The dispatcher releases the reservation when a dispatch ends up
attempting no channel.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Optional, Tuple

from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import (
    DispatchContext,
    DispatchStatus,
    Priority,
    Subscriber,
    utcnow,
)
from infrastructure.notifications.store import Store

logger = get_module_logger()

# Daily keys carry the local date; the window only bounds how long they linger.
DAILY_WINDOW_SECONDS = 2 * 24 * 3600
GLOBAL_WINDOW_SECONDS = 60

QUIET_HOURS = "quiet_hours"
DAILY_LIMIT = "daily_limit"
GLOBAL_LIMIT = "global_limit"


@dataclass(frozen=True)
class Reservation:
    """Counter units taken by an admitted dispatch."""

    keys: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AdmissionDecision:
    """Outcome of admission control.

    Attributes:
        allowed: True if the dispatch may proceed
        status: Suppression status when denied
        reason: quiet_hours, daily_limit or global_limit when denied
        reservation: Counter units to release if nothing gets attempted
    """

    allowed: bool
    status: Optional[DispatchStatus] = None
    reason: Optional[str] = None
    reservation: Reservation = field(default_factory=Reservation)

    @classmethod
    def allow(cls, reservation: Reservation) -> "AdmissionDecision":
        return cls(allowed=True, reservation=reservation)

    @classmethod
    def deny(cls, status: DispatchStatus, reason: str) -> "AdmissionDecision":
        return cls(allowed=False, status=status, reason=reason)


class RateLimiter:
    """Quiet hours and rate caps for outgoing notifications.

    Checks run in order: quiet hours (subscriber's timezone), daily cap
    (subscriber's calendar day), global cap (fixed one-minute window).

    - ``bypass_quiet_hours`` skips the quiet hours check
    - ``bypass_daily_limit`` skips the daily cap
    - critical requests are never denied by the global cap
    - every admitted dispatch is counted, bypassed or not

    Args:
        store: Store holding the counters
        global_per_minute: Global sends per minute across all subscribers
        clock: Returns the current aware datetime (injectable for tests)
    """

    def __init__(
        self,
        store: Store,
        global_per_minute: int = 1000,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.global_per_minute = global_per_minute
        self._clock = clock

    def admit(
        self,
        subscriber: Subscriber,
        priority: Priority,
        context: DispatchContext,
        at: Optional[datetime] = None,
    ) -> AdmissionDecision:
        now = _aware(at or self._clock())
        prefs = subscriber.preferences

        if not context.bypass_quiet_hours and self.is_quiet(subscriber, now):
            logger.info(
                "notification_suppressed",
                subscriber_id=subscriber.id,
                reason=QUIET_HOURS,
                priority=priority.value,
            )
            return AdmissionDecision.deny(DispatchStatus.QUIET_HOURS_SUPPRESSED, QUIET_HOURS)

        daily_key = self.daily_key(subscriber, now)
        daily_count = self.store.increment_counter(daily_key, DAILY_WINDOW_SECONDS)
        if daily_count > prefs.max_per_day and not context.bypass_daily_limit:
            self.store.decrement_counter(daily_key)
            logger.info(
                "notification_suppressed",
                subscriber_id=subscriber.id,
                reason=DAILY_LIMIT,
                daily_count=daily_count - 1,
                max_per_day=prefs.max_per_day,
            )
            return AdmissionDecision.deny(DispatchStatus.RATE_LIMITED, DAILY_LIMIT)

        global_key = self.global_key(now)
        global_count = self.store.increment_counter(global_key, GLOBAL_WINDOW_SECONDS * 2)
        if global_count > self.global_per_minute and priority != Priority.CRITICAL:
            self.store.decrement_counter(global_key)
            self.store.decrement_counter(daily_key)
            logger.warning(
                "notification_suppressed",
                subscriber_id=subscriber.id,
                reason=GLOBAL_LIMIT,
                global_count=global_count - 1,
                global_per_minute=self.global_per_minute,
            )
            return AdmissionDecision.deny(DispatchStatus.RATE_LIMITED, GLOBAL_LIMIT)

        return AdmissionDecision.allow(Reservation(keys=(daily_key, global_key)))

    def release(self, reservation: Reservation) -> None:
        """Give back the units of a dispatch that attempted no channel."""
        for key in reservation.keys:
            self.store.decrement_counter(key)
        if reservation.keys:
            logger.debug("rate_reservation_released", keys=list(reservation.keys))

    def is_quiet(self, subscriber: Subscriber, at: Optional[datetime] = None) -> bool:
        quiet_hours = subscriber.preferences.quiet_hours
        if quiet_hours is None:
            return False
        local = self.local_time(subscriber, at or self._clock())
        return quiet_hours.contains(local.hour)

    def daily_count(self, subscriber: Subscriber, at: Optional[datetime] = None) -> int:
        counter = self.store.get_counter(self.daily_key(subscriber, at or self._clock()))
        return counter.count if counter else 0

    def local_time(self, subscriber: Subscriber, at: datetime) -> datetime:
        return _aware(at).astimezone(subscriber.preferences.tz)

    def local_date(self, subscriber: Subscriber, at: datetime) -> date:
        return self.local_time(subscriber, at).date()

    def daily_key(self, subscriber: Subscriber, at: datetime) -> str:
        return f"daily:{subscriber.id}:{self.local_date(subscriber, at).isoformat()}"

    def global_key(self, at: datetime) -> str:
        return f"global:{int(_aware(at).timestamp()) // GLOBAL_WINDOW_SECONDS}"


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
