"""Priority dispatch queue.

Four FIFO tiers drained in strict priority order: a cycle only takes from
the highest non-empty tier, so lower tiers wait while higher ones have work.
Items are dispatched with a fixed-size worker pool and are not re-queued
when they fail.
"""

import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Deque, Dict, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import (
    BatchResult,
    DispatchResult,
    NotificationRequest,
    Priority,
)

logger = get_module_logger()

SendFunction = Callable[[NotificationRequest], DispatchResult]


class PriorityDispatchQueue:
    """In-memory tiered queue feeding the dispatcher.

    Args:
        send: Dispatch function called once per item
        batch_size: Maximum items taken per drain cycle
        max_concurrency: Worker pool size
    """

    def __init__(
        self,
        send: SendFunction,
        batch_size: int = 100,
        max_concurrency: int = 10,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self._send = send
        self.batch_size = batch_size
        self._tiers: Dict[Priority, Deque[NotificationRequest]] = {
            priority: deque() for priority in Priority.ordered()
        }
        self._lock = threading.Lock()
        self._drain_lock = threading.Lock()
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_concurrency, thread_name_prefix="dispatch-queue"
        )

    def enqueue(self, request: NotificationRequest) -> int:
        """Add a request to its priority tier. Returns the total queue size."""
        with self._lock:
            self._tiers[request.priority].append(request)
            size = sum(len(tier) for tier in self._tiers.values())
        logger.debug(
            "notification_enqueued",
            request_id=request.id,
            priority=request.priority.value,
            queue_size=size,
        )
        return size

    def size(self) -> int:
        with self._lock:
            return sum(len(tier) for tier in self._tiers.values())

    def sizes(self) -> Dict[str, int]:
        with self._lock:
            return {priority.value: len(tier) for priority, tier in self._tiers.items()}

    def drain_cycle(self) -> BatchResult:
        """Dispatch up to batch_size items from the highest non-empty tier."""
        with self._drain_lock:
            batch = self._take()
            result = BatchResult()
            if not batch:
                return result

            futures = [(request, self._executor.submit(self._send, request)) for request in batch]
            for request, future in futures:
                try:
                    result.add(future.result())
                except Exception as e:  # pylint: disable=broad-except
                    result.total_failed += 1
                    result.errors.append(f"{request.id}: {e}")
                    logger.error(
                        "queued_dispatch_failed", request_id=request.id, error=str(e)
                    )

            logger.info(
                "dispatch_queue_cycle",
                priority=batch[0].priority.value,
                processed=len(batch),
                sent=result.total_sent,
                failed=result.total_failed,
                suppressed=result.total_suppressed,
                remaining=self.size(),
            )
            return result

    def drain(self) -> BatchResult:
        """Run cycles until the queue is empty."""
        total = BatchResult()
        while self.size():
            cycle = self.drain_cycle()
            total.total_sent += cycle.total_sent
            total.total_failed += cycle.total_failed
            total.total_suppressed += cycle.total_suppressed
            total.results.extend(cycle.results)
            total.errors.extend(cycle.errors)
        return total

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    def _take(self) -> List[NotificationRequest]:
        with self._lock:
            for priority in Priority.ordered():
                tier = self._tiers[priority]
                if tier:
                    count = min(self.batch_size, len(tier))
                    return [tier.popleft() for _ in range(count)]
        return []
