"""Event bus for the dispatch event system.

Handlers subscribe per event type (or ``*`` for every event). Events are
either dispatched synchronously, or put on a queue drained by a background
worker thread when the bus has been started, so publishing never blocks
the dispatch path.
"""

import queue
import threading
from typing import Any, Callable, Dict, List, Optional

from infrastructure.events.models import Event
from infrastructure.logging import get_module_logger

logger = get_module_logger()

ALL_EVENTS = "*"

EventHandler = Callable[[Event], Any]

_STOP = object()


class EventBus:
    """In-process event bus with an explicit delivery queue.

    Example:
        bus = EventBus()

        @bus.register_event_handler("dispatch.failed")
        def on_failed(event: Event) -> None:
            ...

        bus.start()  # deliver in background
        bus.publish(Event(event_type="dispatch.failed", request_id="abc"))
        bus.stop()
    """

    def __init__(self, max_queue_size: int = 10000):
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._handlers_lock = threading.Lock()
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=max_queue_size)
        self._worker: Optional[threading.Thread] = None
        self._worker_lock = threading.Lock()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Register a handler for an event type (``*`` for all events)."""
        with self._handlers_lock:
            self._handlers.setdefault(event_type, []).append(handler)
            total = len(self._handlers[event_type])
        logger.debug(
            "registered_event_handler",
            handler=getattr(handler, "__name__", type(handler).__name__),
            event_type=event_type,
            total_handlers=total,
        )

    def register_event_handler(self, event_type: str):
        """Decorator form of subscribe().

        Args:
            event_type: The type of event to handle (e.g., 'dispatch.failed').

        Returns:
            Decorator function that registers the handler.
        """

        def decorator(handler_func: EventHandler) -> EventHandler:
            self.subscribe(event_type, handler_func)
            return handler_func

        return decorator

    def get_handlers_for_event(self, event_type: str) -> List[EventHandler]:
        with self._handlers_lock:
            return list(self._handlers.get(event_type, [])) + list(
                self._handlers.get(ALL_EVENTS, [])
            )

    def get_registered_events(self) -> List[str]:
        with self._handlers_lock:
            return list(self._handlers.keys())

    def clear_handlers(self) -> None:
        """Clear all registered handlers.

        WARNING: This is intended for testing only.
        """
        with self._handlers_lock:
            self._handlers.clear()

    def dispatch(self, event: Event) -> List[Any]:
        """Dispatch event synchronously to all matching handlers.

        All handlers for the event type are called in order. If a handler
        raises an exception, it is caught and logged, but processing
        continues with remaining handlers.

        Args:
            event: The event to dispatch.

        Returns:
            List of return values from all handlers.
        """
        results = []
        for handler in self.get_handlers_for_event(event.event_type):
            try:
                results.append(handler(event))
            except Exception as e:
                logger.error(
                    "event_handler_failed",
                    handler=getattr(handler, "__name__", type(handler).__name__),
                    event_type=event.event_type,
                    request_id=event.request_id,
                    error=str(e),
                )
        return results

    def publish(self, event: Event) -> None:
        """Publish an event.

        Queued for the background worker when the bus is running, dispatched
        inline otherwise. A full queue drops the event with an error log.
        """
        if not self.is_running:
            self.dispatch(event)
            return
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            logger.error(
                "event_queue_full",
                event_type=event.event_type,
                request_id=event.request_id,
            )

    @property
    def is_running(self) -> bool:
        worker = self._worker
        return worker is not None and worker.is_alive()

    def start(self) -> None:
        """Start the background delivery worker (idempotent)."""
        with self._worker_lock:
            if self.is_running:
                return
            self._worker = threading.Thread(
                target=self._run, name="event-bus", daemon=True
            )
            self._worker.start()
            logger.debug("event_bus_started")

    def stop(self, timeout: float = 5.0) -> None:
        """Deliver queued events and stop the worker."""
        with self._worker_lock:
            worker = self._worker
            if worker is None:
                return
            self._queue.put(_STOP)
            worker.join(timeout=timeout)
            self._worker = None
            logger.debug("event_bus_stopped")

    def flush(self) -> None:
        """Block until every queued event has been delivered."""
        if self.is_running:
            self._queue.join()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self.dispatch(item)
            except Exception as e:
                logger.exception("background_event_dispatch_failed", error=str(e))
            finally:
                self._queue.task_done()
