"""Dispatch context binding for structured logging.

This module provides utilities for binding dispatch-scoped context to logs,
so every log entry emitted while a notification request is being processed
carries its correlation id.

Usage:
    from infrastructure.logging import bind_request_context

    with bind_request_context(correlation_id=request.id, subscriber_id="sub-1"):
        # All logs within this block will include the context
        logger.info("dispatch_started")

Dependencies:
    - structlog.contextvars
"""

import uuid
from contextlib import contextmanager
from typing import Optional, Any, Generator
import structlog


@contextmanager
def bind_request_context(
    correlation_id: Optional[str] = None,
    subscriber_id: Optional[str] = None,
    notification_type: Optional[str] = None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind dispatch-scoped context to all logs within the context manager.

    Args:
        correlation_id: Unique request identifier. Auto-generated if not provided.
        subscriber_id: Subscriber the request is addressed to.
        notification_type: Type of the notification being dispatched.
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        None - context is automatically bound to structlog's context vars.

    Example:
        with bind_request_context(
            correlation_id=request.id,
            subscriber_id=request.subscriber_id,
            priority=request.priority.value,
        ):
            dispatcher.send(request)
    """
    # Build context dict with only non-None values
    context: dict[str, Any] = {}

    # Use provided correlation_id or generate one
    context["correlation_id"] = correlation_id or str(uuid.uuid4())

    if subscriber_id is not None:
        context["subscriber_id"] = subscriber_id

    if notification_type is not None:
        context["notification_type"] = notification_type

    # Add any extra context
    context.update(extra_context)

    # Remember values bound by an outer block so nesting restores them
    previous = structlog.contextvars.get_contextvars()
    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())
        restored = {k: previous[k] for k in context if k in previous}
        if restored:
            structlog.contextvars.bind_contextvars(**restored)


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from the logging context.

    Returns:
        The correlation ID if set, None otherwise.
    """
    ctx = structlog.contextvars.get_contextvars()
    return ctx.get("correlation_id")


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID in the current logging context.

    Args:
        correlation_id: The correlation ID to set.
    """
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_request_context() -> None:
    """Clear all request-scoped context from the logging context.

    Should be called by worker threads after processing an item to prevent
    context leakage between requests.

    Example:
        try:
            process_request()
        finally:
            clear_request_context()
    """
    structlog.contextvars.clear_contextvars()
