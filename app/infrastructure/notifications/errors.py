"""Notification engine exceptions.

Delivery problems are not exceptions: adapters return classified
OperationResults and suppression is a result status. Exceptions are raised
for invalid requests, by the advisor gateway internally and, on demand, by
DispatchResult.raise_for_status().
"""

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from infrastructure.notifications.models import DispatchResult


class NotificationError(Exception):
    """Base class for notification engine errors."""


class ValidationError(NotificationError):
    """The request is malformed. Raised before any side effect."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class DispatchFailed(NotificationError):
    """Base for failures carrying the full dispatch result."""

    def __init__(self, result: "DispatchResult"):
        super().__init__(
            f"Dispatch {result.request_id} {result.status.value}: {result.reason or ''}".strip()
        )
        self.result = result


class AllChannelsFailed(DispatchFailed):
    pass


class DispatchTimeout(DispatchFailed):
    pass


class AdvisorTimeout(NotificationError):
    """The optimization advisor did not answer in time. Never escapes the gateway."""
