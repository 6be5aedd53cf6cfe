"""Result type returned by channel adapters and health probes.

A successful send carries the provider receipt in ``data``. Failures carry
an ``error_code`` that the failover coordinator and subscription registry
inspect: transient errors are retried on the same channel, destination
errors retire the subscription, everything else moves on to the next
channel.
"""

from dataclasses import dataclass
from typing import Any, Optional

from infrastructure.operations.status import OperationStatus

DESTINATION_ERROR_CODES = frozenset({"INVALID_DESTINATION", "DESTINATION_GONE"})


@dataclass
class OperationResult:
    """Outcome of one adapter call.

    Attributes:
        status: High-level outcome
        message: Human-readable detail for logs and attempt records
        data: Receipt (provider message id, etc.) on success
        error_code: Machine code, e.g. ``INVALID_DESTINATION``
        retry_after: Seconds the provider asked us to wait, when rate limited
    """

    status: OperationStatus
    message: str
    data: Optional[Any] = None
    error_code: Optional[str] = None
    retry_after: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return self.status == OperationStatus.SUCCESS

    @property
    def is_transient(self) -> bool:
        """True when the failure is worth retrying on the same channel."""
        return self.status == OperationStatus.TRANSIENT_ERROR

    @property
    def is_destination_gone(self) -> bool:
        """True when the destination itself is invalid and should be retired.

        Other permanent errors (rejected payload, expired message, missing
        credentials) say nothing about the destination.
        """
        return self.status == OperationStatus.NOT_FOUND or (
            self.status == OperationStatus.PERMANENT_ERROR
            and self.error_code in DESTINATION_ERROR_CODES
        )

    @classmethod
    def success(cls, data: Optional[Any] = None, message: str = "ok") -> "OperationResult":
        return cls(status=OperationStatus.SUCCESS, message=message, data=data)

    @classmethod
    def error(
        cls,
        status: OperationStatus,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
        data: Optional[Any] = None,
    ) -> "OperationResult":
        return cls(
            status=status,
            message=message,
            error_code=error_code,
            retry_after=retry_after,
            data=data,
        )

    @classmethod
    def transient_error(
        cls,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
    ) -> "OperationResult":
        """Retryable failure: timeouts, 5xx, provider throttling."""
        return cls.error(
            OperationStatus.TRANSIENT_ERROR, message, error_code, retry_after
        )

    @classmethod
    def permanent_error(
        cls, message: str, error_code: Optional[str] = None
    ) -> "OperationResult":
        """Non-retryable failure: bad destination, rejected payload, auth."""
        return cls.error(OperationStatus.PERMANENT_ERROR, message, error_code)
