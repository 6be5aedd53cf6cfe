"""Operation status enumeration.

Status codes for operation results, used by channel adapters to classify
delivery outcomes so the failover coordinator can decide between retrying,
moving on, or invalidating a subscription.
"""

from enum import Enum


class OperationStatus(Enum):
    """Status codes for operation results.

    Attributes:
        SUCCESS: Operation completed successfully
        TRANSIENT_ERROR: Retryable error (network, timeout, rate limit, 5xx)
        PERMANENT_ERROR: Non-retryable error (malformed destination, rejected request)
        UNAUTHORIZED: Provider rejected our credentials
        NOT_FOUND: Destination no longer exists (404/410, unknown user)
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
