"""Operation result types and status enums.

This module contains standardized result types returned by channel adapters,
including status enums, result dataclasses, and error classifiers for
provider exceptions.
"""

from infrastructure.operations.classifiers import (
    classify_aws_error,
    classify_http_error,
    classify_slack_error,
    classify_status_code,
)
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
    "classify_status_code",
    "classify_http_error",
    "classify_aws_error",
    "classify_slack_error",
]
