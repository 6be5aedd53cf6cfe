"""Error classifiers for provider exceptions.

Converts provider-specific exceptions (HTTP gateways called through requests,
AWS SDK, Slack SDK) into standardized OperationResult objects, so channel
adapters never raise for delivery problems.

Key Functions:
- classify_status_code(): raw HTTP status code → OperationResult
- classify_http_error(): requests exceptions → OperationResult
- classify_aws_error(): AWS SDK errors → OperationResult
- classify_slack_error(): Slack API errors → OperationResult

Usage:
    from infrastructure.operations.classifiers import classify_http_error

    try:
        response = requests.post(url, json=body, timeout=10)
        response.raise_for_status()
    except requests.RequestException as exc:
        return classify_http_error(exc)
"""

from typing import Optional

import requests
from botocore.exceptions import ClientError
from slack_sdk.errors import SlackApiError

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

# Slack errors meaning the destination no longer exists
SLACK_PERMANENT_ERRORS = frozenset(
    {
        "user_not_found",
        "channel_not_found",
        "is_archived",
        "account_inactive",
        "invalid_auth",
        "not_in_channel",
    }
)


def _parse_retry_after(value: Optional[str], default: int = 60) -> int:
    if not value:
        return default
    try:
        return int(value)
    except (ValueError, TypeError):
        return default  # Use default if header is malformed


def classify_status_code(
    status_code: int,
    provider: str,
    retry_after: Optional[str] = None,
    detail: str = "",
) -> OperationResult:
    """Classify a non-2xx HTTP status code returned by a provider.

    Status Code Mapping:
    - 429: Rate limiting → TRANSIENT_ERROR with retry_after
    - 401/403: Credentials rejected → UNAUTHORIZED
    - 404/410: Destination gone → NOT_FOUND
    - 408: Request timeout → TRANSIENT_ERROR
    - 5xx: Server error → TRANSIENT_ERROR
    - Other 4xx: Rejected request → PERMANENT_ERROR

    Args:
        status_code: HTTP status code from the provider response
        provider: Provider name used in messages
        retry_after: Raw Retry-After header value, if any
        detail: Extra text appended to the message

    Returns:
        OperationResult with the matching status and error_code
    """
    suffix = f": {detail}" if detail else ""

    if status_code == 429:
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            f"{provider} rate limited{suffix}",
            error_code="RATE_LIMITED",
            retry_after=_parse_retry_after(retry_after),
        )

    if status_code in (401, 403):
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED,
            f"{provider} rejected credentials ({status_code}){suffix}",
            error_code="UNAUTHORIZED",
        )

    if status_code in (404, 410):
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            f"{provider} destination gone ({status_code}){suffix}",
            error_code="DESTINATION_GONE",
        )

    if status_code == 408 or 500 <= status_code < 600:
        return OperationResult.transient_error(
            f"{provider} server error ({status_code}){suffix}",
            error_code="SERVER_ERROR",
        )

    return OperationResult.permanent_error(
        f"{provider} client error ({status_code}){suffix}",
        error_code="HTTP_ERROR",
    )


def classify_http_error(exc: Exception, provider: str = "HTTP") -> OperationResult:
    """Classify exceptions raised while calling an HTTP provider with requests.

    Timeouts and connection errors are transient. ``HTTPError`` instances
    carrying a response are classified by status code.

    Args:
        exc: Exception raised by requests (or while preparing the call)
        provider: Provider name used in messages

    Returns:
        OperationResult with appropriate status, message, error_code, and
        retry_after (if applicable)

    Example:
        try:
            response = requests.post(url, json=body, timeout=10)
            response.raise_for_status()
        except requests.RequestException as e:
            return classify_http_error(e, provider="push_gateway")
    """
    if isinstance(exc, requests.Timeout):
        return OperationResult.transient_error(
            f"{provider} timed out: {exc}",
            error_code="TIMEOUT",
        )

    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        response = exc.response
        return classify_status_code(
            response.status_code,
            provider,
            retry_after=response.headers.get("Retry-After"),
            detail=(response.text or "")[:200],
        )

    # Connection errors, DNS failures, unexpected exceptions: usually temporary
    return OperationResult.transient_error(
        f"{provider} connection error: {type(exc).__name__}: {str(exc)}",
        error_code="CONNECTION_ERROR",
    )


def classify_aws_error(exc: Exception) -> OperationResult:
    """Classify AWS SDK errors into OperationResult.

    Handles botocore.exceptions.ClientError exceptions by mapping AWS error
    codes to appropriate OperationStatus values. Follows AWS SDK convention
    of treating unknown errors as transient (retry by default).

    Error Code Mapping:
    - Throttling / ThrottlingException: Rate limiting → TRANSIENT_ERROR
    - AccessDeniedException / AuthorizationError: → UNAUTHORIZED
    - ResourceNotFoundException / NotFound / EndpointDisabled: → NOT_FOUND
    - InvalidParameter / ValidationException: Bad input → PERMANENT_ERROR
    - OptedOut: Recipient opted out of SMS → PERMANENT_ERROR
    - Other: Unknown error → TRANSIENT_ERROR (AWS convention)

    Args:
        exc: Exception raised by AWS SDK (boto3/botocore)

    Returns:
        OperationResult with appropriate status, message, error_code, and
        retry_after (if applicable)

    Example:
        try:
            response = sns.publish(PhoneNumber=number, Message=text)
        except ClientError as e:
            return classify_aws_error(e)
    """
    if not isinstance(exc, ClientError):
        # Could be BotoCoreError (connection), timeout, etc.
        return OperationResult.transient_error(
            f"AWS connection error: {type(exc).__name__}: {str(exc)}",
            error_code="CONNECTION_ERROR",
        )

    error_code = "Unknown"
    if hasattr(exc, "response") and exc.response:
        error_info = exc.response.get("Error", {})
        error_code = error_info.get("Code", "Unknown")

    if error_code in ("Throttling", "ThrottlingException", "ThrottledException"):
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            "AWS API throttled",
            error_code="RATE_LIMITED",
            retry_after=60,
        )

    if error_code in ("AccessDeniedException", "AuthorizationError"):
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED,
            "AWS API access denied",
            error_code="UNAUTHORIZED",
        )

    if error_code in ("ResourceNotFoundException", "NotFound", "EndpointDisabled"):
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            f"AWS resource not found: {error_code}",
            error_code="DESTINATION_GONE",
        )

    if error_code in (
        "ValidationException",
        "InvalidParameter",
        "InvalidParameterException",
        "InvalidParameterValue",
        "BadRequestException",
        "OptedOut",
    ):
        return OperationResult.permanent_error(
            f"AWS validation error: {error_code}",
            error_code="INVALID_REQUEST",
        )

    # AWS SDK convention: Unknown errors are transient (retry by default)
    return OperationResult.transient_error(
        f"AWS client error: {error_code}",
        error_code="AWS_CLIENT_ERROR",
    )


def classify_slack_error(exc: Exception) -> OperationResult:
    """Classify Slack SDK errors into OperationResult.

    ``SlackApiError`` carries the API error string in ``response["error"]``.
    Missing users or channels and archived channels are permanent; rate
    limiting and anything else is transient.

    Args:
        exc: Exception raised by slack_sdk

    Returns:
        OperationResult with appropriate status and error_code
    """
    if not isinstance(exc, SlackApiError):
        return OperationResult.transient_error(
            f"Slack connection error: {type(exc).__name__}: {str(exc)}",
            error_code="CONNECTION_ERROR",
        )

    error = ""
    retry_after = None
    if exc.response is not None:
        error = exc.response.get("error", "") or ""
        headers = getattr(exc.response, "headers", None) or {}
        retry_after = headers.get("Retry-After")

    if error == "ratelimited":
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            "Slack API rate limited",
            error_code="RATE_LIMITED",
            retry_after=_parse_retry_after(retry_after),
        )

    if error in ("user_not_found", "channel_not_found"):
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            f"Slack destination not found: {error}",
            error_code="DESTINATION_GONE",
        )

    if error in SLACK_PERMANENT_ERRORS:
        return OperationResult.permanent_error(
            f"Slack rejected message: {error}",
            error_code=error.upper(),
        )

    return OperationResult.transient_error(
        f"Slack API error: {error or str(exc)}",
        error_code="SLACK_API_ERROR",
    )
