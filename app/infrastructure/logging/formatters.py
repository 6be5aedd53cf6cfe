"""Custom log formatters for structured logging.

This module provides formatters that can be used as structlog processors
to customize log output format.

Usage:
    from infrastructure.logging.formatters import mask_sensitive_data, mask_destinations

Dependencies:
    - structlog processors
"""

import re
from typing import Any

# Sensitive field patterns that should be masked in logs
SENSITIVE_PATTERNS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "authorization",
        "auth",
        "credential",
        "private_key",
        "access_token",
        "refresh_token",
        "session_id",
        "cookie",
        "jwt",
        "bearer",
        "encryption_key",
    }
)

# Keys holding delivery destinations. Values are partially masked, not removed,
# so operators can still tell destinations apart.
DESTINATION_KEYS = frozenset(
    {"destination", "phone", "phone_number", "to", "email", "email_address", "endpoint"}
)

_PHONE_RE = re.compile(r"\+?\d[\d\s\-()]{6,}\d")


def mask_sensitive_data(
    mask_value: str = "***REDACTED***",
    additional_patterns: frozenset[str] | None = None,
):
    """Create a processor that masks sensitive data in log entries.

    Automatically detects and masks values for keys that contain
    sensitive patterns (case-insensitive matching).

    Args:
        mask_value: The string to replace sensitive values with.
        additional_patterns: Extra patterns to consider sensitive.

    Returns:
        A structlog processor function.
    """
    patterns = SENSITIVE_PATTERNS
    if additional_patterns:
        patterns = patterns | additional_patterns

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        masked_dict = {}
        for key, value in event_dict.items():
            key_lower = key.lower()
            # Check if any sensitive pattern is in the key
            is_sensitive = any(pattern in key_lower for pattern in patterns)
            if is_sensitive and value is not None:
                masked_dict[key] = mask_value
            else:
                masked_dict[key] = value
        return masked_dict

    return processor


def mask_value(value: str, visible: int = 4) -> str:
    """Mask all but the last ``visible`` characters of a destination.

    Example:
        mask_value("+819012345678") -> "*********5678"
        mask_value("user@example.com") -> "u***@example.com"
    """
    if "@" in value and not value.startswith("http"):
        local, _, domain = value.partition("@")
        return f"{local[:1]}***@{domain}"
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]


def mask_destinations(keys: frozenset[str] = DESTINATION_KEYS):
    """Create a processor that partially masks delivery destinations.

    Values under destination-like keys are masked with ``mask_value``. Phone
    numbers embedded in the event message are masked as well.

    Args:
        keys: Keys whose string values are destinations.

    Returns:
        A structlog processor function.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if key.lower() in keys and isinstance(value, str):
                event_dict[key] = mask_value(value)
        event = event_dict.get("event")
        if isinstance(event, str):
            event_dict["event"] = _PHONE_RE.sub(
                lambda m: mask_value(m.group(0)), event
            )
        return event_dict

    return processor


def truncate_large_values(max_length: int = 500):
    """Create a processor that truncates overly large string values.

    Prevents log explosion from large data being logged accidentally.

    Args:
        max_length: Maximum string length before truncation.

    Returns:
        A structlog processor function.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if isinstance(value, str) and len(value) > max_length:
                event_dict[key] = (
                    value[:max_length] + f"...[truncated, {len(value)} chars total]"
                )
        return event_dict

    return processor
