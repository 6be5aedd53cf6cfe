"""Idempotency keys for dispatch requests."""

import hashlib
import re
from typing import Any

# Request ids matching this are stored verbatim so cache entries can be
# looked up by hand; anything else is hashed.
_READABLE_ID = re.compile(r"^[A-Za-z0-9_\-\.]{1,64}$")
DIGEST_LENGTH = 16


def _digest(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:DIGEST_LENGTH]


class IdempotencyKeyBuilder:
    """Build deterministic cache keys scoped to a namespace.

    Example:
        >>> builder = IdempotencyKeyBuilder("notification_dispatch")
        >>> builder.for_request("req-1")
        'notification_dispatch:send:req-1'
        >>> builder.build("send", channel="sms", request_id="req-1")[:27]
        'notification_dispatch:send:'
    """

    def __init__(self, namespace: str):
        if ":" in namespace:
            raise ValueError("namespace must not contain ':'")
        self.namespace = namespace

    def build(self, operation: str, **components: Any) -> str:
        """Key from arbitrary components; insensitive to keyword order."""
        material = "|".join(f"{k}={v}" for k, v in sorted(components.items()))
        return f"{self.namespace}:{operation}:{_digest(material)}"

    def for_request(self, request_id: str) -> str:
        """Key de-duplicating every dispatch of one notification request."""
        if _READABLE_ID.match(request_id):
            return f"{self.namespace}:send:{request_id}"
        return f"{self.namespace}:send:{_digest(request_id)}"
