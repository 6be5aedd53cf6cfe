"""Idempotency cache interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class IdempotencyCache(ABC):
    """Stores serialized dispatch results keyed by request.

    A request retried inside the dedup window gets the original result back
    instead of being sent again. Backends shared between processes (DynamoDB)
    extend the window across instances; the in-memory backend covers one
    process only.

    Values must be JSON-serializable dicts (``DispatchResult.to_dict()``).
    """

    backend_name = "abstract"

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the cached result, or None when absent or expired."""

    @abstractmethod
    def set(
        self, key: str, response: Dict[str, Any], ttl_seconds: Optional[int] = None
    ) -> None:
        """Cache a result; ``ttl_seconds`` falls back to the backend default."""

    @abstractmethod
    def clear(self) -> None:
        """Drop every entry. Used by tests; may be expensive on shared backends."""

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Backend-specific counters, always including ``backend``."""

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
