"""In-memory idempotency cache implementation."""

import copy
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.logging import get_module_logger

logger = get_module_logger()


class InMemoryIdempotencyCache(IdempotencyCache):
    """Process-local idempotency cache with per-entry TTL.

    Suitable for single-instance deployments and tests. Expired entries are
    evicted lazily on read and swept when the cache grows past ``max_entries``.

    Args:
        default_ttl_seconds: TTL used when set() receives none
        max_entries: Size at which expired entries are swept
        clock: Returns the current time in seconds, injectable for tests
    """

    backend_name = "memory"

    def __init__(
        self,
        default_ttl_seconds: int = 3600,
        max_entries: int = 100_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl_seconds = default_ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            expires_at, response = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self._misses += 1
                logger.debug("idempotency_cache_expired", key=key)
                return None
            self._hits += 1
            return copy.deepcopy(response)

    def set(
        self, key: str, response: Dict[str, Any], ttl_seconds: Optional[int] = None
    ) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            if len(self._entries) >= self.max_entries:
                self._sweep()
            self._entries[key] = (self._clock() + ttl, copy.deepcopy(response))
        logger.debug("idempotency_cache_set_success", key=key, ttl_seconds=ttl)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "backend": self.backend_name,
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "ttl_seconds": self.default_ttl_seconds,
            }

    def _sweep(self) -> None:
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for k in expired:
            del self._entries[k]
        logger.debug("idempotency_cache_swept", evicted=len(expired))
