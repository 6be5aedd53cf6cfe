"""Infrastructure idempotency cache.

Provides idempotency protection for notification dispatch. The same request
id submitted twice inside the dedup window returns the first result instead
of sending again. The DynamoDB backend shares the window between instances.

Usage:

    from infrastructure.idempotency import IdempotencyKeyBuilder, InMemoryIdempotencyCache

    cache = InMemoryIdempotencyCache()
    key = IdempotencyKeyBuilder("notification_dispatch").for_request(req.id)

    cached = cache.get(key)
    if cached:
        return cached

    result = dispatch(...)
    cache.set(key, result, ttl_seconds=3600)
"""

from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.idempotency.dynamodb import DynamoDBCache
from infrastructure.idempotency.factory import create_idempotency_cache
from infrastructure.idempotency.key_builder import IdempotencyKeyBuilder
from infrastructure.idempotency.memory import InMemoryIdempotencyCache

__all__ = [
    "IdempotencyCache",
    "InMemoryIdempotencyCache",
    "DynamoDBCache",
    "IdempotencyKeyBuilder",
    "create_idempotency_cache",
]
