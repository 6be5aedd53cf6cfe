"""Idempotency cache factory."""

from typing import Optional

from infrastructure.configuration.infrastructure.idempotency import IdempotencySettings
from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.idempotency.dynamodb import DynamoDBCache
from infrastructure.idempotency.memory import InMemoryIdempotencyCache
from infrastructure.logging import get_module_logger

logger = get_module_logger()


def create_idempotency_cache(
    settings: IdempotencySettings, region: Optional[str] = None
) -> IdempotencyCache:
    """Build the idempotency cache selected by configuration.

    Args:
        settings: Idempotency settings section.
        region: AWS region for the DynamoDB backend.

    Returns:
        InMemoryIdempotencyCache for ``memory``, DynamoDBCache for ``dynamodb``.

    Raises:
        ValueError: If the backend name is unknown.
    """
    backend = settings.backend.lower()
    if backend == "memory":
        cache: IdempotencyCache = InMemoryIdempotencyCache(
            default_ttl_seconds=settings.IDEMPOTENCY_TTL_SECONDS
        )
    elif backend == "dynamodb":
        cache = DynamoDBCache(
            table_name=settings.dynamodb_table_name,
            ttl_seconds=settings.IDEMPOTENCY_TTL_SECONDS,
            region=region or settings.dynamodb_region,
        )
    else:
        raise ValueError(f"Unknown idempotency backend: {settings.backend}")

    logger.info("initialized_idempotency_cache", backend=backend)
    return cache
