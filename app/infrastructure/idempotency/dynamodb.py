"""DynamoDB idempotency cache implementation."""

import json
import time
from typing import Any, Dict, Optional

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from infrastructure.idempotency.cache import IdempotencyCache

logger = structlog.get_logger()

# DynamoDB table configuration
IDEMPOTENCY_TABLE = "notification_dispatch_idempotency"
PARTITION_KEY = "idempotency_key"


class DynamoDBCache(IdempotencyCache):
    """DynamoDB-backed idempotency cache.

    Uses a dedicated table with:
    - PK: idempotency_key (string)
    - Attributes: response_json, ttl (for DynamoDB TTL), created_at, operation_type

    DynamoDB deletes expired items lazily, so reads also compare ``ttl``
    against the current time. Suitable for multi-instance deployments where
    the dedup window must be shared between workers.

    Args:
        table_name: DynamoDB table name
        ttl_seconds: Default TTL when set() receives none
        client: boto3 DynamoDB client (created from region when omitted)
        region: AWS region used when creating the client
    """

    backend_name = "dynamodb"

    def __init__(
        self,
        table_name: str = IDEMPOTENCY_TABLE,
        ttl_seconds: int = 3600,
        client: Any = None,
        region: Optional[str] = None,
    ):
        self.table_name = table_name
        self.ttl_seconds = ttl_seconds
        self._client = client or boto3.client("dynamodb", region_name=region)
        logger.info(
            "initialized_dynamodb_idempotency_cache",
            table_name=table_name,
            ttl_seconds=self.ttl_seconds,
        )

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Get cached result for idempotency key.

        Args:
            key: Idempotency key.

        Returns:
            Cached result dict or None if not found/expired.
        """
        try:
            result = self._client.get_item(
                TableName=self.table_name,
                Key={PARTITION_KEY: {"S": key}},
                ConsistentRead=True,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("idempotency_cache_get_error", key=key, error=str(e))
            return None

        item = result.get("Item")
        if not item:
            logger.debug("idempotency_cache_miss", key=key)
            return None

        ttl_attr = item.get("ttl", {}).get("N")
        if ttl_attr is not None and int(ttl_attr) <= int(time.time()):
            logger.debug("idempotency_cache_expired", key=key)
            return None

        try:
            cached_response = json.loads(item["response_json"]["S"])
        except (KeyError, TypeError, ValueError) as e:
            logger.error("idempotency_cache_corrupt_item", key=key, error=str(e))
            return None

        logger.debug("idempotency_cache_hit", key=key)
        return cached_response

    def set(
        self, key: str, response: Dict[str, Any], ttl_seconds: Optional[int] = None
    ) -> None:
        """Cache a result for the given idempotency key.

        Args:
            key: Idempotency key.
            response: Result dict to cache.
            ttl_seconds: Time-to-live in seconds (uses config default if None).
        """
        if ttl_seconds is None:
            ttl_seconds = self.ttl_seconds

        now = int(time.time())
        try:
            response_json = json.dumps(response, default=str)
        except (TypeError, ValueError) as e:
            logger.error("idempotency_cache_serialization_error", key=key, error=str(e))
            return

        try:
            self._client.put_item(
                TableName=self.table_name,
                Item={
                    PARTITION_KEY: {"S": key},
                    "response_json": {"S": response_json},
                    "ttl": {"N": str(now + ttl_seconds)},
                    "created_at": {"N": str(now)},
                    "operation_type": {"S": "dispatch_result"},
                },
            )
            logger.debug("idempotency_cache_set_success", key=key, ttl_seconds=ttl_seconds)
        except (ClientError, BotoCoreError) as e:
            logger.error("idempotency_cache_set_failed", key=key, error=str(e))

    def clear(self) -> None:
        """Clear all cached entries.

        Note: This method scans the entire table and deletes all items.
        Should only be used in testing.
        """
        logger.warning("idempotency_cache_clear_called", backend="dynamodb")
        deleted = 0
        try:
            paginator = self._client.get_paginator("scan")
            for page in paginator.paginate(
                TableName=self.table_name, ProjectionExpression=PARTITION_KEY
            ):
                for item in page.get("Items", []):
                    key_value = item.get(PARTITION_KEY, {}).get("S")
                    if key_value:
                        self._client.delete_item(
                            TableName=self.table_name,
                            Key={PARTITION_KEY: {"S": key_value}},
                        )
                        deleted += 1
        except (ClientError, BotoCoreError) as e:
            logger.error("idempotency_cache_clear_error", error=str(e))
            return
        logger.info("idempotency_cache_cleared", items_deleted=deleted)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dict with DynamoDB backend information.
        """
        return {
            "backend": self.backend_name,
            "table_name": self.table_name,
            "ttl_seconds": self.ttl_seconds,
            "partition_key": PARTITION_KEY,
        }
