"""Idempotency infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class IdempotencySettings(InfrastructureSettings):
    """Idempotency cache configuration for de-duplicating dispatches.

    Environment Variables:
        IDEMPOTENCY_TTL_SECONDS: Dedup window for request ids (default: 3600s = 1h)
        IDEMPOTENCY_BACKEND: Cache backend - 'memory' or 'dynamodb'
        IDEMPOTENCY_DYNAMODB_TABLE_NAME: DynamoDB table (if using DynamoDB backend)
        IDEMPOTENCY_DYNAMODB_REGION: AWS region of the table (default: boto3 resolution)

    Example:
        ```python
        from infrastructure.configuration import get_settings

        ttl = get_settings().idempotency.IDEMPOTENCY_TTL_SECONDS
        ```
    """

    IDEMPOTENCY_TTL_SECONDS: int = Field(default=3600, alias="IDEMPOTENCY_TTL_SECONDS")
    backend: str = Field(
        default="memory",
        alias="IDEMPOTENCY_BACKEND",
        description="Idempotency backend: 'memory' or 'dynamodb'",
    )
    dynamodb_table_name: str = Field(
        default="notification_dispatch_idempotency",
        alias="IDEMPOTENCY_DYNAMODB_TABLE_NAME",
        description="DynamoDB table name for idempotency records",
    )
    dynamodb_region: str | None = Field(
        default=None,
        alias="IDEMPOTENCY_DYNAMODB_REGION",
        description="AWS region of the DynamoDB table",
    )
