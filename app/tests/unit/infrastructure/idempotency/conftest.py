"""Fixtures for idempotency cache tests."""

import pytest
from unittest.mock import MagicMock

from infrastructure.idempotency.dynamodb import DynamoDBCache
from infrastructure.idempotency.memory import InMemoryIdempotencyCache
from tests.factories.notifications import FakeMonotonic


@pytest.fixture
def sample_response():
    """Serialized dispatch result as cached by the dispatcher."""
    return {
        "request_id": "req-1",
        "status": "delivered",
        "success": True,
        "delivered_channel": "push",
        "attempts": [{"channel": "push", "attempt": 1, "success": True}],
    }


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def memory_cache(monotonic):
    return InMemoryIdempotencyCache(default_ttl_seconds=60, clock=monotonic)


@pytest.fixture
def mock_dynamodb_client():
    return MagicMock()


@pytest.fixture
def dynamodb_cache(mock_dynamodb_client):
    return DynamoDBCache(table_name="test_idempotency", client=mock_dynamodb_client)
