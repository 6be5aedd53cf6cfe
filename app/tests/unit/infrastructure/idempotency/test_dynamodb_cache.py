"""Unit tests for DynamoDB idempotency cache."""

import json
import time

import pytest
from botocore.exceptions import ClientError

from infrastructure.idempotency.dynamodb import (
    IDEMPOTENCY_TABLE,
    PARTITION_KEY,
    DynamoDBCache,
)

pytestmark = pytest.mark.unit


def _client_error(code="ProvisionedThroughputExceededException"):
    return ClientError({"Error": {"Code": code, "Message": "boom"}}, "GetItem")


def _item(response, ttl):
    return {
        "Item": {
            PARTITION_KEY: {"S": "key-1"},
            "response_json": {"S": json.dumps(response)},
            "ttl": {"N": str(ttl)},
        }
    }


class TestDynamoDBCacheInitialization:
    def test_defaults(self, mock_dynamodb_client):
        cache = DynamoDBCache(client=mock_dynamodb_client)

        assert cache.table_name == IDEMPOTENCY_TABLE
        assert cache.ttl_seconds == 3600

    def test_creates_client_for_region(self, monkeypatch):
        created = {}

        def fake_client(service, region_name=None):
            created.update(service=service, region=region_name)
            return object()

        monkeypatch.setattr("infrastructure.idempotency.dynamodb.boto3.client", fake_client)

        DynamoDBCache(region="ap-northeast-1")

        assert created == {"service": "dynamodb", "region": "ap-northeast-1"}


class TestDynamoDBCacheGet:
    def test_hit(self, dynamodb_cache, mock_dynamodb_client, sample_response):
        mock_dynamodb_client.get_item.return_value = _item(
            sample_response, int(time.time()) + 60
        )

        assert dynamodb_cache.get("key-1") == sample_response
        mock_dynamodb_client.get_item.assert_called_once_with(
            TableName="test_idempotency",
            Key={PARTITION_KEY: {"S": "key-1"}},
            ConsistentRead=True,
        )

    def test_miss(self, dynamodb_cache, mock_dynamodb_client):
        mock_dynamodb_client.get_item.return_value = {}

        assert dynamodb_cache.get("key-1") is None

    def test_expired_item_not_yet_deleted(
        self, dynamodb_cache, mock_dynamodb_client, sample_response
    ):
        mock_dynamodb_client.get_item.return_value = _item(
            sample_response, int(time.time()) - 1
        )

        assert dynamodb_cache.get("key-1") is None

    def test_corrupt_item(self, dynamodb_cache, mock_dynamodb_client):
        mock_dynamodb_client.get_item.return_value = {
            "Item": {"response_json": {"S": "{not json"}}
        }

        assert dynamodb_cache.get("key-1") is None

    def test_client_error_is_a_miss(self, dynamodb_cache, mock_dynamodb_client):
        mock_dynamodb_client.get_item.side_effect = _client_error()

        assert dynamodb_cache.get("key-1") is None


class TestDynamoDBCacheSet:
    def test_puts_item_with_ttl(self, dynamodb_cache, mock_dynamodb_client, sample_response):
        before = int(time.time())

        dynamodb_cache.set("key-1", sample_response, ttl_seconds=120)

        item = mock_dynamodb_client.put_item.call_args.kwargs["Item"]
        assert item[PARTITION_KEY] == {"S": "key-1"}
        assert json.loads(item["response_json"]["S"]) == sample_response
        assert before + 120 <= int(item["ttl"]["N"]) <= int(time.time()) + 120
        assert item["operation_type"] == {"S": "dispatch_result"}

    def test_uses_default_ttl(self, dynamodb_cache, mock_dynamodb_client, sample_response):
        dynamodb_cache.set("key-1", sample_response)

        item = mock_dynamodb_client.put_item.call_args.kwargs["Item"]
        assert int(item["ttl"]["N"]) - int(item["created_at"]["N"]) == 3600

    def test_put_failure_is_logged_not_raised(
        self, dynamodb_cache, mock_dynamodb_client, sample_response
    ):
        mock_dynamodb_client.put_item.side_effect = _client_error()

        dynamodb_cache.set("key-1", sample_response)


class TestDynamoDBCacheClear:
    def test_deletes_every_scanned_key(self, dynamodb_cache, mock_dynamodb_client):
        paginator = mock_dynamodb_client.get_paginator.return_value
        paginator.paginate.return_value = [
            {"Items": [{PARTITION_KEY: {"S": "a"}}, {PARTITION_KEY: {"S": "b"}}]},
            {"Items": []},
        ]

        dynamodb_cache.clear()

        assert mock_dynamodb_client.delete_item.call_count == 2
        mock_dynamodb_client.get_paginator.assert_called_once_with("scan")

    def test_stats(self, dynamodb_cache):
        assert dynamodb_cache.get_stats() == {
            "backend": "dynamodb",
            "table_name": "test_idempotency",
            "ttl_seconds": 3600,
            "partition_key": PARTITION_KEY,
        }
