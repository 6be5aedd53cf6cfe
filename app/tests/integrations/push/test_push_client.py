import json
from unittest.mock import patch

import jwt
import pytest
import requests

from integrations.push import client as push

SECRET = "push-gateway-secret-0123456789abcdef"
SUBSCRIPTION = {
    "endpoint": "https://fcm.googleapis.com/fcm/send/abc",
    "keys": {"p256dh": "key", "auth": "auth"},
}


@patch("integrations.push.client.requests.post")
def test_send_push_posts_subscription_and_message(mock_post):
    push.send_push(
        "https://push.example.com/",
        "issuer",
        SECRET,
        subscription=SUBSCRIPTION,
        message={"title": "Price alert"},
        ttl=600,
        urgency="high",
        timeout=4,
    )

    args, kwargs = mock_post.call_args
    assert args == ("https://push.example.com/v1/push",)
    assert json.loads(kwargs["data"]) == {
        "subscription": SUBSCRIPTION,
        "message": {"title": "Price alert"},
        "ttl": 600,
        "urgency": "high",
    }
    assert kwargs["timeout"] == 4


@patch("integrations.push.client.requests.post")
def test_send_push_headers(mock_post):
    push.send_push(
        "https://push.example.com",
        "issuer",
        SECRET,
        subscription=SUBSCRIPTION,
        message={},
        ttl=86400,
        urgency="normal",
    )

    headers = mock_post.call_args.kwargs["headers"]
    assert headers["TTL"] == "86400"
    assert headers["Urgency"] == "normal"
    token = headers["Authorization"].split(" ", 1)[1]
    claims = jwt.decode(token, key=SECRET, algorithms=["HS256"])
    assert claims["iss"] == "issuer"


@patch("integrations.push.client.requests.post")
def test_send_push_raises_for_expired_subscription(mock_post):
    response = requests.Response()
    response.status_code = 410
    mock_post.return_value.raise_for_status.side_effect = requests.HTTPError(
        "410 Gone", response=response
    )

    with pytest.raises(requests.HTTPError) as exc_info:
        push.send_push(
            "https://push.example.com",
            "issuer",
            SECRET,
            subscription=SUBSCRIPTION,
            message={},
            ttl=60,
            urgency="low",
        )

    assert exc_info.value.response.status_code == 410


def test_send_push_requires_credentials():
    with pytest.raises(ValueError, match="client secret is missing"):
        push.send_push(
            "https://push.example.com",
            "issuer",
            None,
            subscription=SUBSCRIPTION,
            message={},
            ttl=60,
            urgency="low",
        )


@patch("integrations.push.client.requests.get")
def test_check_health(mock_get):
    push.check_health("https://push.example.com/")

    mock_get.assert_called_once_with("https://push.example.com/healthz", timeout=5)
    mock_get.return_value.raise_for_status.assert_called_once()
