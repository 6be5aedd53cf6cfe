"""Web push gateway client.

The gateway accepts a browser push subscription and a message, and relays it
to the subscription endpoint. It is authenticated with the same JWT scheme as
the Notify API.
"""

import json
from typing import Any, Dict

import requests
from infrastructure.logging import get_module_logger
from integrations.notify.client import create_authorization_header

logger = get_module_logger()

SEND_ENDPOINT = "/v1/push"
HEALTH_ENDPOINT = "/healthz"


def send_push(
    gateway_url: str,
    client_id: str,
    secret: str,
    subscription: Dict[str, Any],
    message: Dict[str, Any],
    ttl: int,
    urgency: str,
    timeout: float = 10,
) -> requests.Response:
    """Relay a push message through the gateway.

    Args:
        gateway_url: Gateway base URL
        client_id: JWT issuer
        secret: JWT signing secret
        subscription: Browser subscription ({"endpoint": ..., "keys": {...}})
        message: JSON message delivered to the service worker
        ttl: Seconds the push service keeps the message for an offline device
        urgency: Web push urgency (very-low, low, normal, high)
        timeout: HTTP timeout in seconds

    Raises:
        requests.HTTPError: For non-2xx responses (404/410 mean the
            subscription expired).
        requests.RequestException: For timeouts and connection errors.
    """
    header_key, header_value = create_authorization_header(client_id, secret)
    headers = {
        header_key: header_value,
        "Content-Type": "application/json",
        "TTL": str(ttl),
        "Urgency": urgency,
    }
    body = {"subscription": subscription, "message": message, "ttl": ttl, "urgency": urgency}

    response = requests.post(
        gateway_url.rstrip("/") + SEND_ENDPOINT,
        data=json.dumps(body),
        headers=headers,
        timeout=timeout,
    )
    response.raise_for_status()
    return response


def check_health(gateway_url: str, timeout: float = 5) -> requests.Response:
    """Call the gateway health endpoint."""
    response = requests.get(gateway_url.rstrip("/") + HEALTH_ENDPOINT, timeout=timeout)
    response.raise_for_status()
    return response
