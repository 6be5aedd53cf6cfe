"""GC Notify style REST client.

Provides the JWT authorization used by Notify compatible APIs and helpers
to post to them. The push gateway uses the same token scheme.
"""

import calendar
import json
import time
from typing import Any, Dict, Optional

import jwt
import requests
from infrastructure.logging import get_module_logger

logger = get_module_logger()

EMAIL_ENDPOINT = "/v2/notifications/email"
STATUS_ENDPOINT = "/_status"


# generate the epoch seconds for the jwt token
def epoch_seconds():
    return calendar.timegm(time.gmtime())


def create_jwt_token(secret, client_id):
    """
    Generate a JWT Token for the Notify API

    Tokens have a header consisting of:
    {
        "typ": "JWT",
        "alg": "HS256"
    }

    Parameters:
    secret: Application signing secret
    client_id: Identifier for the client

    Claims are:
    iss: identifier for the client
    iat: epoch seconds for the token (UTC)

    Returns a JWT token for this request
    """
    if not secret:
        logger.error("jwt_token_creation_failed", error="Missing secret key")
        raise ValueError("Missing secret key")
    if not client_id:
        logger.error("jwt_token_creation_failed", error="Missing client id")
        raise ValueError("Missing client id")

    headers = {"typ": "JWT", "alg": "HS256"}

    claims = {"iss": client_id, "iat": epoch_seconds()}
    t = jwt.encode(payload=claims, key=secret, headers=headers)
    if isinstance(t, str):
        return t
    else:
        return t.decode()


def create_authorization_header(client_id, secret):
    """Create the authorization header for a Notify style API."""
    if not client_id:
        error = "client id is missing"
        logger.error("authorization_header_creation_failed", error=error)
        raise ValueError(error)
    if not secret:
        error = "client secret is missing"
        logger.error("authorization_header_creation_failed", error=error)
        raise ValueError(error)

    token = create_jwt_token(secret=secret, client_id=client_id)
    return "Authorization", "Bearer {}".format(token)


def post_event(url, payload, client_id, secret, timeout=60):
    """Post a JSON payload to a Notify style API with a JWT header."""
    header_key, header_value = create_authorization_header(client_id, secret)
    header = {header_key: header_value, "Content-Type": "application/json"}

    response = requests.post(
        url, data=json.dumps(payload), headers=header, timeout=timeout
    )
    return response


def send_email(
    api_url: str,
    client_id: str,
    secret: str,
    email_address: str,
    template_id: str,
    personalisation: Dict[str, Any],
    reference: Optional[str] = None,
    timeout: float = 10,
) -> requests.Response:
    """Send an email notification through the Notify API.

    Raises:
        requests.HTTPError: For non-2xx responses.
        requests.RequestException: For timeouts and connection errors.
    """
    payload: Dict[str, Any] = {
        "email_address": email_address,
        "template_id": template_id,
        "personalisation": personalisation,
    }
    if reference:
        payload["reference"] = reference

    response = post_event(
        api_url.rstrip("/") + EMAIL_ENDPOINT, payload, client_id, secret, timeout
    )
    response.raise_for_status()
    return response


def get_status(api_url: str, timeout: float = 5) -> requests.Response:
    """Call the unauthenticated status endpoint of the API."""
    response = requests.get(api_url.rstrip("/") + STATUS_ENDPOINT, timeout=timeout)
    response.raise_for_status()
    return response
