"""Notify module for sending notifications through a Notify style API."""

from .client import (
    epoch_seconds,
    create_jwt_token,
    create_authorization_header,
    post_event,
    send_email,
    get_status,
)

__all__ = [
    "epoch_seconds",
    "create_jwt_token",
    "create_authorization_header",
    "post_event",
    "send_email",
    "get_status",
]
