"""Notification channel implementations."""

from infrastructure.notifications.channels.base import ChannelAdapter, SendOptions
from infrastructure.notifications.channels.chat import ChatChannel
from infrastructure.notifications.channels.email import EmailChannel
from infrastructure.notifications.channels.push import PushChannel
from infrastructure.notifications.channels.registry import ChannelRegistry
from infrastructure.notifications.channels.sms import SMSChannel
from infrastructure.notifications.channels.sms_providers import (
    HttpSMSProvider,
    SMSProvider,
    SnsSMSProvider,
)

__all__ = [
    "ChannelAdapter",
    "SendOptions",
    "ChannelRegistry",
    "ChatChannel",
    "EmailChannel",
    "PushChannel",
    "SMSChannel",
    "SMSProvider",
    "HttpSMSProvider",
    "SnsSMSProvider",
]
