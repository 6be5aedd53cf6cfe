"""Integration settings __init__ - exports all integration settings."""

from infrastructure.configuration.integrations.notify import NotifySettings
from infrastructure.configuration.integrations.push import PushSettings
from infrastructure.configuration.integrations.slack import SlackSettings
from infrastructure.configuration.integrations.sms import SMSSettings

__all__ = [
    "NotifySettings",
    "PushSettings",
    "SlackSettings",
    "SMSSettings",
]
