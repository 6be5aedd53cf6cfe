"""Slack Integration Package.

Provides the shared Slack WebClient used by the chat bridge channel.
"""

from .client import SlackClientManager

__all__ = ["SlackClientManager"]
