from typing import Optional

from slack_sdk import WebClient


class SlackClientManager:
    """Manages the Slack API client. Ensures a single instance is used throughout the application."""

    _client: Optional[WebClient] = None

    @classmethod
    def get_client(cls, token: Optional[str] = None) -> WebClient:
        """Returns a singleton instance of the Slack WebClient.

        Args:
            token: Bot token. Read from settings when omitted.
        """
        if cls._client is None:
            if token is None:
                from infrastructure.services.providers import get_settings

                token = get_settings().slack.SLACK_TOKEN
            cls._client = WebClient(token=token)
        return cls._client

    @classmethod
    def reset(cls) -> None:
        """Drop the cached client (for tests and token rotation)."""
        cls._client = None
