"""Slack chat bridge settings."""

from infrastructure.configuration.base import IntegrationSettings


class SlackSettings(IntegrationSettings):
    """Slack API configuration for the chat bridge channel.

    Environment Variables:
        SLACK_TOKEN: Slack bot token (xoxb-*)
        SLACK_OPS_CHANNEL: Channel receiving copies of critical alerts (optional)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        slack_token = settings.slack.SLACK_TOKEN
        ```
    """

    SLACK_TOKEN: str = ""
    SLACK_OPS_CHANNEL: str = ""
