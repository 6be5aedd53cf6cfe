"""Chat bridge channel implementation using Slack."""

import re
from typing import TYPE_CHECKING, Optional

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import ChannelAdapter, SendOptions
from infrastructure.notifications.errors import ValidationError
from infrastructure.notifications.models import (
    ChannelKind,
    NotificationPayload,
    Priority,
)
from infrastructure.operations import OperationResult, classify_slack_error
from integrations.slack import SlackClientManager

if TYPE_CHECKING:
    from infrastructure.configuration.integrations.slack import SlackSettings

logger = get_module_logger()

SLACK_ID = re.compile(r"^[UWCDG][A-Z0-9]{2,}$")
EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ChatChannel(ChannelAdapter):
    """Slack relay channel.

    Destinations are Slack user ids (DM), conversation ids, or the email of a
    workspace member. Critical messages are mirrored to the ops channel when
    one is configured.
    """

    kind = ChannelKind.CHAT
    provider_name = "slack"

    def __init__(self, settings: "SlackSettings", client: Optional[WebClient] = None):
        self._client = client
        self._token = settings.SLACK_TOKEN
        self._ops_channel = settings.SLACK_OPS_CHANNEL
        logger.info("initialized_chat_channel", backend="slack")

    @property
    def client(self) -> WebClient:
        if self._client is None:
            self._client = SlackClientManager.get_client(self._token)
        return self._client

    def send(
        self, destination: str, payload: NotificationPayload, options: SendOptions
    ) -> OperationResult:
        text = f"*{payload.title}*\n{payload.body}" if payload.title else payload.body
        try:
            channel_id = self._resolve_channel(destination)
            response = self.client.chat_postMessage(channel=channel_id, text=text)
        except SlackApiError as e:
            result = classify_slack_error(e)
            logger.warning(
                "chat_send_failed",
                request_id=options.request_id,
                status=result.status.value,
                error_code=result.error_code,
            )
            return result

        if options.priority == Priority.CRITICAL and self._ops_channel:
            self._mirror(text, options)

        logger.info("chat_sent", request_id=options.request_id)
        return self._receipt(response.get("ts"))

    def probe(self) -> OperationResult:
        try:
            auth_test = self.client.auth_test()
        except SlackApiError as e:
            return classify_slack_error(e)
        return OperationResult.success(
            message="Slack API healthy",
            data={"team": auth_test.get("team"), "user": auth_test.get("user")},
        )

    def validate_destination(self, destination: str) -> str:
        destination = destination.strip()
        if SLACK_ID.match(destination) or EMAIL.match(destination):
            return destination
        raise ValidationError("chat destination must be a Slack id or member email")

    def _resolve_channel(self, destination: str) -> str:
        """Conversation id to post to.

        Raises:
            SlackApiError: If the user lookup or DM opening fails.
        """
        if "@" in destination:
            lookup = self.client.users_lookupByEmail(email=destination)
            destination = lookup["user"]["id"]
        if destination[0] in ("U", "W"):
            conversation = self.client.conversations_open(users=[destination])
            return conversation["channel"]["id"]
        return destination

    def _mirror(self, text: str, options: SendOptions) -> None:
        try:
            self.client.chat_postMessage(
                channel=self._ops_channel,
                text=f"[{options.notification_type.value}] {text}",
            )
        except SlackApiError as e:
            logger.warning(
                "chat_ops_mirror_failed",
                request_id=options.request_id,
                error=e.response.get("error") if e.response is not None else str(e),
            )
