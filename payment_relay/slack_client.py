"""
Thin wrapper around the Slack Web API.

Exposes exactly the calls the relay needs (post, update, react, look up a
user, reply to a slash command) and turns every Slack or transport failure
into :class:`~payment_relay.errors.NotificationError`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.webhook import WebhookClient

from .errors import NotificationError

logger = logging.getLogger(__name__)


class ChatPlatform:
    """The Slack calls the relay depends on.  Tests substitute a recording fake."""

    def post_message(
        self,
        channel: str,
        text: str,
        blocks: Optional[List[Dict[str, Any]]] = None,
        thread_ts: Optional[str] = None,
    ) -> str:
        raise NotImplementedError

    def update_message(
        self,
        channel: str,
        ts: str,
        text: str,
        blocks: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        raise NotImplementedError

    def add_reaction(self, channel: str, ts: str, name: str) -> None:
        raise NotImplementedError

    def get_user_display_name(self, user_id: str) -> str:
        raise NotImplementedError

    def respond(self, response_url: str, text: str) -> None:
        raise NotImplementedError


class SlackPlatform(ChatPlatform):
    def __init__(self, token: Optional[str] = None, *, client: Optional[WebClient] = None) -> None:
        if client is None and not token:
            raise NotificationError("SLACK_BOT_TOKEN is not set")
        self.client = client or WebClient(token=token)

    def post_message(
        self,
        channel: str,
        text: str,
        blocks: Optional[List[Dict[str, Any]]] = None,
        thread_ts: Optional[str] = None,
    ) -> str:
        """Post a message and return its ``ts``."""
        kwargs: Dict[str, Any] = {"channel": channel, "text": text}
        if blocks:
            kwargs["blocks"] = blocks
        if thread_ts:
            kwargs["thread_ts"] = thread_ts
        try:
            response = self.client.chat_postMessage(**kwargs)
        except (SlackClientError, OSError) as exc:
            raise NotificationError(f"chat.postMessage to {channel} failed: {exc}") from exc
        logger.debug("Posted message %s to %s", response["ts"], channel)
        return response["ts"]

    def update_message(
        self,
        channel: str,
        ts: str,
        text: str,
        blocks: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        try:
            self.client.chat_update(channel=channel, ts=ts, text=text, blocks=blocks)
        except (SlackClientError, OSError) as exc:
            raise NotificationError(f"chat.update of {channel}/{ts} failed: {exc}") from exc

    def add_reaction(self, channel: str, ts: str, name: str) -> None:
        try:
            self.client.reactions_add(channel=channel, timestamp=ts, name=name)
        except SlackApiError as exc:
            if exc.response.get("error") == "already_reacted":
                return
            raise NotificationError(f"reactions.add on {channel}/{ts} failed: {exc}") from exc
        except (SlackClientError, OSError) as exc:
            raise NotificationError(f"reactions.add on {channel}/{ts} failed: {exc}") from exc

    def get_user_display_name(self, user_id: str) -> str:
        try:
            response = self.client.users_info(user=user_id)
        except (SlackClientError, OSError) as exc:
            raise NotificationError(f"users.info for {user_id} failed: {exc}") from exc
        user = response.get("user") or {}
        return user.get("real_name") or user.get("name") or user_id

    def respond(self, response_url: str, text: str) -> None:
        """Reply to a slash command through its ``response_url``."""
        try:
            response = WebhookClient(response_url).send(text=text)
        except (SlackClientError, OSError) as exc:
            raise NotificationError(f"slash command response failed: {exc}") from exc
        if response.status_code >= 400:
            raise NotificationError(f"slash command response failed: HTTP {response.status_code}")


__all__ = ["ChatPlatform", "SlackPlatform"]
