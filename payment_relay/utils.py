"""
Shared helpers for Payment Relay.

Kept small on purpose: the only thing here is posting to a Slack incoming
webhook, used for operational alerts that must not depend on the bot token.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests

WEBHOOK_TIMEOUT_SECONDS = 10


def send_slack_message(webhook_url: str, text: str, blocks: Optional[list] = None) -> None:
    """Send a message to Slack via an incoming webhook.

    Parameters
    ----------
    webhook_url : str
        The incoming webhook URL.
    text : str
        Message text; also the notification fallback when ``blocks`` are given.
    blocks : list, optional
        Block Kit blocks.
    """
    payload: Dict[str, Any] = {"text": text}
    if blocks:
        payload["blocks"] = blocks
    response = requests.post(webhook_url, json=payload, timeout=WEBHOOK_TIMEOUT_SECONDS)
    response.raise_for_status()
