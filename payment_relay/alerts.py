"""
Operational alerts.

Some failures happen after Slack has already been answered (a decision
button was acknowledged, a card could not be posted for a saved request).
Nobody is waiting to see an error message, so they are emitted here instead:
always logged, and mirrored to an ops webhook channel when one is configured.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from .utils import send_slack_message

logger = logging.getLogger(__name__)

DECISION_FAILED = "decision_failed"
NOTIFICATION_FAILED = "notification_failed"
APPROVAL_MESSAGE_UNLINKED = "approval_message_unlinked"


@dataclass(frozen=True)
class Alert:
    event: str
    details: Dict[str, Any] = field(default_factory=dict)

    def summary(self) -> str:
        parts = " ".join(f"{key}={value}" for key, value in sorted(self.details.items()))
        return f"[payment-relay] {self.event} {parts}".rstrip()


class OpsAlerter:
    def __init__(self, webhook_url: Optional[str] = None) -> None:
        self.webhook_url = webhook_url

    def emit(self, event: str, **details: Any) -> Alert:
        alert = Alert(event=event, details=details)
        logger.error("ALERT %s", alert.summary())
        if self.webhook_url:
            try:
                send_slack_message(self.webhook_url, f"🚨 {alert.summary()}")
            except requests.RequestException as exc:
                logger.warning("Could not deliver alert %s to ops webhook: %s", event, exc)
        return alert


__all__ = ["Alert", "OpsAlerter", "DECISION_FAILED", "NOTIFICATION_FAILED", "APPROVAL_MESSAGE_UNLINKED"]
