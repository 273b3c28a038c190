"""
Inbound event routing.

Three kinds of Slack deliveries reach the relay:

* a plain message in a store channel, scanned passively for requests;
* the payment request slash command;
* an Approve/Reject button press on an approval card.

The HTTP layer acknowledges each delivery before calling in here, so every
handler is free to take its time with Slack and the database.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from . import notifications
from .alerts import APPROVAL_MESSAGE_UNLINKED, DECISION_FAILED, NOTIFICATION_FAILED, OpsAlerter
from .channels import ChannelDirectory, StoreInfo
from .config import DEFAULT_MIN_AMOUNT
from .errors import NotificationError, PersistenceError
from .models import PaymentRequest
from .parser import ParsedRequest, check_amount, looks_like_request, parse
from .slack_client import ChatPlatform
from .store import RequestStore
from .vendors import VendorResolver

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(
        self,
        *,
        directory: ChannelDirectory,
        resolver: VendorResolver,
        store: RequestStore,
        platform: ChatPlatform,
        approval_channel: str,
        alerter: Optional[OpsAlerter] = None,
        min_amount: int = DEFAULT_MIN_AMOUNT,
    ) -> None:
        self.directory = directory
        self.resolver = resolver
        self.store = store
        self.platform = platform
        self.approval_channel = approval_channel
        self.alerter = alerter or OpsAlerter()
        self.min_amount = min_amount

    def refresh_channels(self) -> bool:
        return self.directory.refresh()

    # -- shared pipeline -------------------------------------------------

    def _submit(
        self,
        parsed: ParsedRequest,
        store_info: StoreInfo,
        requester_name: str,
        channel_id: str,
        message_ts: Optional[str],
    ) -> PaymentRequest:
        vendor_id = self.resolver.resolve(parsed.vendor_name)
        return self.store.create(
            store_id=store_info.store_id,
            vendor_id=vendor_id,
            requester_name=requester_name,
            amount=parsed.amount,
            category=parsed.category,
            description=parsed.description,
            origin_channel_id=channel_id,
            origin_message_ts=message_ts,
        )

    def _post_approval_card(
        self,
        request: PaymentRequest,
        store_info: StoreInfo,
        requester_name: str,
        vendor_name: Optional[str],
    ) -> str:
        card = notifications.approval_card(
            request,
            store_info.name,
            requester_name,
            vendor_name=vendor_name if request.vendor_id is not None else None,
        )
        try:
            card_ts = self.platform.post_message(self.approval_channel, card["text"], blocks=card["blocks"])
        except NotificationError as exc:
            # The request is saved but nobody can approve it until this is fixed by hand.
            self.alerter.emit(NOTIFICATION_FAILED, request_id=request.id, step="approval_card", error=str(exc))
            raise
        logger.info("Approval card %s posted for request %s", card_ts, request.id)
        if not self.store.attach_approval_message(request.id, card_ts):
            self.alerter.emit(APPROVAL_MESSAGE_UNLINKED, request_id=request.id, message_ts=card_ts)
        return card_ts

    # -- passive messages ------------------------------------------------

    def handle_message(self, event: Dict[str, Any]) -> Optional[PaymentRequest]:
        """Scan a channel message and turn it into a payment request if it is one."""
        if event.get("bot_id") or event.get("subtype"):
            return None
        channel_id = event.get("channel")
        store_info = self.directory.lookup(channel_id)
        if store_info is None:
            return None
        text = event.get("text") or ""
        if not looks_like_request(text):
            return None

        message_ts = event.get("ts")
        logger.info("Payment request message received from %s", store_info.name)
        try:
            parsed = parse(text)
            if not check_amount(parsed, self.min_amount):
                self.platform.post_message(channel_id, notifications.FORMAT_HELP_TEXT, thread_ts=message_ts)
                return None
            requester_name = self.platform.get_user_display_name(event.get("user"))
            request = self._submit(parsed, store_info, requester_name, channel_id, message_ts)
            self.platform.post_message(
                channel_id, notifications.receipt_acknowledgement(request), thread_ts=message_ts
            )
            self.platform.add_reaction(channel_id, message_ts, notifications.SEEN_REACTION)
            self._post_approval_card(request, store_info, requester_name, parsed.vendor_name)
            return request
        except Exception:
            logger.exception("Message handler failed in channel %s", channel_id)
            self._reply_safely(channel_id, message_ts)
            return None

    def _reply_safely(self, channel_id: str, thread_ts: Optional[str]) -> None:
        try:
            self.platform.post_message(channel_id, notifications.RETRY_LATER_TEXT, thread_ts=thread_ts)
        except NotificationError:
            logger.exception("Could not send retry notice to %s", channel_id)

    # -- slash command ---------------------------------------------------

    def handle_command(self, command: Dict[str, Any]) -> Optional[PaymentRequest]:
        channel_id = command.get("channel_id")
        response_url = command.get("response_url")
        store_info = self.directory.lookup(channel_id)
        if store_info is None:
            self._respond_safely(response_url, notifications.SCOPE_ERROR_TEXT)
            return None

        parsed = parse(command.get("text") or "")
        if not check_amount(parsed, self.min_amount):
            self._respond_safely(response_url, notifications.COMMAND_USAGE_TEXT)
            return None

        requester_name = command.get("user_name") or command.get("user_id") or "unknown"
        try:
            request = self._submit(parsed, store_info, requester_name, channel_id, None)
            self.platform.respond(response_url, notifications.receipt_acknowledgement(request))
            self._post_approval_card(request, store_info, requester_name, parsed.vendor_name)
            return request
        except Exception:
            logger.exception("Command handler failed in channel %s", channel_id)
            self._respond_safely(response_url, notifications.RETRY_LATER_TEXT)
            return None

    def _respond_safely(self, response_url: Optional[str], text: str) -> None:
        if not response_url:
            logger.warning("Slash command without response_url; dropping reply")
            return
        try:
            self.platform.respond(response_url, text)
        except NotificationError:
            logger.exception("Could not reply to slash command")

    # -- approve / reject buttons ----------------------------------------

    def handle_action(self, payload: Dict[str, Any]) -> Optional[PaymentRequest]:
        """Record a reviewer's decision and report it.

        Slack has already been acknowledged, so failures go to the alerter
        rather than back to the user.
        """
        actions = payload.get("actions") or []
        if not actions:
            logger.warning("Interaction payload without actions ignored")
            return None
        action = actions[0]
        action_id = action.get("action_id")
        outcome = notifications.ACTION_OUTCOMES.get(action_id)
        request_id = action.get("value")
        if outcome is None or not request_id:
            logger.warning("Ignoring unknown action %r (value=%r)", action_id, request_id)
            return None

        user = payload.get("user") or {}
        decided_by = user.get("username") or user.get("name") or user.get("id") or "unknown"
        logger.info("Decision %s on request %s by %s", outcome, request_id, decided_by)
        try:
            request = self.store.decide(request_id, outcome, decided_by)
        except PersistenceError as exc:
            self.alerter.emit(DECISION_FAILED, request_id=request_id, outcome=outcome, error=str(exc))
            return None

        # A racing second click gets the first decision back; it must not announce itself.
        applied = request.status == outcome and request.processed_by == decided_by
        message = payload.get("message") or {}
        channel_id = (payload.get("channel") or {}).get("id") or self.approval_channel
        card_ts = message.get("ts") or request.approval_message_ts
        card = notifications.decided_card(message.get("blocks"), request)
        try:
            if card_ts:
                self.platform.update_message(channel_id, card_ts, card["text"], blocks=card["blocks"])
            if applied and request.origin_channel_id:
                self.platform.post_message(
                    request.origin_channel_id,
                    notifications.outcome_message(request),
                    thread_ts=request.origin_message_ts,
                )
        except NotificationError as exc:
            self.alerter.emit(NOTIFICATION_FAILED, request_id=request_id, step="decision", error=str(exc))
        return request


__all__ = ["Dispatcher"]
