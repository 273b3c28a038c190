"""
Slack message composition.

Everything here is pure formatting: functions take a payment request (plus
display names) and return Block Kit payloads or message text.  Nothing in
this module talks to Slack or the database.
"""

from __future__ import annotations

import datetime as _dt
from typing import Any, Dict, List, Optional, Sequence

from .models import PaymentRequest, RequestStatus

APPROVE_ACTION_ID = "approve_payment"
REJECT_ACTION_ID = "reject_payment"
ACTION_OUTCOMES = {
    APPROVE_ACTION_ID: RequestStatus.APPROVED.value,
    REJECT_ACTION_ID: RequestStatus.REJECTED.value,
}

CURRENCY_SUFFIX = "원"
DISPLAY_TZ = _dt.timezone(_dt.timedelta(hours=9), "KST")
SEEN_REACTION = "eyes"

FORMAT_HELP_TEXT = (
    "❌ Please check the payment request format.\n\n"
    "*Simple format:*\n`150000 groceries vegetable purchase`\n\n"
    "*Detailed format:*\n```\n[payment request]\namount: 150,000원\ncategory: groceries\n"
    "content: vegetable purchase\nvendor: Green Farm\n```"
)
COMMAND_USAGE_TEXT = (
    "❌ Usage: `/지급요청 [amount] [category] [description]`\n\n"
    "Example: `/지급요청 150000 groceries vegetable purchase`"
)
SCOPE_ERROR_TEXT = (
    "⚠️ Payment requests cannot be made from this channel. "
    "Please use your store's payment request channel."
)
RETRY_LATER_TEXT = "⚠️ Something went wrong while processing your request. Please try again shortly."


def format_amount(amount: int) -> str:
    return f"{amount:,}{CURRENCY_SUFFIX}"


def format_timestamp(moment: Optional[_dt.datetime]) -> str:
    if moment is None:
        return "-"
    if moment.tzinfo is None:
        # SQLite hands back naive values; they are stored as UTC.
        moment = moment.replace(tzinfo=_dt.timezone.utc)
    return moment.astimezone(DISPLAY_TZ).strftime("%Y-%m-%d %H:%M %Z")


def _field(label: str, value: Any) -> Dict[str, str]:
    return {"type": "mrkdwn", "text": f"*{label}:*\n{value}"}


def approval_card(
    request: PaymentRequest,
    store_name: str,
    requester_name: str,
    vendor_name: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the interactive card posted to the approval channel.

    The two buttons carry the request id as their value and nothing else.
    """
    blocks: List[Dict[str, Any]] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": "📋 New payment request", "emoji": True},
        },
        {
            "type": "section",
            "fields": [
                _field("🏪 Store", store_name),
                _field("👤 Requester", requester_name),
                _field("💰 Amount", format_amount(request.amount)),
                _field("📁 Category", request.category),
            ],
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*📝 Description:*\n{request.description}"},
        },
    ]
    if vendor_name:
        blocks.append(
            {
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": f"🏢 Vendor: {vendor_name}"}],
            }
        )
    blocks.append(
        {
            "type": "actions",
            "block_id": f"approval_{request.id}",
            "elements": [
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "✅ Approve", "emoji": True},
                    "style": "primary",
                    "action_id": APPROVE_ACTION_ID,
                    "value": str(request.id),
                },
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "❌ Reject", "emoji": True},
                    "style": "danger",
                    "action_id": REJECT_ACTION_ID,
                    "value": str(request.id),
                },
            ],
        }
    )
    return {
        "text": f"New payment request: {store_name} - {format_amount(request.amount)}",
        "blocks": blocks,
    }


def receipt_acknowledgement(request: PaymentRequest) -> str:
    return (
        "✅ Your payment request has been received.\n\n"
        f"💰 Amount: {format_amount(request.amount)}\n"
        f"📁 Category: {request.category}\n"
        f"📝 Description: {request.description}\n\n"
        "It is waiting for approval. We'll let you know once it's decided!"
    )


def _decision_label(request: PaymentRequest) -> str:
    if request.is_pending:
        return "⏳ Pending"
    if request.status == RequestStatus.APPROVED.value:
        return "✅ Approved"
    return "❌ Rejected"


def decided_card(
    original_blocks: Optional[Sequence[Dict[str, Any]]],
    request: PaymentRequest,
) -> Dict[str, Any]:
    """Return the approval card with its buttons removed and a decision stamp added."""
    label = _decision_label(request)
    blocks = [dict(block) for block in (original_blocks or []) if block.get("type") != "actions"]
    if not blocks:
        blocks.append(
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f"*{format_amount(request.amount)}* · {request.category}\n{request.description}",
                },
            }
        )
    emoji, word = label.split(" ", 1)
    blocks.append(
        {
            "type": "context",
            "elements": [
                {
                    "type": "mrkdwn",
                    "text": f"{emoji} *{word}* by {request.processed_by} ({format_timestamp(request.processed_at)})",
                }
            ],
        }
    )
    return {"text": f"{label} - {format_amount(request.amount)}", "blocks": blocks}


def outcome_message(request: PaymentRequest) -> str:
    if request.status == RequestStatus.APPROVED.value:
        return (
            "✅ *Your payment request has been approved!*\n\n"
            f"💰 Amount: {format_amount(request.amount)}\n"
            f"📝 Description: {request.description}\n"
            f"⏰ Approved at: {format_timestamp(request.processed_at)}"
        )
    return (
        "❌ *Your payment request has been rejected.*\n\n"
        f"💰 Amount: {format_amount(request.amount)}\n"
        f"📝 Description: {request.description}\n"
        f"⏰ Processed at: {format_timestamp(request.processed_at)}\n\n"
        "If you have any questions, please contact your manager."
    )


__all__ = [
    "APPROVE_ACTION_ID",
    "REJECT_ACTION_ID",
    "ACTION_OUTCOMES",
    "SEEN_REACTION",
    "FORMAT_HELP_TEXT",
    "COMMAND_USAGE_TEXT",
    "SCOPE_ERROR_TEXT",
    "RETRY_LATER_TEXT",
    "format_amount",
    "format_timestamp",
    "approval_card",
    "receipt_acknowledgement",
    "decided_card",
    "outcome_message",
]
