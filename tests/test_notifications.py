import copy
import datetime as dt

from payment_relay import notifications
from payment_relay.models import PaymentRequest


def _request(**overrides):
    fields = dict(
        id="8d4f6c1e-0000-4000-8000-000000000001",
        store_id=1,
        vendor_id=None,
        requester_name="Kim Minji",
        amount=1250000,
        category="groceries",
        description="vegetable purchase",
        status="pending",
        origin_channel_id="C001",
        origin_message_ts="1700000000.000100",
    )
    fields.update(overrides)
    return PaymentRequest(**fields)


def test_format_amount_uses_thousands_separators():
    assert notifications.format_amount(1250000) == "1,250,000원"
    assert notifications.format_amount(1000) == "1,000원"


def test_format_timestamp_shows_kst():
    moment = dt.datetime(2026, 10, 17, 3, 30, tzinfo=dt.timezone.utc)
    assert notifications.format_timestamp(moment) == "2026-10-17 12:30 KST"
    assert notifications.format_timestamp(moment.replace(tzinfo=None)) == "2026-10-17 12:30 KST"
    assert notifications.format_timestamp(None) == "-"


def test_approval_card_has_two_actions_carrying_the_id():
    request = _request()
    card = notifications.approval_card(request, "Pungro Black", "Kim Minji")
    assert card["text"] == "New payment request: Pungro Black - 1,250,000원"
    actions = [block for block in card["blocks"] if block["type"] == "actions"]
    assert len(actions) == 1
    buttons = actions[0]["elements"]
    assert [b["action_id"] for b in buttons] == ["approve_payment", "reject_payment"]
    assert {b["value"] for b in buttons} == {request.id}
    assert actions[0]["block_id"] == f"approval_{request.id}"
    fields = card["blocks"][1]["fields"]
    assert any("Pungro Black" in f["text"] for f in fields)
    assert any("1,250,000원" in f["text"] for f in fields)


def test_approval_card_mentions_vendor_only_when_given():
    request = _request(vendor_id=2)
    without = notifications.approval_card(request, "Pungro Black", "Kim Minji")
    with_vendor = notifications.approval_card(request, "Pungro Black", "Kim Minji", vendor_name="Green Farm")
    assert len(with_vendor["blocks"]) == len(without["blocks"]) + 1
    assert "Green Farm" in str(with_vendor["blocks"])


def test_decided_card_drops_buttons_and_stamps_decision():
    request = _request()
    original = notifications.approval_card(request, "Pungro Black", "Kim Minji")["blocks"]
    snapshot = copy.deepcopy(original)
    request.status = "approved"
    request.processed_by = "alice"
    request.processed_at = dt.datetime(2026, 10, 17, 3, 30, tzinfo=dt.timezone.utc)

    card = notifications.decided_card(original, request)

    assert original == snapshot
    assert all(block["type"] != "actions" for block in card["blocks"])
    stamp = card["blocks"][-1]
    assert stamp["type"] == "context"
    assert stamp["elements"][0]["text"] == "✅ *Approved* by alice (2026-10-17 12:30 KST)"
    assert card["text"] == "✅ Approved - 1,250,000원"


def test_decided_card_without_original_blocks():
    request = _request(status="rejected", processed_by="bob")
    card = notifications.decided_card(None, request)
    assert card["text"] == "❌ Rejected - 1,250,000원"
    assert card["blocks"][0]["type"] == "section"
    assert "*Rejected* by bob" in card["blocks"][-1]["elements"][0]["text"]


def test_outcome_messages():
    approved = notifications.outcome_message(_request(status="approved"))
    rejected = notifications.outcome_message(_request(status="rejected"))
    assert "approved" in approved
    assert "1,250,000원" in approved
    assert "rejected" in rejected
    assert "contact your manager" in rejected


def test_receipt_acknowledgement():
    text = notifications.receipt_acknowledgement(_request())
    assert "1,250,000원" in text
    assert "groceries" in text
    assert "vegetable purchase" in text


def test_decided_card_for_a_pending_request():
    card = notifications.decided_card(None, _request())
    assert card["text"] == "⏳ Pending - 1,250,000원"
    assert card["blocks"][-1]["elements"][0]["text"].startswith("⏳ *Pending*")
