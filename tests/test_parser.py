"""
Tests for the free-text payment request parser.

Each matcher is exercised on its own and through :func:`parse`, which must
honour the fixed priority order and never apply the minimum amount itself.
"""

import pytest

from payment_relay.parser import (
    DEFAULT_CATEGORY,
    ParsedRequest,
    check_amount,
    looks_like_request,
    match_keyword_amount_first,
    match_keyword_vendor_first,
    match_labeled,
    match_simple,
    parse,
    parse_amount,
)


def test_simple_form():
    assert parse("150000 groceries vegetable purchase") == ParsedRequest(
        amount=150000, category="groceries", description="vegetable purchase", vendor_name=None
    )


@pytest.mark.parametrize(
    "text, amount, category, description",
    [
        ("1,250,000 식자재 채소류 구매", 1250000, "식자재", "채소류 구매"),
        ("12,345,678 supplies toner and paper", 12345678, "supplies", "toner and paper"),
        ("  150000   groceries   vegetable  purchase  ", 150000, "groceries", "vegetable  purchase"),
    ],
)
def test_simple_form_splits_on_first_whitespace(text, amount, category, description):
    parsed = match_simple(text)
    assert parsed is not None
    assert (parsed.amount, parsed.category, parsed.description) == (amount, category, description)
    assert parsed.vendor_name is None


def test_simple_form_requires_letter_category():
    assert match_simple("150000 2x boxes") is None


def test_labeled_form_from_english_labels():
    parsed = parse("amount: 150,000원\ncategory: groceries\ncontent: vegetable purchase")
    assert parsed == ParsedRequest(amount=150000, category="groceries", description="vegetable purchase")


def test_labeled_form_from_korean_labels():
    parsed = parse("[지급요청]\n금액: 150,000원\n카테고리: 식자재\n내용: 채소류 구매\n거래처: 그린팜")
    assert parsed.amount == 150000
    assert parsed.category == "식자재"
    assert parsed.description == "채소류 구매"
    assert parsed.vendor_name == "그린팜"


def test_labeled_form_ignores_label_order():
    parsed = parse("vendor: Green Farm\ncontent: lettuce\namount: 32,000\ncategory: produce")
    assert parsed.amount == 32000
    assert parsed.category == "produce"
    assert parsed.description == "lettuce"
    assert parsed.vendor_name == "Green Farm"


def test_labeled_form_defaults():
    text = "amount 50000 please pay the gas bill"
    parsed = parse(text)
    assert parsed.amount == 50000
    assert parsed.category == DEFAULT_CATEGORY
    assert parsed.description == text
    assert parsed.vendor_name is None


def test_labeled_form_truncates_fallback_description():
    text = "금액: 20000\n" + "x" * 200
    parsed = match_labeled(text)
    assert len(parsed.description) == 100
    assert parsed.description.startswith("금액: 20000")


def test_labeled_form_requires_amount():
    assert match_labeled("category: groceries\ncontent: vegetables") is None
    assert match_labeled("150000 groceries vegetables") is None


def test_keyword_amount_first_with_vendor():
    parsed = parse("payment request 150,000원 @GreenFarm vegetables for the week")
    assert parsed == ParsedRequest(
        amount=150000,
        category=DEFAULT_CATEGORY,
        description="vegetables for the week",
        vendor_name="GreenFarm",
    )


def test_keyword_amount_first_with_currency_word():
    parsed = match_keyword_amount_first("지급요청 45,000 won 가스비")
    assert parsed.amount == 45000
    assert parsed.description == "가스비"
    assert parsed.vendor_name is None


def test_keyword_amount_first_without_description_falls_back_to_text():
    parsed = parse("Payment Request 30000")
    assert parsed.amount == 30000
    assert parsed.description == "Payment Request 30000"


def test_keyword_vendor_first():
    parsed = parse("지급요청 그린팜 150000원 채소 구매")
    assert parsed.amount == 150000
    assert parsed.vendor_name == "그린팜"
    assert parsed.description == "채소 구매"
    assert match_keyword_amount_first("지급요청 그린팜 150000원 채소 구매") is None


def test_keyword_forms_do_not_swallow_labeled_requests():
    text = "[지급요청]\n금액: 150,000원\n카테고리: 식자재\n내용: 채소류 구매"
    assert match_keyword_amount_first(text) is None
    assert match_keyword_vendor_first(text) is None


def test_colon_less_labels_after_trigger_word():
    text = "지급요청\n금액 150,000원\n카테고리 식자재\n내용 채소 구매"
    assert match_keyword_vendor_first(text) is None
    assert parse(text) == ParsedRequest(amount=150000, category="식자재", description="채소 구매")


def test_single_line_colon_less_labels_after_trigger_word():
    parsed = parse("payment request amount 150000 category groceries content vegetables")
    assert parsed == ParsedRequest(amount=150000, category="groceries", description="vegetables")


def test_keyword_amount_followed_by_labeled_fields():
    text = "지급요청 150000원\n카테고리: 식자재\n내용: 채소 구매"
    assert match_keyword_amount_first(text) is None
    assert parse(text) == ParsedRequest(amount=150000, category="식자재", description="채소 구매")


def test_keyword_head_vendor_survives_labeled_fields():
    parsed = parse("지급요청 그린팜 150000원\n카테고리: 식자재\n내용: 채소")
    assert parsed.amount == 150000
    assert parsed.category == "식자재"
    assert parsed.vendor_name == "그린팜"


@pytest.mark.parametrize("text", ["hello there", "", "   ", None, "지급요청 please"])
def test_unrecognised_text(text):
    assert parse(text) is None


def test_small_amounts_parse_but_fail_the_minimum():
    parsed = parse("500 snacks coffee beans")
    assert parsed.amount == 500
    assert check_amount(parsed, 1000) is False
    assert check_amount(parse("1000 snacks coffee beans"), 1000) is True
    assert check_amount(None, 1000) is False


def test_parse_uses_given_matchers_in_order():
    calls = []

    def first(text):
        calls.append("first")
        return None

    def second(text):
        calls.append("second")
        return ParsedRequest(amount=1, category="c", description="d")

    def third(text):  # pragma: no cover - must not be reached
        calls.append("third")
        return None

    assert parse("anything", matchers=(first, second, third)).amount == 1
    assert calls == ["first", "second"]


def test_parse_amount_strips_separators():
    assert parse_amount("1,000,000") == 1000000


@pytest.mark.parametrize(
    "text, expected",
    [
        ("지급요청 150000 식자재", True),
        ("지급 요청 드립니다", True),
        ("Payment Request for gas", True),
        ("150,000 groceries", True),
        ("amount: 5000", False),
        ("2024년 매출 정리", False),
        ("hello", False),
        ("", False),
    ],
)
def test_looks_like_request(text, expected):
    assert looks_like_request(text) is expected
