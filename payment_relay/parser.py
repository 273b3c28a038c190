"""
Free-text payment request parser.

Staff type requests into their store channel in whatever shape they like.
:func:`parse` tries an ordered list of independent matchers and returns the
result of the first one that recognises the text:

1. simple positional form   ``150000 groceries vegetable purchase``
2. keyword, amount first     ``payment request 150,000원 @GreenFarm vegetables``
3. keyword, vendor first     ``지급요청 GreenFarm 150000 vegetables``
4. labeled fields            ``amount: 150,000원 / category: ... / content: ...``

Each matcher is a plain function ``str -> ParsedRequest | None`` so it can be
tested on its own.  The parser never enforces the minimum amount; callers do
that with :func:`check_amount` so the parser stays usable for previews.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional, Sequence

DEFAULT_CATEGORY = "other"
DESCRIPTION_FALLBACK_LENGTH = 100

TRIGGER_PHRASES = ("지급요청", "지급 요청", "payment request")

_AMOUNT = r"([0-9][0-9,]*)"
_CURRENCY = r"(?:\s*(?:원|won|krw)\b)?"
_KEYWORD_PREFIX = r"^\s*\[?\s*(?:지급\s*요청|payment\s*request)\s*\]?\s*[:：]?\s*"

_SIMPLE_RE = re.compile(r"^([0-9][0-9,]*)\s+([가-힣A-Za-z]+)\s+(.+)$")
_KEYWORD_AMOUNT_FIRST_RE = re.compile(
    _KEYWORD_PREFIX + _AMOUNT + _CURRENCY + r"(?:\s+@(\S+))?(?:\s+(.+?))?\s*$",
    re.IGNORECASE | re.DOTALL,
)
_KEYWORD_VENDOR_FIRST_RE = re.compile(
    _KEYWORD_PREFIX + r"([^\s:：0-9@\[\]][^\s:：]*)\s+" + _AMOUNT + _CURRENCY + r"(?:\s+(.+?))?\s*$",
    re.IGNORECASE | re.DOTALL,
)
_LABEL_RES = {
    "amount": re.compile(r"(?:금액|amount)[:：\s]*([0-9][0-9,]*)\s*원?", re.IGNORECASE),
    "category": re.compile(r"(?:카테고리|category)[:：\s]*([가-힣a-zA-Z]+)", re.IGNORECASE),
    "description": re.compile(r"(?:내용|content|description)[:：\s]*(.+?)(?:\n|$)", re.IGNORECASE),
    "vendor": re.compile(r"(?:거래처|vendor)[:：\s]*(.+?)(?:\n|$)", re.IGNORECASE),
}
_LABEL_WORD_RE = re.compile(
    r"(?:금액|amount|카테고리|category|내용|content|description|거래처|vendor)", re.IGNORECASE
)
# A field label inside a keyword request's remainder means the labeled matcher owns it.
_FIELD_LABEL_RE = re.compile(
    r"(?:^|\s)(?:카테고리|category|내용|content|description|거래처|vendor)(?:[:：]|\s)",
    re.IGNORECASE,
)
# Trigger-word head of a labeled request whose amount carries no label.
_KEYWORD_HEAD_RE = re.compile(
    _KEYWORD_PREFIX + r"(?:([^\s:：0-9@\[\]][^\s:：]*)\s+)?" + _AMOUNT + _CURRENCY + r"(?:\s+@(\S+))?",
    re.IGNORECASE,
)
_LEADING_AMOUNT_RE = re.compile(r"^[0-9][0-9,]*\s+")


@dataclass(frozen=True)
class ParsedRequest:
    amount: int
    category: str
    description: str
    vendor_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


Matcher = Callable[[str], Optional[ParsedRequest]]


def parse_amount(raw: str) -> int:
    """Strip thousands separators and return the integer amount."""
    return int(raw.replace(",", ""))


def _fallback_description(text: str) -> str:
    return text.strip()[:DESCRIPTION_FALLBACK_LENGTH]


def _is_label_word(token: Optional[str]) -> bool:
    return bool(token) and _LABEL_WORD_RE.fullmatch(token) is not None


def _has_field_labels(remainder: Optional[str]) -> bool:
    return bool(remainder) and _FIELD_LABEL_RE.search(remainder) is not None


def match_simple(text: str) -> Optional[ParsedRequest]:
    m = _SIMPLE_RE.match(text.strip())
    if not m:
        return None
    return ParsedRequest(
        amount=parse_amount(m.group(1)),
        category=m.group(2),
        description=m.group(3),
    )


def match_keyword_amount_first(text: str) -> Optional[ParsedRequest]:
    m = _KEYWORD_AMOUNT_FIRST_RE.match(text)
    if not m:
        return None
    amount, vendor, description = m.groups()
    if _has_field_labels(description):
        return None
    return ParsedRequest(
        amount=parse_amount(amount),
        category=DEFAULT_CATEGORY,
        description=description.strip() if description else _fallback_description(text),
        vendor_name=vendor,
    )


def match_keyword_vendor_first(text: str) -> Optional[ParsedRequest]:
    m = _KEYWORD_VENDOR_FIRST_RE.match(text)
    if not m:
        return None
    vendor, amount, description = m.groups()
    if _is_label_word(vendor) or _has_field_labels(description):
        return None
    return ParsedRequest(
        amount=parse_amount(amount),
        category=DEFAULT_CATEGORY,
        description=description.strip() if description else _fallback_description(text),
        vendor_name=vendor,
    )


def match_labeled(text: str) -> Optional[ParsedRequest]:
    found = {name: regex.search(text) for name, regex in _LABEL_RES.items()}
    head_vendor = None
    if found["amount"]:
        amount = found["amount"].group(1)
    else:
        # "지급요청 [vendor] 150000원" followed by labeled fields
        head = _KEYWORD_HEAD_RE.match(text)
        if not head or not _has_field_labels(text[head.end():]):
            return None
        token, amount, at_vendor = head.groups()
        head_vendor = at_vendor or (None if _is_label_word(token) else token)
    category = found["category"]
    description = found["description"].group(1).strip() if found["description"] else ""
    vendor = found["vendor"].group(1).strip() if found["vendor"] else ""
    return ParsedRequest(
        amount=parse_amount(amount),
        category=category.group(1) if category else DEFAULT_CATEGORY,
        description=description or _fallback_description(text),
        vendor_name=vendor or head_vendor,
    )


# Priority order matters: the first matcher that recognises the text wins.
MATCHERS: Sequence[Matcher] = (
    match_simple,
    match_keyword_amount_first,
    match_keyword_vendor_first,
    match_labeled,
)


def parse(text: Optional[str], matchers: Sequence[Matcher] = MATCHERS) -> Optional[ParsedRequest]:
    """Return the structured request for ``text`` or ``None`` if nothing matched."""
    if not text or not text.strip():
        return None
    for matcher in matchers:
        result = matcher(text)
        if result is not None:
            return result
    return None


def looks_like_request(text: Optional[str]) -> bool:
    """Cheap pre-filter for passive channel messages, run before :func:`parse`."""
    if not text:
        return False
    lowered = text.lower()
    if any(phrase in lowered for phrase in TRIGGER_PHRASES):
        return True
    return bool(_LEADING_AMOUNT_RE.match(text))


def check_amount(parsed: Optional[ParsedRequest], minimum: int) -> bool:
    return parsed is not None and parsed.amount >= minimum


__all__ = [
    "ParsedRequest",
    "MATCHERS",
    "DEFAULT_CATEGORY",
    "parse",
    "parse_amount",
    "looks_like_request",
    "check_amount",
    "match_simple",
    "match_keyword_amount_first",
    "match_keyword_vendor_first",
    "match_labeled",
]
