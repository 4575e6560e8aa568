from __future__ import annotations

import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List


SENTINELS = frozenset(
    {
        "",
        "null",
        "none",
        "no data",
        "no email found",
        "no email addresses found",
        "no phone available",
        "n/a",
        "undefined",
    }
)

_SPLIT_RE = re.compile(r"[,\n]")
_PHONE_LABEL_RE = re.compile(r"^\s*(landline|mobile)\s*:\s*", re.IGNORECASE)
_NON_DIGIT_RE = re.compile(r"\D")
_FORMATTED_PHONE_RE = re.compile(r"^[\d\s()+\-.]+$")


def is_sentinel(value: Any) -> bool:
    if value is None:
        return True
    return str(value).strip().lower() in SENTINELS


def _number_to_text(value: Any) -> str:
    # Decimal keeps large integers exact and avoids "5.551234567e+09".
    if isinstance(value, bool):
        return str(value)
    try:
        d = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, ValueError):
        return str(value)
    if d == d.to_integral_value():
        return format(d.to_integral_value(), "f")
    return format(d, "f")


def _flatten(raw: Any) -> Iterable[str]:
    if raw is None:
        return
    if isinstance(raw, (list, tuple)):
        for item in raw:
            yield from _flatten(item)
        return
    if isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool):
        yield _number_to_text(raw)
        return
    text = str(raw).strip()
    if is_sentinel(text):
        return
    if text[:1] in ("[", '"') or text[:1].isdigit():
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None
        else:
            if isinstance(parsed, (list, tuple)):
                yield from _flatten(parsed)
                return
            if isinstance(parsed, str):
                yield from _flatten(parsed)
                return
    for part in _SPLIT_RE.split(text):
        part = part.strip()
        if not is_sentinel(part):
            yield part


def _looks_like_email(value: str) -> bool:
    at = value.find("@")
    return 0 < at < len(value) - 1


def parse_emails(raw: Any) -> List[str]:
    """Normalize any stored email shape to a de-duplicated list."""

    out: List[str] = []
    seen = set()
    for item in _flatten(raw):
        item = item.strip()
        if is_sentinel(item) or not _looks_like_email(item):
            continue
        key = item.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(item)
    return out


def format_phone(value: str) -> str:
    digits = _NON_DIGIT_RE.sub("", value or "")
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    if len(digits) == 11 and digits[0] == "1":
        return f"+1 ({digits[1:4]}) {digits[4:7]}-{digits[7:]}"
    if _FORMATTED_PHONE_RE.match(value or ""):
        return value.strip()
    return digits


def parse_phones(raw: Any, *, min_digits: int = 7, reformat: bool = True) -> List[str]:
    """Normalize any stored phone shape to a de-duplicated list.

    Accepts lists, JSON arrays, comma/newline separated text, bare numbers and
    ``Landline: ...`` style labels.
    """

    out: List[str] = []
    seen = set()
    for item in _flatten(raw):
        item = _PHONE_LABEL_RE.sub("", item).strip()
        if is_sentinel(item):
            continue
        digits = _NON_DIGIT_RE.sub("", item)
        if len(digits) < max(1, min_digits):
            continue
        phone = format_phone(item) if reformat else item
        if phone in seen:
            continue
        seen.add(phone)
        out.append(phone)
    return out


def merge_unique(existing: Iterable[str], extra: Iterable[str], *, casefold: bool = False) -> List[str]:
    out: List[str] = []
    seen = set()
    for item in list(existing) + list(extra):
        key = item.lower() if casefold else item
        if not item or key in seen:
            continue
        seen.add(key)
        out.append(item)
    return out
