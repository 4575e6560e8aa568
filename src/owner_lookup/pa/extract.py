from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence, Tuple


Path = Tuple[str, ...]

# Ordered: the first non-empty, non-placeholder value wins.
OWNER_NAME_PATHS: Sequence[Path] = (
    ("assessment", "owner", "owner1", "fullName"),
    ("assessment", "owner", "owner1", "name"),
    ("owner", "name"),
    ("owner", "owner1", "name"),
    ("owner", "owner1", "fullName"),
    ("owner1", "name"),
    ("owner1", "fullName"),
    ("owner", "fullName"),
)

# (first-name path, last-name path) pairs tried after the direct paths above.
OWNER_NAME_PAIRS: Sequence[Tuple[Path, Path]] = (
    (("assessment", "owner", "owner1", "firstNameAndMi"), ("assessment", "owner", "owner1", "lastName")),
    (("owner", "firstName"), ("owner", "lastName")),
    (("owner1", "firstName"), ("owner1", "lastName")),
)

MAILING_ONE_LINE_PATHS: Sequence[Path] = (
    ("assessment", "owner", "mailingAddressOneLine"),
    ("owner", "mailingAddressOneLine"),
    ("mailingAddressOneLine",),
)

MAILING_OBJECT_PATHS: Sequence[Path] = (
    ("assessment", "owner", "mailingAddress"),
    ("owner", "mailingAddress"),
    ("owner", "owner1", "mailingAddress"),
    ("owner1", "mailingAddress"),
    ("mailingAddress",),
)

MAILING_PART_KEYS: Sequence[Sequence[str]] = (
    ("address1", "addressOne", "line1", "street"),
    ("city", "locality"),
    ("state", "stateFips"),
    ("zip", "zipCode", "postal1", "postalCode"),
)

_PLACEHOLDER_EXACT = {"null", "none"}
_PLACEHOLDER_SUBSTRINGS = ("NOT AVAILABLE", "AVAILABLE FROM DATA SOURCE")


def dig(node: Any, path: Sequence[str]) -> Any:
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def is_placeholder(value: str) -> bool:
    text = value.strip()
    if not text or text.lower() in _PLACEHOLDER_EXACT:
        return True
    upper = text.upper()
    return any(s in upper for s in _PLACEHOLDER_SUBSTRINGS)


def _usable(value: Any) -> Optional[str]:
    if isinstance(value, str) and not is_placeholder(value):
        return value.strip()
    return None


def find_property(data: Any) -> Optional[dict]:
    """Locate the property node in a provider response."""

    if not isinstance(data, dict):
        return None
    prop = data.get("property")
    if isinstance(prop, list):
        return prop[0] if prop and isinstance(prop[0], dict) else None
    if isinstance(prop, dict):
        return prop
    props = data.get("properties")
    if isinstance(props, list) and props and isinstance(props[0], dict):
        return props[0]
    nested = dig(data, ("data", "property"))
    if isinstance(nested, list):
        return nested[0] if nested and isinstance(nested[0], dict) else None
    if isinstance(nested, dict):
        return nested
    return None


def _first(strategies: List[Callable[[dict], Any]], prop: dict) -> Optional[str]:
    for strategy in strategies:
        value = _usable(strategy(prop))
        if value:
            return value
    return None


def _pair(first: Path, last: Path) -> Callable[[dict], Optional[str]]:
    def join(prop: dict) -> Optional[str]:
        a, b = _usable(dig(prop, first)), _usable(dig(prop, last))
        if a and b:
            return f"{a} {b}"
        return None

    return join


def _compose_mailing(path: Path) -> Callable[[dict], Optional[str]]:
    def compose(prop: dict) -> Optional[str]:
        obj = dig(prop, path)
        if not isinstance(obj, dict):
            return None
        parts = []
        for keys in MAILING_PART_KEYS:
            for key in keys:
                value = obj.get(key)
                if value not in (None, "") and _usable(str(value)):
                    parts.append(str(value).strip())
                    break
        return ", ".join(parts) or None

    return compose


OWNER_NAME_STRATEGIES: List[Callable[[dict], Any]] = [
    *[(lambda p, path=path: dig(p, path)) for path in OWNER_NAME_PATHS[:2]],
    _pair(*OWNER_NAME_PAIRS[0]),
    *[(lambda p, path=path: dig(p, path)) for path in OWNER_NAME_PATHS[2:]],
    *[_pair(first, last) for first, last in OWNER_NAME_PAIRS[1:]],
]

MAILING_STRATEGIES: List[Callable[[dict], Any]] = [
    *[(lambda p, path=path: dig(p, path)) for path in MAILING_ONE_LINE_PATHS],
    *[_compose_mailing(path) for path in MAILING_OBJECT_PATHS],
]


def extract_owner_name(prop: Optional[dict]) -> Optional[str]:
    if not isinstance(prop, dict):
        return None
    return _first(OWNER_NAME_STRATEGIES, prop)


def extract_mailing_address(prop: Optional[dict]) -> Optional[str]:
    if not isinstance(prop, dict):
        return None
    return _first(MAILING_STRATEGIES, prop)
