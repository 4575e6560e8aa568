import re
from typing import Optional, Sequence, Tuple

from owner_lookup.models import NormalizedAddress, ProviderAddress


_WHITESPACE_RE = re.compile(r"\s+")
_PUNCT_RE = re.compile(r"[^\w\s]", re.UNICODE)

# Comparison-only contractions. Display text keeps its original spelling.
STREET_TYPES = {
    "avenue": "ave",
    "street": "st",
    "road": "rd",
    "drive": "dr",
    "boulevard": "blvd",
    "lane": "ln",
    "place": "pl",
    "court": "ct",
    "circle": "cir",
}
DIRECTIONALS = {"west": "w", "north": "n", "south": "s", "east": "e"}

# Provider (ATTOM) side prefers the short suffix spelling.
PROVIDER_STREET_TYPES = {
    "avenue": "Ave",
    "street": "St",
    "road": "Rd",
    "boulevard": "Blvd",
    "drive": "Dr",
    "lane": "Ln",
    "court": "Ct",
    "place": "Pl",
    "circle": "Cir",
    "parkway": "Pkwy",
}

US_STATES = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT", "delaware": "DE",
    "district of columbia": "DC", "florida": "FL", "georgia": "GA", "hawaii": "HI",
    "idaho": "ID", "illinois": "IL", "indiana": "IN", "iowa": "IA",
    "kansas": "KS", "kentucky": "KY", "louisiana": "LA", "maine": "ME",
    "maryland": "MD", "massachusetts": "MA", "michigan": "MI", "minnesota": "MN",
    "mississippi": "MS", "missouri": "MO", "montana": "MT", "nebraska": "NE",
    "nevada": "NV", "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM",
    "new york": "NY", "north carolina": "NC", "north dakota": "ND", "ohio": "OH",
    "oklahoma": "OK", "oregon": "OR", "pennsylvania": "PA", "puerto rico": "PR",
    "rhode island": "RI", "south carolina": "SC", "south dakota": "SD",
    "tennessee": "TN", "texas": "TX", "utah": "UT", "vermont": "VT",
    "virginia": "VA", "washington": "WA", "west virginia": "WV",
    "wisconsin": "WI", "wyoming": "WY",
}
_STATE_CODES = frozenset(US_STATES.values())

_STREET_NUMBER_RE = re.compile(r"^(\d+)")
_DIRECTIONAL_STREET_RE = re.compile(
    r"^\d+\s+(?:west|w|north|n|south|s|east|e)\s+([a-z0-9]+)"
)
_STREET_RE = re.compile(r"^\d+\s+([a-z0-9]+)")
_ZIP_RE = re.compile(r"^(\d{5})(?:-\d{4})?$")
_ORDINAL_TIGHT_RE = re.compile(r"\b(\d+)(st|nd|rd|th)\b", re.IGNORECASE)
_ORDINAL_SPACED_RE = re.compile(r"\b(\d+)\s+(st|nd|rd|th)\b", re.IGNORECASE)
_PROVIDER_STREET_TYPE_RE = re.compile(
    r"\b(" + "|".join(PROVIDER_STREET_TYPES) + r")\b", re.IGNORECASE
)
_CONTRACTIONS = dict(STREET_TYPES, **DIRECTIONALS)
_STREET_TYPE_WORDS = (
    set(STREET_TYPES)
    | set(STREET_TYPES.values())
    | set(PROVIDER_STREET_TYPES)
    | {v.lower() for v in PROVIDER_STREET_TYPES.values()}
)


def normalize_text(value: Optional[str]) -> str:
    if value is None:
        return ""
    cleaned = _WHITESPACE_RE.sub(" ", str(value)).strip()
    return cleaned.casefold()


def _expected_suffix(number: str) -> str:
    if number[-2:] in ("11", "12", "13"):
        return "th"
    return {"1": "st", "2": "nd", "3": "rd"}.get(number[-1], "th")


def normalize_ordinals(text: str) -> str:
    """Rewrite ordinal street numbers as lower-case, unspaced suffixes.

    ``63Rd``, ``63RD`` and ``63 rd`` all become ``63rd``. The spaced form is
    only joined when the suffix agrees with the number and is followed by a
    street type, punctuation or the end of the text, so ``1234 St Louis`` and
    ``101 St Charles Ave`` keep their saint.
    """

    if not text:
        return ""
    out = _ORDINAL_TIGHT_RE.sub(lambda m: m.group(1) + m.group(2).lower(), text)

    def _join(m: "re.Match[str]") -> str:
        number, suffix = m.group(1), m.group(2).lower()
        if suffix != _expected_suffix(number):
            return m.group(0)
        following = m.string[m.end():].lstrip()
        if following[:1].isalnum():
            word = following.split()[0].strip(".,").lower()
            if word not in _STREET_TYPE_WORDS:
                return m.group(0)
        return number + suffix

    return _ORDINAL_SPACED_RE.sub(_join, out)


def abbreviate_street_types(text: str) -> str:
    if not text:
        return ""
    return _PROVIDER_STREET_TYPE_RE.sub(
        lambda m: PROVIDER_STREET_TYPES[m.group(1).lower()], text
    )


def contract_words(text: str) -> str:
    return " ".join(_CONTRACTIONS.get(word, word) for word in text.split())


def address_key(value: Optional[str]) -> str:
    """Canonical comparison form: lower-case, no punctuation, short suffixes."""

    cleaned = normalize_text(value)
    cleaned = _PUNCT_RE.sub(" ", cleaned)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return contract_words(normalize_ordinals(cleaned))


def state_code(token: Optional[str]) -> str:
    """Return the 2-letter code for a state code or full state name, else ''."""

    t = _WHITESPACE_RE.sub(" ", (token or "").strip().strip(".")).lower()
    if not t:
        return ""
    if len(t) == 2 and t.upper() in _STATE_CODES:
        return t.upper()
    return US_STATES.get(t, "")


def _zip5(token: str) -> str:
    m = _ZIP_RE.match((token or "").strip())
    return m.group(1) if m else ""


def _format_locality(city: str, state: str, zip_code: str) -> str:
    city = city.strip().strip(",")
    if state and zip_code:
        tail = f"{state} {zip_code}"
    else:
        tail = state or zip_code
    if city and tail:
        return f"{city}, {tail}"
    return city or tail


def _split_state_zip(segment: str) -> Tuple[str, str]:
    """Parse ``IL``, ``IL 60601`` or ``Illinois 60601``."""

    tokens = segment.split()
    if not tokens:
        return "", ""
    zip_code = _zip5(tokens[-1])
    if zip_code:
        tokens = tokens[:-1]
    state = state_code(" ".join(tokens))
    if not state:
        return "", ""
    return state, zip_code


def _split_city_state_zip(segment: str) -> Tuple[str, str, str]:
    """Parse ``Chicago IL 60601`` or ``Park Ridge IL`` into its parts."""

    tokens = segment.split()
    zip_code = ""
    if tokens and _zip5(tokens[-1]):
        zip_code = _zip5(tokens[-1])
        tokens = tokens[:-1]
    for width in (2, 1):
        if len(tokens) <= width:
            continue
        state = state_code(" ".join(tokens[-width:]))
        if state:
            return " ".join(tokens[:-width]), state, zip_code
    return "", "", ""


def _split_on_commas(cleaned: str) -> Optional[Tuple[str, str, str, str]]:
    parts = [p.strip() for p in cleaned.split(",") if p.strip()]
    if len(parts) < 2:
        return None

    # Street, City, ST, ZIP
    if len(parts) >= 4 and _zip5(parts[-1]) and state_code(parts[-2]):
        return ", ".join(parts[:-3]), parts[-3], state_code(parts[-2]), _zip5(parts[-1])

    # Street, City, ST [ZIP]
    if len(parts) >= 3:
        state, zip_code = _split_state_zip(parts[-1])
        if state:
            return ", ".join(parts[:-2]), parts[-2], state, zip_code

    # Street, City ST, ZIP
    if len(parts) >= 3 and _zip5(parts[-1]):
        city, state, _ = _split_city_state_zip(parts[-2])
        if state and city:
            return ", ".join(parts[:-2]), city, state, _zip5(parts[-1])

    # Street, City ST [ZIP]
    city, state, zip_code = _split_city_state_zip(parts[-1])
    if state and city:
        return ", ".join(parts[:-1]), city, state, zip_code
    return None


def _split_on_zip(cleaned: str) -> Optional[Tuple[str, str, str, str]]:
    tokens = cleaned.replace(",", " ").split()
    for idx in range(len(tokens) - 1, -1, -1):
        zip_code = _zip5(tokens[idx])
        if not zip_code:
            continue
        if idx < 3:
            return None
        state = state_code(tokens[idx - 1])
        if not state:
            return None
        return " ".join(tokens[: idx - 2]), tokens[idx - 2], state, zip_code
    return None


def _split_on_anchor(
    cleaned: str, anchor_cities: Sequence[str]
) -> Optional[Tuple[str, str, str, str]]:
    for anchor in anchor_cities:
        anchor = (anchor or "").strip()
        if not anchor:
            continue
        m = re.search(r"\b" + re.escape(anchor) + r"\b", cleaned, re.IGNORECASE)
        if not m or m.start() == 0:
            continue
        street = cleaned[: m.start()].strip(" ,")
        rest = cleaned[m.end():].replace(",", " ").split()
        state = state_code(rest[0]) if rest else ""
        if state:
            zip_code = _zip5(rest[1]) if len(rest) > 1 else ""
        else:
            zip_code = _zip5(rest[0]) if rest else ""
        return street, m.group(0), state, zip_code
    return None


def split_for_provider(
    address: Optional[str],
    *,
    anchor_cities: Sequence[str] = ("Chicago",),
    default_locality: str = "",
) -> ProviderAddress:
    """Split a free-text address into the provider's ``address1``/``address2``.

    Attempts, in order: comma-separated segments, a trailing ``City ST ZIP``
    run, a known anchor city, and finally the whole string as ``address1``.
    Never raises; an empty ``address2`` means the locality could not be found.
    """

    cleaned = _WHITESPACE_RE.sub(" ", "" if address is None else str(address)).strip()
    if not cleaned:
        return ProviderAddress(address1="", address2=default_locality)

    parsed = None
    if "," in cleaned:
        parsed = _split_on_commas(cleaned)
    if parsed is None:
        parsed = _split_on_zip(cleaned)
    if parsed is None:
        parsed = _split_on_anchor(cleaned, anchor_cities)

    if parsed is None:
        street, city, state, zip_code = cleaned, "", "", ""
        address2 = default_locality
    else:
        street, city, state, zip_code = parsed
        address2 = _format_locality(city, state, zip_code)

    address1 = abbreviate_street_types(normalize_ordinals(street.strip(" ,")))
    if len(address1) < 5:
        address1 = abbreviate_street_types(normalize_ordinals(cleaned))
    return ProviderAddress(
        address1=address1,
        address2=address2,
        city=city.strip(),
        state=state,
        zip=zip_code,
    )


def normalize_for_matching(
    address: Optional[str],
    *,
    anchor_cities: Sequence[str] = ("Chicago",),
    default_locality: str = "",
) -> NormalizedAddress:
    raw = "" if address is None else str(address)
    lowered = _WHITESPACE_RE.sub(" ", raw.lower()).strip()

    m = _STREET_NUMBER_RE.match(lowered)
    street_number = m.group(1) if m else ""

    words = normalize_ordinals(_WHITESPACE_RE.sub(" ", _PUNCT_RE.sub(" ", lowered)).strip())
    street_name = ""
    if street_number:
        m = _DIRECTIONAL_STREET_RE.match(words) or _STREET_RE.match(words)
        if m:
            street_name = STREET_TYPES.get(m.group(1), m.group(1))

    split = split_for_provider(
        raw, anchor_cities=anchor_cities, default_locality=default_locality
    )
    return NormalizedAddress(
        raw=raw,
        key=address_key(raw),
        street_number=street_number,
        street_name=street_name,
        city=split.city,
        state=split.state,
        zip=split.zip,
        address1=split.address1,
        address2=split.address2,
    )
