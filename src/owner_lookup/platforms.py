from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Platform:
    """Where one scraped source keeps its listings and contact columns."""

    tag: str
    table: str
    link_column: Optional[str]
    has_owner_columns: bool
    email_column: Optional[str]
    phone_column: Optional[str]
    prefilter: bool = False
    min_phone_digits: int = 7
    key_group: str = "default"
    address_column: str = "address"

    def columns(self) -> Tuple[str, ...]:
        cols = [self.address_column]
        if self.link_column:
            cols.append(self.link_column)
        if self.has_owner_columns:
            cols.extend(["owner_name", "mailing_address"])
        if self.email_column:
            cols.append(self.email_column)
        if self.phone_column:
            cols.append(self.phone_column)
        return tuple(cols)


DEFAULT_TAG = "fsbo"

PLATFORMS: Dict[str, Platform] = {
    p.tag: p
    for p in (
        Platform(
            tag="fsbo",
            table="listings",
            link_column="listing_link",
            has_owner_columns=True,
            email_column="owner_emails",
            phone_column="owner_phones",
        ),
        Platform(
            tag="redfin",
            table="redfin_listings",
            link_column="listing_link",
            has_owner_columns=True,
            email_column="emails",
            phone_column="phones",
            min_phone_digits=10,
            key_group="trulia_redfin",
        ),
        Platform(
            tag="trulia",
            table="trulia_listings",
            link_column="listing_link",
            has_owner_columns=True,
            email_column="emails",
            phone_column="phones",
            key_group="trulia_redfin",
        ),
        Platform(
            tag="zillow-fsbo",
            table="zillow_fsbo_listings",
            link_column="detail_url",
            has_owner_columns=False,
            email_column=None,
            phone_column="phone_number",
            prefilter=True,
        ),
        Platform(
            tag="zillow-frbo",
            table="zillow_frbo_listings",
            link_column="url",
            has_owner_columns=False,
            email_column=None,
            phone_column="phone_number",
            prefilter=True,
        ),
        Platform(
            tag="hotpads",
            table="hotpads_listings",
            link_column="url",
            has_owner_columns=False,
            email_column="email",
            phone_column="phone_number",
            prefilter=True,
        ),
        Platform(
            tag="addresses",
            table="addresses",
            link_column=None,
            has_owner_columns=True,
            email_column="emails",
            phone_column="phones",
            prefilter=True,
        ),
    )
}

_ALIASES = {
    "for-sale-by-owner": "fsbo",
    "listings": "fsbo",
    "zillow": "zillow-fsbo",
    "zillowfsbo": "zillow-fsbo",
    "zillowfrbo": "zillow-frbo",
    "address": "addresses",
}


def canonicalize_tag(tag: Optional[str]) -> str:
    t = (tag or "").strip().lower().replace("_", "-").replace(" ", "-")
    if not t:
        return DEFAULT_TAG
    t = _ALIASES.get(t, t)
    return t if t in PLATFORMS else DEFAULT_TAG


def get_platform(tag: Optional[str]) -> Platform:
    return PLATFORMS[canonicalize_tag(tag)]
