from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from owner_lookup.contacts.base import ContactMatch
from owner_lookup.contacts.parse import format_phone, is_sentinel
from owner_lookup.errors import PeopleSearchError
from owner_lookup.http import RetryConfig, build_session, request_with_retries


PERSONATOR_URL = "https://personator.melissadata.net/v3/WEB/ContactVerify/doContactVerify"

logger = logging.getLogger("owner_lookup.melissa")

_COMMA_FORM_RE = re.compile(
    r"^(.+?),\s*(.+?),\s*([A-Z]{2})\s+(\d{5})(?:-\d{4})?$", re.IGNORECASE
)
_SPACE_FORM_RE = re.compile(
    r"^(.+?)\s+([A-Za-z]+)\s+([A-Z]{2})\s+(\d{5})(?:-\d{4})?$", re.IGNORECASE
)
_ZIP_RE = re.compile(r"\b(\d{5})(?:-\d{4})?\b")
_STATE_BEFORE_ZIP_RE = re.compile(r"\b([A-Z]{2})\b(?=\s+\d{5})", re.IGNORECASE)
_STATE_ZIP_TAIL_RE = re.compile(r"\s+[A-Z]{2}\s+\d{5}.*$", re.IGNORECASE)
_NON_DIGIT_RE = re.compile(r"\D")


@dataclass(frozen=True)
class MailingParts:
    street: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""


def parse_mailing_address(address: Optional[str]) -> MailingParts:
    """Split a one-line mailing address into street/city/state/zip.

    Handles ``Street, City, ST ZIP`` and ``Street City ST ZIP``; anything else
    is split as well as possible, with the last word before the state taken
    as the city.
    """

    text = (address or "").strip()
    if not text:
        return MailingParts()

    m = _COMMA_FORM_RE.match(text)
    if m:
        return MailingParts(
            street=m.group(1).strip(),
            city=m.group(2).strip(),
            state=m.group(3).upper(),
            zip=m.group(4),
        )
    m = _SPACE_FORM_RE.match(text)
    if m:
        return MailingParts(
            street=m.group(1).strip(),
            city=m.group(2).strip(),
            state=m.group(3).upper(),
            zip=m.group(4),
        )

    zip_match = _ZIP_RE.search(text)
    state_match = _STATE_BEFORE_ZIP_RE.search(text)
    before = _STATE_ZIP_TAIL_RE.sub("", text).strip().rstrip(",")
    street, city = before, ""
    parts = before.split()
    if len(parts) > 1 and (zip_match or state_match):
        city = parts[-1].strip(",")
        street = " ".join(parts[:-1]).rstrip(",")
    return MailingParts(
        street=street,
        city=city,
        state=state_match.group(1).upper() if state_match else "",
        zip=zip_match.group(1) if zip_match else "",
    )


def _extract_email(record: Dict[str, Any]) -> Optional[str]:
    for key in ("EmailAddress", "Email"):
        value = record.get(key)
        if not isinstance(value, str):
            continue
        value = value.strip()
        at = value.find("@")
        if len(value) > 5 and 0 < at < len(value) - 1 and not is_sentinel(value):
            return value
    return None


def _extract_phone(record: Dict[str, Any]) -> Optional[str]:
    for key in ("PhoneNumber", "Phone"):
        value = record.get(key)
        if not isinstance(value, str):
            continue
        value = value.strip()
        if len(_NON_DIGIT_RE.sub("", value)) >= 10:
            return format_phone(value)

    area = _NON_DIGIT_RE.sub("", str(record.get("AreaCode") or ""))
    prefix = _NON_DIGIT_RE.sub("", str(record.get("PhonePrefix") or ""))
    suffix = _NON_DIGIT_RE.sub("", str(record.get("PhoneSuffix") or ""))
    if len(area) == 3 and len(prefix) == 3 and len(suffix) == 4:
        return f"({area}) {prefix}-{suffix}"
    local = _NON_DIGIT_RE.sub("", str(record.get("PhoneNumber") or ""))
    if len(area) == 3 and len(local) == 7:
        return f"({area}) {local[:3]}-{local[3:]}"
    return None


class MelissaPersonator:
    name = "melissa"

    def __init__(
        self,
        api_key: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 20.0,
        retry_config: Optional[RetryConfig] = None,
        url: str = PERSONATOR_URL,
    ):
        self.api_key = api_key
        self.session = session or build_session()
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()
        self.url = url

    def _params(self, owner_name: Optional[str], parts: MailingParts) -> Dict[str, str]:
        params = {"id": self.api_key, "act": "Check,Append"}
        if owner_name and owner_name.strip():
            params["full"] = owner_name.strip()
        if parts.street:
            params["a1"] = parts.street
        if parts.city:
            params["loc"] = parts.city
        if parts.state:
            params["admarea"] = parts.state
        if parts.zip:
            params["postal"] = parts.zip
        params["ctry"] = "USA"
        return params

    def search(
        self,
        owner_name: Optional[str],
        mailing_address: Optional[str],
    ) -> ContactMatch:
        if not mailing_address or not mailing_address.strip():
            logger.debug("skipping people search: no mailing address")
            return ContactMatch(source=self.name)

        parts = parse_mailing_address(mailing_address)
        try:
            response = request_with_retries(
                self.session,
                "GET",
                self.url,
                params=self._params(owner_name, parts),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                retry_config=self.retry_config,
            )
        except requests.RequestException as exc:
            raise PeopleSearchError(f"people search request failed: {exc}") from exc

        if not response.ok:
            raise PeopleSearchError(
                f"people search returned HTTP {response.status_code}",
                status_code=response.status_code,
                details=(response.text or "")[:500],
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise PeopleSearchError("people search returned a non-JSON body") from exc

        records = data.get("Records") if isinstance(data, dict) else None
        transmission = str((data or {}).get("TransmissionResults") or "")
        email = phone = None
        if isinstance(records, list) and records and isinstance(records[0], dict):
            email = _extract_email(records[0])
            phone = _extract_phone(records[0])

        if "GE29" in transmission and not (email or phone):
            logger.warning("people search append not licensed (%s)", transmission)

        return ContactMatch(
            emails=[email] if email else [],
            phones=[phone] if phone else [],
            source=self.name,
            raw=data,
        )
