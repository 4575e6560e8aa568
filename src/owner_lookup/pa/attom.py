from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

import requests

from owner_lookup.config import DEFAULT_ATTOM_BASE_URL
from owner_lookup.errors import PropertyProviderError
from owner_lookup.http import RetryConfig, build_session, request_with_retries
from owner_lookup.models import ProviderAddress
from owner_lookup.pa.base import OwnerRecord
from owner_lookup.pa.extract import extract_mailing_address, extract_owner_name, find_property


NO_RESULT_MSG = "SuccessWithoutResult"

logger = logging.getLogger("owner_lookup.attom")

_XML_MSG_RE = re.compile(r"<msg>([^<]*)</msg>", re.IGNORECASE)
_XML_CODE_RE = re.compile(r"<code>([^<]*)</code>", re.IGNORECASE)


def _looks_like_xml(text: str, content_type: str) -> bool:
    head = (text or "").lstrip()
    return "xml" in (content_type or "").lower() or head.startswith("<?xml") or head.startswith("<response")


def _error_message(body: str) -> tuple:
    """Return (parsed_json_or_None, message) from a non-2xx body."""

    try:
        parsed = json.loads(body)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict):
        status = parsed.get("status") if isinstance(parsed.get("status"), dict) else {}
        msg = status.get("msg") or parsed.get("msg") or parsed.get("error")
        return parsed, str(msg) if msg else ""
    m = _XML_MSG_RE.search(body or "")
    if m:
        code = _XML_CODE_RE.search(body or "")
        msg = m.group(1).strip()
        return None, f"{msg} (code {code.group(1).strip()})" if code else msg
    return None, (body or "")[:200]


def _humanize(status_code: int, address: ProviderAddress, message: str) -> str:
    if status_code == 400:
        return (
            "Invalid address format. Please check the property address. "
            f"Parsed as address1={address.address1!r}, address2={address.address2!r}"
        )
    if status_code == 401:
        return (
            "Property provider authentication failed (401 Unauthorized). "
            "The API key is invalid, expired or lacks permissions."
        )
    if status_code == 404:
        return "Property not found in the property provider's database."
    if status_code == 429:
        return "Property provider rate limit exceeded. Please try again later."
    return message or f"Property provider error (HTTP {status_code})"


class AttomPropertyProvider:
    name = "attom"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_ATTOM_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 20.0,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.session = session or build_session()
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()

    @property
    def url(self) -> str:
        return f"{self.base_url}/property/expandedprofile"

    def fetch_owner(self, address: ProviderAddress) -> OwnerRecord:
        params = {"address1": address.address1, "address2": address.address2}
        logger.info("property lookup address1=%r address2=%r", address.address1, address.address2)
        try:
            response = request_with_retries(
                self.session,
                "GET",
                self.url,
                params=params,
                headers={"apikey": self.api_key, "Accept": "application/json"},
                timeout=self.timeout,
                retry_config=self.retry_config,
            )
        except requests.RequestException as exc:
            raise PropertyProviderError(
                f"Property provider request failed: {exc}", status_code=502
            ) from exc

        text = response.text or ""
        content_type = response.headers.get("Content-Type", "")

        if not 200 <= response.status_code < 300:
            parsed, message = _error_message(text)
            status_block = parsed.get("status") if isinstance(parsed, dict) else None
            if (
                response.status_code == 400
                and isinstance(status_block, dict)
                and status_block.get("msg") == NO_RESULT_MSG
            ):
                logger.info("property provider has no record for %r", address.address1)
                return OwnerRecord(no_result=status_block, raw=parsed)
            logger.warning(
                "property provider HTTP %s: %s", response.status_code, message[:200]
            )
            raise PropertyProviderError(
                _humanize(response.status_code, address, message),
                status_code=response.status_code,
                details=message or None,
            )

        try:
            data: Any = json.loads(text)
        except ValueError:
            if _looks_like_xml(text, content_type):
                raise PropertyProviderError(
                    "Property provider returned XML instead of JSON",
                    status_code=500,
                    details=text[:2000],
                )
            raise PropertyProviderError(
                "Unable to parse property provider response",
                status_code=500,
                details=text[:2000],
            )

        status_block = data.get("status") if isinstance(data, dict) else None
        if (
            isinstance(status_block, dict)
            and status_block.get("msg") == NO_RESULT_MSG
            and status_block.get("total") == 0
        ):
            logger.info("property provider has no record for %r", address.address1)
            return OwnerRecord(no_result=status_block, raw=data)

        prop = find_property(data)
        if prop is None:
            logger.warning("property provider response had no property node")
        return OwnerRecord(
            owner_name=extract_owner_name(prop),
            mailing_address=extract_mailing_address(prop),
            raw=data,
        )
