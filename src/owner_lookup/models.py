from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SourceUsed(str, Enum):
    STORE = "store"
    FILE = "file"
    PROPERTY_PROVIDER = "property_provider"
    PEOPLE_SEARCH = "people_search"
    NONE = "none"


@dataclass(frozen=True)
class AddressQuery:
    address: str
    listing_link: Optional[str] = None
    source: Optional[str] = None


@dataclass(frozen=True)
class ProviderAddress:
    address1: str
    address2: str
    city: str = ""
    state: str = ""
    zip: str = ""


@dataclass(frozen=True)
class NormalizedAddress:
    raw: str
    key: str
    street_number: str = ""
    street_name: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    address1: str = ""
    address2: str = ""

    @property
    def fuzzy_matchable(self) -> bool:
        return bool(self.street_number)


@dataclass
class ListingRecord:
    platform: str
    row_id: Optional[int]
    address: str
    listing_link: Optional[str] = None
    owner_name: Optional[str] = None
    mailing_address: Optional[str] = None
    emails: Any = None
    phones: Any = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MatchCandidate:
    record: ListingRecord
    score: int


@dataclass
class EnrichmentResult:
    property_address: str
    owner_name: Optional[str] = None
    mailing_address: Optional[str] = None
    emails: List[str] = field(default_factory=list)
    phones: List[str] = field(default_factory=list)
    source_used: SourceUsed = SourceUsed.NONE

    @property
    def has_owner_data(self) -> bool:
        return bool(self.owner_name or self.mailing_address)

    @property
    def has_contacts(self) -> bool:
        return bool(self.emails or self.phones)

    @property
    def has_any_data(self) -> bool:
        return self.has_owner_data or self.has_contacts

    def to_payload(self) -> Dict[str, Any]:
        """Response shape shared by the HTTP API and the CLI."""

        return {
            "ownerName": self.owner_name,
            "mailingAddress": self.mailing_address,
            "email": self.emails[0] if self.emails else None,
            "phone": self.phones[0] if self.phones else None,
            "allEmails": list(self.emails),
            "allPhones": list(self.phones),
            "propertyAddress": self.property_address,
            "source": self.source_used.value,
        }


@dataclass
class WriteBackPlan:
    platform: str
    address: str
    listing_link: Optional[str] = None
    row_id: Optional[int] = None
    owner_name: Optional[str] = None
    mailing_address: Optional[str] = None

    def fields(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        if self.owner_name:
            out["owner_name"] = self.owner_name
        if self.mailing_address:
            out["mailing_address"] = self.mailing_address
        return out


@dataclass
class Resolution:
    query: AddressQuery
    normalized: NormalizedAddress
    result: EnrichmentResult
    platform: str
    matched_record: Optional[ListingRecord] = None
    steps: List[Dict[str, Any]] = field(default_factory=list)
    provider_no_result: Optional[Dict[str, Any]] = None
    provider_error: Optional[Exception] = None
    write_back: Optional[WriteBackPlan] = None
    write_back_applied: Optional[bool] = None

    def log_step(self, state: str, status: str, detail: str = "") -> None:
        self.steps.append({"state": state, "status": status, "detail": detail})

    @property
    def status(self) -> str:
        if self.result.owner_name and self.result.mailing_address:
            return "enriched"
        if self.result.has_any_data:
            return "partial"
        if self.provider_error is not None:
            return "provider_error"
        return "not_found"
