from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OwnerInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    owner_name: Optional[str] = Field(default=None, alias="ownerName")
    mailing_address: Optional[str] = Field(default=None, alias="mailingAddress")
    email: Optional[str] = None
    phone: Optional[str] = None
    all_emails: List[str] = Field(default_factory=list, alias="allEmails")
    all_phones: List[str] = Field(default_factory=list, alias="allPhones")
    property_address: str = Field(alias="propertyAddress")
    source: str = "none"


class OwnerInfoNotFound(OwnerInfo):
    error: str
    details: Optional[str] = None
    api_response: Optional[Dict[str, Any]] = Field(default=None, alias="apiResponse")


class ErrorResponse(BaseModel):
    error: str
    details: Any = None


class EnrichmentAttempt(BaseModel):
    id: int
    address_hash: str
    normalized_address: str
    status: str
    failure_reason: Optional[str] = None
    listing_source: Optional[str] = None
    source_used: Optional[str] = None
    checked_at: str


class EnrichmentHistoryPage(BaseModel):
    attempts: List[EnrichmentAttempt] = Field(default_factory=list)
    stats: Dict[str, int] = Field(default_factory=dict)
