from __future__ import annotations

from typing import Any, Dict, Optional


class OwnerLookupError(Exception):
    """Base class for everything the resolution engine raises."""


class AddressValidationError(OwnerLookupError):
    """The address cannot be turned into a provider-ready address1/address2 pair."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransientProviderError(OwnerLookupError):
    """An external data source failed; the cascade moves on to the next state."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 502,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


class PropertyProviderError(TransientProviderError):
    pass


class PeopleSearchError(TransientProviderError):
    pass


class ListingStoreError(OwnerLookupError):
    pass


class PersistenceError(ListingStoreError):
    """Write-back failed. Logged, never surfaced to the caller."""
