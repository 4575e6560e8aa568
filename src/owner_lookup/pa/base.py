from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from owner_lookup.models import ProviderAddress


@dataclass
class OwnerRecord:
    """What a property provider reported for one address.

    ``no_result`` is set (to the provider's status block) when the provider
    answered successfully but knows no such property.
    """

    owner_name: Optional[str] = None
    mailing_address: Optional[str] = None
    no_result: Optional[Dict[str, Any]] = None
    raw: Any = None

    @property
    def found(self) -> bool:
        return self.no_result is None


class PropertyProvider(Protocol):
    name: str

    def fetch_owner(self, address: ProviderAddress) -> OwnerRecord:
        """Fetch owner data by address. Raises PropertyProviderError on failure."""
        raise NotImplementedError
