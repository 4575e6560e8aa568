"""Property data providers: owner name and mailing address by property address."""

from .base import OwnerRecord, PropertyProvider
from .registry import get_pa_provider, provider_lookup

__all__ = ["OwnerRecord", "PropertyProvider", "get_pa_provider", "provider_lookup"]
