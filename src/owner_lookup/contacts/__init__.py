from __future__ import annotations

from typing import Optional

from .base import ContactMatch, NoopPeopleSearch, PeopleSearchProvider
from owner_lookup.config import Settings, get_settings


def get_people_search(settings: Optional[Settings] = None) -> PeopleSearchProvider:
    settings = settings or get_settings()
    if settings.melissa_api_key:
        from owner_lookup.contacts.melissa import MelissaPersonator
        from owner_lookup.http import RetryConfig

        return MelissaPersonator(
            settings.melissa_api_key,
            timeout=settings.provider_timeout,
            retry_config=RetryConfig(retries=settings.provider_retries),
        )
    return NoopPeopleSearch()


__all__ = ["ContactMatch", "NoopPeopleSearch", "PeopleSearchProvider", "get_people_search"]
