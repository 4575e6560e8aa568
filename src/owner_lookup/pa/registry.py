from __future__ import annotations

from typing import Callable, Dict, Optional

from owner_lookup.config import Settings, get_settings
from owner_lookup.http import RetryConfig
from owner_lookup.pa.base import PropertyProvider
from owner_lookup.platforms import Platform


def get_pa_provider(key_group: str, settings: Optional[Settings] = None) -> PropertyProvider:
    settings = settings or get_settings()
    api_key = settings.attom_key_for(key_group)
    if not api_key:
        raise KeyError(f"No property provider configured for key_group={key_group}")

    from owner_lookup.pa.attom import AttomPropertyProvider

    return AttomPropertyProvider(
        api_key,
        base_url=settings.attom_base_url,
        timeout=settings.provider_timeout,
        retry_config=RetryConfig(retries=settings.provider_retries),
    )


def provider_lookup(
    settings: Optional[Settings] = None,
) -> Callable[[Platform], Optional[PropertyProvider]]:
    """Per-platform provider chooser; None when no key is configured for its group."""

    cache: Dict[str, Optional[PropertyProvider]] = {}

    def choose(platform: Platform) -> Optional[PropertyProvider]:
        group = platform.key_group
        if group not in cache:
            try:
                cache[group] = get_pa_provider(group, settings)
            except KeyError:
                cache[group] = None
        return cache[group]

    return choose
