from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


DEFAULT_ATTOM_BASE_URL = "https://api.gateway.attomdata.com/propertyapi/v1.0.0"
DEFAULT_DB_PATH = "./owner_lookup.sqlite"


def _env_str(name: str, default: str = "") -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = str(raw).strip().lower()
    if v in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read once from the environment.

    API keys have no defaults: a missing key disables that provider instead of
    falling back to a shared credential.
    """

    db_path: str
    attom_api_key: str
    trulia_redfin_attom_api_key: str
    attom_base_url: str
    melissa_api_key: str
    fallback_csv_path: Optional[str]
    anchor_cities: Tuple[str, ...]
    default_locality: str
    provider_timeout: float
    provider_retries: int
    page_size: int
    max_candidates: int
    write_back: bool
    history: bool

    @classmethod
    def from_env(cls) -> "Settings":
        attom_key = _env_str("ATTOM_API_KEY")
        return cls(
            db_path=_env_str("OWNER_LOOKUP_DB", DEFAULT_DB_PATH) or DEFAULT_DB_PATH,
            attom_api_key=attom_key,
            trulia_redfin_attom_api_key=_env_str("TRULIA_REDFIN_ATTOM_API_KEY")
            or attom_key,
            attom_base_url=_env_str("ATTOM_API_BASE_URL", DEFAULT_ATTOM_BASE_URL)
            or DEFAULT_ATTOM_BASE_URL,
            melissa_api_key=_env_str("MELISSA_PERSONATOR_API_KEY")
            or _env_str("MELISSA_KEY"),
            fallback_csv_path=_env_str("OWNER_LOOKUP_FALLBACK_CSV") or None,
            anchor_cities=_env_list("OWNER_LOOKUP_ANCHOR_CITIES", ("Chicago",)),
            default_locality=_env_str("OWNER_LOOKUP_DEFAULT_LOCALITY"),
            provider_timeout=_env_float("OWNER_LOOKUP_PROVIDER_TIMEOUT", 20.0),
            provider_retries=max(0, _env_int("OWNER_LOOKUP_PROVIDER_RETRIES", 2)),
            page_size=max(1, _env_int("OWNER_LOOKUP_PAGE_SIZE", 1000)),
            max_candidates=max(1, _env_int("OWNER_LOOKUP_MAX_CANDIDATES", 20000)),
            write_back=_env_bool("OWNER_LOOKUP_WRITE_BACK", True),
            history=_env_bool("OWNER_LOOKUP_HISTORY", True),
        )

    def attom_key_for(self, key_group: str) -> str:
        if key_group == "trulia_redfin":
            return self.trulia_redfin_attom_api_key
        return self.attom_api_key


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def reset_settings_cache() -> None:
    """Test helper to force env re-read."""

    get_settings.cache_clear()
