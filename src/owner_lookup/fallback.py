from __future__ import annotations

import csv
import logging
import threading
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from owner_lookup.contacts.parse import is_sentinel, parse_emails, parse_phones
from owner_lookup.normalize import address_key


DEFAULT_FILENAME = "sale owner.csv"

logger = logging.getLogger("owner_lookup.fallback")


@dataclass(frozen=True)
class FallbackRow:
    key: str
    address: str
    mailing_address: Optional[str]
    owner_name: Optional[str] = None
    emails: List[str] = field(default_factory=list)
    phones: List[str] = field(default_factory=list)


def _header(name: Optional[str]) -> str:
    return (name or "").strip().lower().replace(" ", "_").replace("-", "_")


def _clean(value: Optional[str]) -> Optional[str]:
    if is_sentinel(value):
        return None
    return str(value).strip()


def discover_path(explicit: Optional[str] = None, cwd: Optional[Path] = None) -> Optional[Path]:
    """Return the side file: the configured path, else the default name in cwd or its two parents."""

    if explicit:
        p = Path(explicit)
        return p if p.is_file() else None
    base = (cwd or Path.cwd()).resolve()
    for folder in [base, *list(base.parents)[:2]]:
        candidate = folder / DEFAULT_FILENAME
        if candidate.is_file():
            return candidate
    return None


class FlatFileFallback:
    """Read-only address -> owner index built from a CSV side file."""

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self.rows: List[FallbackRow] = []
        self.loaded = False
        self._lock = threading.Lock()

    def ensure_loaded(self) -> "FlatFileFallback":
        if self.loaded:
            return self
        with self._lock:
            if not self.loaded:
                self.rows = self._load()
                self.loaded = True
        return self

    def _load(self) -> List[FallbackRow]:
        path = discover_path(self.path)
        if path is None:
            logger.info("no owner side file found (configured=%s)", self.path)
            return []
        rows: List[FallbackRow] = []
        try:
            with path.open(newline="", encoding="utf-8-sig") as handle:
                reader = csv.DictReader(handle)
                headers = {_header(h): h for h in (reader.fieldnames or [])}
                if "address" not in headers or "mailing_address" not in headers:
                    logger.warning("side file %s lacks address/mailing_address columns", path)
                    return []
                for record in reader:
                    address = (record.get(headers["address"]) or "").strip()
                    key = address_key(address)
                    if not key:
                        continue

                    def col(name: str) -> Optional[str]:
                        return record.get(headers[name]) if name in headers else None

                    rows.append(
                        FallbackRow(
                            key=key,
                            address=address,
                            mailing_address=_clean(col("mailing_address")),
                            owner_name=_clean(col("owner_name")),
                            emails=parse_emails(col("emails")),
                            phones=parse_phones(col("phones")),
                        )
                    )
        except (OSError, csv.Error, UnicodeDecodeError) as exc:
            logger.warning("could not read side file %s: %s", path, exc)
            return []
        logger.info("loaded %s rows from side file %s", len(rows), path)
        return rows

    def lookup(self, address: str) -> Optional[FallbackRow]:
        """First row whose key contains, or is contained in, the query key at word boundaries and has a mailing address."""

        key = address_key(address)
        if not key:
            return None
        for row in self.ensure_loaded().rows:
            if not row.mailing_address:
                continue
            if f" {key} " in f" {row.key} " or f" {row.key} " in f" {key} ":
                return row
        return None


@lru_cache(maxsize=1)
def get_fallback_index(path: Optional[str] = None) -> FlatFileFallback:
    return FlatFileFallback(path)


def reset_fallback_index() -> None:
    """Test helper to drop the loaded side file."""

    get_fallback_index.cache_clear()
