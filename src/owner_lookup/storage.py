import hashlib
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from owner_lookup.errors import ListingStoreError, PersistenceError
from owner_lookup.matching import score_record
from owner_lookup.models import ListingRecord, MatchCandidate, NormalizedAddress
from owner_lookup.normalize import address_key
from owner_lookup.platforms import PLATFORMS, Platform


logger = logging.getLogger("owner_lookup.store")


def _ensure_parent(path: str) -> None:
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)


class SQLiteListingStore:
    """Per-platform listing tables, read for owner data and patched on write-back."""

    def __init__(self, path: str, *, page_size: int = 1000, max_candidates: int = 20000):
        self.path = str(path)
        self.page_size = max(1, int(page_size))
        self.max_candidates = max(1, int(max_candidates))
        _ensure_parent(self.path)
        try:
            self.conn = sqlite3.connect(self.path)
        except sqlite3.Error as exc:
            raise ListingStoreError(f"cannot open listing store {self.path}: {exc}") from exc
        self.conn.row_factory = sqlite3.Row
        self._columns: Dict[str, set] = {}

    def init_schema(self) -> None:
        cur = self.conn.cursor()
        for platform in PLATFORMS.values():
            cols = ["id INTEGER PRIMARY KEY AUTOINCREMENT"]
            cols.extend(f"{c} TEXT" for c in platform.columns())
            cols.append("created_at TEXT")
            cur.execute(f"CREATE TABLE IF NOT EXISTS {platform.table} ({', '.join(cols)})")
            cur.execute(f"PRAGMA table_info({platform.table})")
            existing = {row[1] for row in cur.fetchall()}
            for c in platform.columns():
                if c not in existing:
                    cur.execute(f"ALTER TABLE {platform.table} ADD COLUMN {c} TEXT")
            if platform.link_column:
                cur.execute(
                    f"CREATE INDEX IF NOT EXISTS idx_{platform.table}_{platform.link_column} "
                    f"ON {platform.table}({platform.link_column})"
                )
        self.conn.commit()
        self._columns.clear()

    def _table_columns(self, platform: Platform) -> set:
        cols = self._columns.get(platform.table)
        if cols is None:
            cur = self.conn.execute(f"PRAGMA table_info({platform.table})")
            cols = {row[1] for row in cur.fetchall()}
            if cols:
                self._columns[platform.table] = cols
        return cols

    def _select_list(self, platform: Platform) -> str:
        present = self._table_columns(platform)
        if not present:
            raise ListingStoreError(f"table {platform.table} does not exist")
        return ", ".join(["rowid AS _rowid"] + [c for c in platform.columns() if c in present])

    def _to_record(self, platform: Platform, row: sqlite3.Row) -> ListingRecord:
        data = dict(row)
        row_id = data.pop("_rowid", None)
        return ListingRecord(
            platform=platform.tag,
            row_id=row_id,
            address=data.get(platform.address_column) or "",
            listing_link=data.get(platform.link_column) if platform.link_column else None,
            owner_name=data.get("owner_name"),
            mailing_address=data.get("mailing_address"),
            emails=data.get(platform.email_column) if platform.email_column else None,
            phones=data.get(platform.phone_column) if platform.phone_column else None,
            raw=data,
        )

    def find_by_link(self, platform: Platform, link: Optional[str]) -> Optional[ListingRecord]:
        if not platform.link_column or not (link or "").strip():
            return None
        try:
            select = self._select_list(platform)
            if platform.link_column not in self._table_columns(platform):
                return None
            row = self.conn.execute(
                f"SELECT {select} FROM {platform.table} WHERE {platform.link_column} = ? "
                "ORDER BY rowid LIMIT 1",
                (link.strip(),),
            ).fetchone()
        except sqlite3.Error as exc:
            raise ListingStoreError(f"link lookup failed on {platform.table}: {exc}") from exc
        return self._to_record(platform, row) if row else None

    def find_by_fuzzy_address(
        self, platform: Platform, normalized: NormalizedAddress
    ) -> List[MatchCandidate]:
        if not normalized.fuzzy_matchable:
            return []
        try:
            select = self._select_list(platform)
            where, params = "", []
            if platform.prefilter:
                where = f"WHERE {platform.address_column} LIKE ?"
                params.append(f"%{normalized.street_number}%")
            candidates: List[MatchCandidate] = []
            offset = 0
            while offset < self.max_candidates:
                limit = min(self.page_size, self.max_candidates - offset)
                rows = self.conn.execute(
                    f"SELECT {select} FROM {platform.table} {where} "
                    "ORDER BY rowid LIMIT ? OFFSET ?",
                    (*params, limit, offset),
                ).fetchall()
                for row in rows:
                    cand = score_record(normalized, self._to_record(platform, row))
                    if cand is not None:
                        candidates.append(cand)
                if len(rows) < limit:
                    break
                offset += limit
        except sqlite3.Error as exc:
            raise ListingStoreError(f"address search failed on {platform.table}: {exc}") from exc
        logger.debug(
            "fuzzy search on %s for %r: %s candidates", platform.table, normalized.raw, len(candidates)
        )
        return candidates

    def update_owner_fields(
        self,
        platform: Platform,
        *,
        listing_link: Optional[str] = None,
        row_id: Optional[int] = None,
        owner_name: Optional[str] = None,
        mailing_address: Optional[str] = None,
    ) -> int:
        if not platform.has_owner_columns:
            raise PersistenceError(f"{platform.table} has no owner columns")
        updates: Dict[str, str] = {}
        if owner_name:
            updates["owner_name"] = owner_name
        if mailing_address:
            updates["mailing_address"] = mailing_address
        if not updates:
            return 0
        if listing_link and platform.link_column:
            where, key = f"{platform.link_column} = ?", listing_link
        elif row_id is not None:
            where, key = "rowid = ?", row_id
        else:
            raise PersistenceError("write-back needs a listing link or a row id")
        assignments = ", ".join(f"{c} = ?" for c in updates)
        try:
            cur = self.conn.execute(
                f"UPDATE {platform.table} SET {assignments} WHERE {where}",
                (*updates.values(), key),
            )
            self.conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"write-back to {platform.table} failed: {exc}") from exc
        return cur.rowcount

    def insert_listing(self, platform: Platform, values: Dict[str, Any]) -> int:
        """Insert a row; used to seed fixtures and local test data."""

        cols = [c for c in values if c in platform.columns()]
        placeholders = ", ".join("?" for _ in cols)
        cur = self.conn.execute(
            f"INSERT INTO {platform.table} ({', '.join(cols)}, created_at) "
            f"VALUES ({placeholders}, ?)",
            (*[values[c] for c in cols], datetime.now(timezone.utc).isoformat()),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None


def address_hash(address: str) -> str:
    return hashlib.sha256(address_key(address).encode("utf-8")).hexdigest()


class EnrichmentHistory:
    """Append-only log of resolution attempts."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS enrichment_attempts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                address_hash TEXT NOT NULL,
                normalized_address TEXT NOT NULL,
                status TEXT NOT NULL,
                failure_reason TEXT,
                listing_source TEXT,
                source_used TEXT,
                checked_at TEXT NOT NULL
            )
            """
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_enrichment_attempts_hash "
            "ON enrichment_attempts(address_hash)"
        )
        self.conn.commit()

    def record(
        self,
        address: str,
        *,
        status: str,
        failure_reason: Optional[str] = None,
        listing_source: Optional[str] = None,
        source_used: Optional[str] = None,
    ) -> None:
        try:
            self.conn.execute(
                """
                INSERT INTO enrichment_attempts (
                    address_hash, normalized_address, status, failure_reason,
                    listing_source, source_used, checked_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    address_hash(address),
                    address_key(address),
                    status,
                    failure_reason,
                    listing_source,
                    source_used,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            self.conn.commit()
        except sqlite3.Error as exc:
            logger.warning("could not record enrichment attempt: %s", exc)

    def recent(self, limit: int = 50, offset: int = 0, source: Optional[str] = None) -> List[Dict[str, Any]]:
        sql = "SELECT * FROM enrichment_attempts"
        params: List[Any] = []
        if source:
            sql += " WHERE listing_source = ?"
            params.append(source)
        sql += " ORDER BY checked_at DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([max(0, int(limit)), max(0, int(offset))])
        return [dict(r) for r in self.conn.execute(sql, params).fetchall()]

    def stats(self, source: Optional[str] = None) -> Dict[str, int]:
        sql = "SELECT status, COUNT(*) AS n FROM enrichment_attempts"
        params: List[Any] = []
        if source:
            sql += " WHERE listing_source = ?"
            params.append(source)
        sql += " GROUP BY status"
        out = {"total": 0}
        for row in self.conn.execute(sql, params).fetchall():
            out[row[0]] = int(row[1])
            out["total"] += int(row[1])
        return out
