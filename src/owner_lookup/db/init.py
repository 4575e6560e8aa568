from __future__ import annotations

from owner_lookup.config import get_settings
from owner_lookup.storage import EnrichmentHistory, SQLiteListingStore


def init_db(db_path: str | None = None) -> str:
    db_path = db_path or get_settings().db_path
    store = SQLiteListingStore(db_path)
    try:
        store.init_schema()
        EnrichmentHistory(store.conn)
    finally:
        store.close()
    return db_path
