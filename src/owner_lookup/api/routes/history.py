from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query

from owner_lookup.api.schemas import EnrichmentHistoryPage
from owner_lookup.config import get_settings
from owner_lookup.platforms import canonicalize_tag
from owner_lookup.storage import EnrichmentHistory, SQLiteListingStore


router = APIRouter(tags=["enrichment-history"])


@router.get("/enrichment-history", response_model=EnrichmentHistoryPage)
def enrichment_history(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    source: Optional[str] = Query(default=None),
):
    store = SQLiteListingStore(get_settings().db_path)
    try:
        history = EnrichmentHistory(store.conn)
        tag = canonicalize_tag(source) if source else None
        return {
            "attempts": history.recent(limit=limit, offset=offset, source=tag),
            "stats": history.stats(source=tag),
        }
    finally:
        store.close()
