from __future__ import annotations

import logging
from typing import Optional

from owner_lookup.errors import ListingStoreError
from owner_lookup.matching import select_best
from owner_lookup.models import WriteBackPlan
from owner_lookup.normalize import normalize_for_matching
from owner_lookup.platforms import get_platform


logger = logging.getLogger("owner_lookup.writeback")


def apply_write_back(store, plan: Optional[WriteBackPlan]) -> bool:
    """Persist newly discovered owner fields; False on any failure, never raises.

    Targets the row by listing link, then by row id, then by a fresh address
    match against the same table.
    """

    if plan is None:
        return False
    platform = get_platform(plan.platform)
    fields = plan.fields()
    if not fields or not platform.has_owner_columns:
        return False
    try:
        updated = 0
        if plan.listing_link and platform.link_column:
            updated = store.update_owner_fields(platform, listing_link=plan.listing_link, **fields)
        if not updated and plan.row_id is not None:
            updated = store.update_owner_fields(platform, row_id=plan.row_id, **fields)
        if not updated:
            best = select_best(
                store.find_by_fuzzy_address(platform, normalize_for_matching(plan.address))
            )
            if best is not None:
                updated = store.update_owner_fields(
                    platform, row_id=best.record.row_id, **fields
                )
    except ListingStoreError as exc:
        logger.warning("write-back to %s failed: %s", platform.table, exc)
        return False
    if updated:
        logger.info("wrote %s to %s (%s rows)", sorted(fields), platform.table, updated)
    else:
        logger.info("write-back found no %s row for %r", platform.table, plan.address)
    return bool(updated)


def apply_write_back_to_path(db_path: str, plan: Optional[WriteBackPlan]) -> bool:
    """Run a write-back on a dedicated connection (used from background tasks)."""

    from owner_lookup.storage import SQLiteListingStore

    try:
        store = SQLiteListingStore(db_path)
    except ListingStoreError as exc:
        logger.warning("write-back could not open %s: %s", db_path, exc)
        return False
    try:
        return apply_write_back(store, plan)
    finally:
        store.close()
