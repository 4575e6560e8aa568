from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Query
from fastapi.responses import JSONResponse

from owner_lookup.api.schemas import ErrorResponse, OwnerInfo, OwnerInfoNotFound
from owner_lookup.config import get_settings
from owner_lookup.errors import AddressValidationError, ListingStoreError
from owner_lookup.models import AddressQuery, Resolution
from owner_lookup.resolver import build_resolver
from owner_lookup.storage import SQLiteListingStore
from owner_lookup.writeback import apply_write_back_to_path


router = APIRouter(tags=["owner-info"])

logger = logging.getLogger("owner_lookup.api")


def _error(status_code: int, error: str, details=None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details).model_dump()
    return JSONResponse(body, status_code=status_code)


def render_resolution(res: Resolution) -> JSONResponse:
    """Map a resolution onto the HTTP contract (200/404/provider passthrough)."""

    result = res.result
    payload = result.to_payload()

    if result.has_owner_data:
        return JSONResponse(OwnerInfo.model_validate(payload).model_dump(by_alias=True))

    if res.provider_no_result is not None:
        body = OwnerInfoNotFound.model_validate(
            {
                **payload,
                "error": "Property not found in the property provider's database",
                "details": (
                    "This property may not be available from the provider, or the "
                    "address format may need adjustment."
                ),
                "apiResponse": res.provider_no_result,
            }
        )
        return JSONResponse(body.model_dump(by_alias=True), status_code=404)

    if res.provider_error is not None and not result.has_any_data:
        err = res.provider_error
        return _error(err.status_code, err.message, err.details)

    if result.has_contacts:
        return JSONResponse(OwnerInfo.model_validate(payload).model_dump(by_alias=True))

    body = OwnerInfoNotFound.model_validate(
        {
            **payload,
            "error": "No owner information found for this property",
            "details": "No listing row, side-file entry or provider record matched the address.",
            "apiResponse": None,
        }
    )
    return JSONResponse(body.model_dump(by_alias=True), status_code=404)


@router.get("/owner-info")
def owner_info(
    background_tasks: BackgroundTasks,
    address: Optional[str] = Query(default=None),
    listing_link: Optional[str] = Query(default=None),
    source: Optional[str] = Query(default=None),
):
    settings = get_settings()
    if not (address or "").strip():
        return _error(400, "address is required", {"address": address})

    try:
        store = SQLiteListingStore(
            settings.db_path,
            page_size=settings.page_size,
            max_candidates=settings.max_candidates,
        )
    except ListingStoreError as exc:
        logger.error("listing store unavailable: %s", exc)
        return _error(500, "Listing store unavailable", str(exc))

    try:
        resolver = build_resolver(store, settings)
        try:
            res = resolver.resolve(
                AddressQuery(address=address, listing_link=listing_link, source=source),
                write_back=False,
            )
        except AddressValidationError as exc:
            return _error(400, exc.message, exc.details)
    finally:
        store.close()

    if res.write_back is not None and settings.write_back:
        background_tasks.add_task(apply_write_back_to_path, settings.db_path, res.write_back)
    return render_resolution(res)
