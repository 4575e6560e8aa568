from __future__ import annotations

import logging
from functools import lru_cache
from typing import Callable, List, Optional

from owner_lookup.config import Settings, get_settings
from owner_lookup.contacts import get_people_search
from owner_lookup.contacts.base import NoopPeopleSearch, PeopleSearchProvider
from owner_lookup.contacts.parse import is_sentinel, merge_unique, parse_emails, parse_phones
from owner_lookup.errors import (
    AddressValidationError,
    ListingStoreError,
    PeopleSearchError,
    PropertyProviderError,
)
from owner_lookup.fallback import FlatFileFallback, get_fallback_index
from owner_lookup.matching import select_best
from owner_lookup.models import (
    AddressQuery,
    EnrichmentResult,
    ListingRecord,
    ProviderAddress,
    Resolution,
    SourceUsed,
    WriteBackPlan,
)
from owner_lookup.normalize import normalize_for_matching
from owner_lookup.pa.base import PropertyProvider
from owner_lookup.pa.registry import provider_lookup
from owner_lookup.platforms import Platform, get_platform
from owner_lookup.writeback import apply_write_back


logger = logging.getLogger("owner_lookup.resolve")


def _clean(value) -> Optional[str]:
    if is_sentinel(value):
        return None
    text = str(value).strip()
    return text or None


class _Tracker:
    """Remembers which cascade state supplied owner data and contacts."""

    def __init__(self):
        self.owner_sources: List[SourceUsed] = []
        self.contact_sources: List[SourceUsed] = []

    def owner(self, source: SourceUsed) -> None:
        self.owner_sources.append(source)

    def contacts(self, source: SourceUsed) -> None:
        self.contact_sources.append(source)

    def source_used(self) -> SourceUsed:
        if self.owner_sources:
            return self.owner_sources[-1]
        if self.contact_sources:
            return self.contact_sources[0]
        return SourceUsed.NONE


class OwnerResolver:
    def __init__(
        self,
        store,
        *,
        fallback: Optional[FlatFileFallback] = None,
        pa_provider_for: Optional[Callable[[Platform], Optional[PropertyProvider]]] = None,
        people_search: Optional[PeopleSearchProvider] = None,
        history=None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.fallback = fallback
        self.pa_provider_for = pa_provider_for or (lambda platform: None)
        self.people_search = people_search or NoopPeopleSearch()
        self.history = history
        self.settings = settings or get_settings()

    # -- cascade states -------------------------------------------------

    def _store_lookup(self, res: Resolution, platform: Platform) -> Optional[ListingRecord]:
        record = None
        try:
            if res.query.listing_link:
                record = self.store.find_by_link(platform, res.query.listing_link)
                if record is not None:
                    res.log_step("store", "hit", "listing link")
            if record is None and res.normalized.fuzzy_matchable:
                best = select_best(self.store.find_by_fuzzy_address(platform, res.normalized))
                if best is not None:
                    record = best.record
                    res.log_step("store", "hit", f"address score {best.score}")
        except ListingStoreError as exc:
            logger.warning("listing store unavailable for %s: %s", platform.table, exc)
            res.log_step("store", "error", str(exc))
            return None
        if record is None:
            res.log_step("store", "miss", platform.table)
        return record

    def _apply_record(self, res: Resolution, platform: Platform, record: ListingRecord, track: _Tracker) -> None:
        result = res.result
        if platform.has_owner_columns:
            result.owner_name = _clean(record.owner_name)
            result.mailing_address = _clean(record.mailing_address)
            if result.has_owner_data:
                track.owner(SourceUsed.STORE)
        result.emails = parse_emails(record.emails)
        result.phones = parse_phones(record.phones, min_digits=platform.min_phone_digits)
        if result.has_contacts:
            track.contacts(SourceUsed.STORE)

    def _file_lookup(self, res: Resolution, track: _Tracker) -> None:
        result = res.result
        if result.mailing_address:
            return
        if self.fallback is None:
            res.log_step("file", "skipped", "no side file")
            return
        row = self.fallback.lookup(res.query.address)
        if row is None:
            res.log_step("file", "miss")
            return
        contributed = False
        if not result.mailing_address and row.mailing_address:
            result.mailing_address = row.mailing_address
            contributed = True
        if not result.owner_name and row.owner_name:
            result.owner_name = row.owner_name
            contributed = True
        if contributed:
            track.owner(SourceUsed.FILE)
        had_contacts = result.has_contacts
        if not result.emails and row.emails:
            result.emails = list(row.emails)
        if not result.phones and row.phones:
            result.phones = list(row.phones)
        if result.has_contacts and not had_contacts:
            track.contacts(SourceUsed.FILE)
        res.log_step("file", "hit", row.address)

    def _people_search(
        self,
        res: Resolution,
        owner_name: Optional[str],
        mailing_address: Optional[str],
        track: _Tracker,
    ) -> None:
        result = res.result
        try:
            match = self.people_search.search(owner_name, mailing_address)
        except PeopleSearchError as exc:
            logger.warning("people search failed: %s", exc)
            res.log_step("people_search", "error", str(exc))
            return
        emails = parse_emails(match.emails)
        phones = parse_phones(match.phones)
        if not (emails or phones):
            res.log_step("people_search", "miss")
            return
        result.emails = merge_unique(result.emails, emails, casefold=True)
        result.phones = merge_unique(result.phones, phones)
        track.contacts(SourceUsed.PEOPLE_SEARCH)
        res.log_step("people_search", "hit", getattr(match, "source", "") or "")

    def _provider_lookup(self, res: Resolution, platform: Platform, track: _Tracker) -> bool:
        """Returns True when people search already ran for a zero-result answer."""

        result = res.result
        if result.owner_name and result.mailing_address:
            return False
        provider = self.pa_provider_for(platform)
        if provider is None:
            res.log_step("property_provider", "skipped", f"no key for {platform.key_group}")
            return False
        n = res.normalized
        try:
            owner = provider.fetch_owner(
                ProviderAddress(n.address1, n.address2, n.city, n.state, n.zip)
            )
        except PropertyProviderError as exc:
            logger.warning(
                "property provider failed (HTTP %s): %s", exc.status_code, exc.message
            )
            res.provider_error = exc
            res.log_step("property_provider", "error", exc.message)
            return False

        if owner.no_result is not None:
            res.provider_no_result = owner.no_result
            res.log_step("property_provider", "no_result")
            if not result.has_contacts:
                self._people_search(
                    res,
                    result.owner_name,
                    result.mailing_address or res.query.address,
                    track,
                )
                return True
            return False

        contributed = False
        if not result.owner_name and _clean(owner.owner_name):
            result.owner_name = _clean(owner.owner_name)
            contributed = True
        if not result.mailing_address and _clean(owner.mailing_address):
            result.mailing_address = _clean(owner.mailing_address)
            contributed = True
        if contributed:
            track.owner(SourceUsed.PROPERTY_PROVIDER)
            res.log_step("property_provider", "hit")
        else:
            res.log_step("property_provider", "miss", "no usable owner fields")
        return False

    # -- orchestration --------------------------------------------------

    def validate(self, query: AddressQuery):
        address = (query.address or "").strip()
        if not address:
            raise AddressValidationError("address is required")
        normalized = normalize_for_matching(
            address,
            anchor_cities=self.settings.anchor_cities,
            default_locality=self.settings.default_locality,
        )
        if not normalized.address1 or not normalized.address2:
            raise AddressValidationError(
                "Could not determine the city and state of the address",
                details={
                    "address": address,
                    "address1": normalized.address1,
                    "address2": normalized.address2,
                    "hint": "Use the form 'Street, City, ST ZIP'",
                },
            )
        return normalized

    def resolve(self, query: AddressQuery, *, write_back: bool = True) -> Resolution:
        platform = get_platform(query.source)
        query = AddressQuery(
            address=(query.address or "").strip(),
            listing_link=(query.listing_link or "").strip() or None,
            source=query.source,
        )
        try:
            normalized = self.validate(query)
        except AddressValidationError as exc:
            if query.address:
                self._record_history(query.address, "invalid_address", exc.message, platform, None)
            raise

        res = Resolution(
            query=query,
            normalized=normalized,
            result=EnrichmentResult(property_address=query.address),
            platform=platform.tag,
        )
        track = _Tracker()

        record = self._store_lookup(res, platform)
        res.matched_record = record
        if record is not None:
            self._apply_record(res, platform, record, track)
        store_owner = res.result.owner_name
        store_mailing = res.result.mailing_address

        self._file_lookup(res, track)
        searched = self._provider_lookup(res, platform, track)

        result = res.result
        if not searched and not result.has_contacts and result.owner_name and result.mailing_address:
            self._people_search(res, result.owner_name, result.mailing_address, track)

        result.source_used = track.source_used()
        res.write_back = self._plan_write_back(res, platform, record, store_owner, store_mailing)
        if write_back and self.settings.write_back and res.write_back is not None:
            res.write_back_applied = apply_write_back(self.store, res.write_back)

        failure = None
        if res.provider_error is not None:
            failure = res.provider_error.message
        elif res.provider_no_result is not None:
            failure = str(res.provider_no_result.get("msg") or "no result")
        self._record_history(query.address, res.status, failure, platform, result.source_used.value)
        logger.info(
            "resolved %r on %s: status=%s source=%s",
            query.address,
            platform.tag,
            res.status,
            result.source_used.value,
        )
        return res

    def _plan_write_back(
        self,
        res: Resolution,
        platform: Platform,
        record: Optional[ListingRecord],
        store_owner: Optional[str],
        store_mailing: Optional[str],
    ) -> Optional[WriteBackPlan]:
        if not platform.has_owner_columns:
            return None
        result = res.result
        new_owner = result.owner_name if result.owner_name and not store_owner else None
        new_mailing = (
            result.mailing_address if result.mailing_address and not store_mailing else None
        )
        if not (new_owner or new_mailing):
            return None
        link = record.listing_link if record is not None and record.listing_link else None
        return WriteBackPlan(
            platform=platform.tag,
            address=res.query.address,
            listing_link=link or res.query.listing_link,
            row_id=record.row_id if record is not None else None,
            owner_name=new_owner,
            mailing_address=new_mailing,
        )

    def _record_history(
        self,
        address: str,
        status: str,
        failure_reason: Optional[str],
        platform: Platform,
        source_used: Optional[str],
    ) -> None:
        if self.history is None or not self.settings.history:
            return
        self.history.record(
            address,
            status=status,
            failure_reason=failure_reason,
            listing_source=platform.tag,
            source_used=source_used,
        )


@lru_cache(maxsize=4)
def _shared_providers(settings: Settings):
    return provider_lookup(settings), get_people_search(settings)


def reset_provider_cache() -> None:
    """Test helper to drop the process-wide provider clients."""

    _shared_providers.cache_clear()


def build_resolver(store, settings: Optional[Settings] = None, *, fallback_csv: Optional[str] = None) -> OwnerResolver:
    """Wire a resolver with the configured side file, providers and history."""

    settings = settings or get_settings()
    history = None
    if settings.history:
        from owner_lookup.storage import EnrichmentHistory

        history = EnrichmentHistory(store.conn)
    pa_provider_for, people_search = _shared_providers(settings)
    return OwnerResolver(
        store,
        fallback=get_fallback_index(fallback_csv or settings.fallback_csv_path),
        pa_provider_for=pa_provider_for,
        people_search=people_search,
        history=history,
        settings=settings,
    )
