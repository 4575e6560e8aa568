import pytest

from owner_lookup.contacts.base import ContactMatch
from owner_lookup.errors import AddressValidationError, PeopleSearchError, PropertyProviderError
from owner_lookup.fallback import FlatFileFallback
from owner_lookup.models import AddressQuery, SourceUsed
from owner_lookup.pa.base import OwnerRecord
from owner_lookup.platforms import get_platform
from owner_lookup.resolver import OwnerResolver, build_resolver
from owner_lookup.storage import EnrichmentHistory, SQLiteListingStore


ADDRESS = "1234 W 63rd St, Chicago, IL 60636"


class FakeProvider:
    name = "fake"

    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    def fetch_owner(self, address):
        self.calls.append(address)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


class FakePeople:
    name = "fake-people"

    def __init__(self, match=None, error=None):
        self.match = match or ContactMatch()
        self.error = error
        self.calls = []

    def search(self, owner_name, mailing_address):
        self.calls.append((owner_name, mailing_address))
        if self.error:
            raise self.error
        return self.match


def _resolver(store, provider=None, people=None, fallback=None, history=None):
    return OwnerResolver(
        store,
        fallback=fallback,
        pa_provider_for=(lambda platform: provider),
        people_search=people,
        history=history,
    )


def _seed(store, tag="fsbo", **values):
    return store.insert_listing(get_platform(tag), {"address": "1234 W 63rd St", **values})


def test_store_hit_by_link_needs_no_provider(store):
    _seed(
        store,
        listing_link="https://example.test/l/1",
        owner_name="Jane Roe",
        mailing_address="PO Box 9, Chicago, IL 60601",
        owner_emails='["jane@example.test", "null"]',
        owner_phones="[5551234567]",
    )
    provider = FakeProvider(OwnerRecord(owner_name="Other"))
    res = _resolver(store, provider).resolve(
        AddressQuery(ADDRESS, listing_link="https://example.test/l/1", source="fsbo")
    )
    assert provider.calls == []
    assert res.result.owner_name == "Jane Roe"
    assert res.result.emails == ["jane@example.test"]
    assert res.result.phones == ["(555) 123-4567"]
    assert res.result.source_used is SourceUsed.STORE
    assert res.status == "enriched"
    assert res.write_back is None
    assert res.steps[0] == {"state": "store", "status": "hit", "detail": "listing link"}


def test_fuzzy_hit_then_provider_fills_gap_and_writes_back(store):
    row_id = _seed(store, owner_name="Jane Roe", mailing_address="null")
    provider = FakeProvider(OwnerRecord(owner_name="SOMEONE ELSE", mailing_address="PO Box 9, Chicago, IL 60601"))
    res = _resolver(store, provider).resolve(AddressQuery(ADDRESS))

    assert len(provider.calls) == 1
    assert provider.calls[0].address1 == "1234 W 63rd St"
    assert provider.calls[0].address2 == "Chicago, IL 60636"
    assert res.result.owner_name == "Jane Roe"
    assert res.result.mailing_address == "PO Box 9, Chicago, IL 60601"
    assert res.result.source_used is SourceUsed.PROPERTY_PROVIDER
    assert res.write_back.fields() == {"mailing_address": "PO Box 9, Chicago, IL 60601"}
    assert res.write_back.row_id == row_id
    assert res.write_back_applied is True

    row = store.conn.execute("SELECT owner_name, mailing_address FROM listings").fetchone()
    assert tuple(row) == ("Jane Roe", "PO Box 9, Chicago, IL 60601")


def test_write_back_then_resolve_again_uses_store(store):
    _seed(store, tag="trulia", listing_link="https://t.test/1")
    provider = FakeProvider(OwnerRecord(owner_name="ACME LLC", mailing_address="1 Corporate Way, Dover, DE 19901"))
    resolver = _resolver(store, provider)

    first = resolver.resolve(AddressQuery(ADDRESS, source="trulia"))
    assert first.write_back_applied is True
    second = resolver.resolve(AddressQuery(ADDRESS, source="trulia"))

    assert len(provider.calls) == 1
    assert second.result.owner_name == "ACME LLC"
    assert second.result.source_used is SourceUsed.STORE


def test_write_back_can_be_disabled(store):
    _seed(store)
    provider = FakeProvider(OwnerRecord(owner_name="ACME LLC", mailing_address="PO Box 1"))
    res = _resolver(store, provider).resolve(AddressQuery(ADDRESS), write_back=False)
    assert res.write_back is not None
    assert res.write_back_applied is None
    row = store.conn.execute("SELECT owner_name FROM listings").fetchone()
    assert row[0] is None


def test_side_file_supplies_mailing_address(store, tmp_path):
    csv_path = tmp_path / "owners.csv"
    csv_path.write_text("address,mailing_address\n123 main st,PO Box 5\n", encoding="utf-8")
    res = _resolver(store, fallback=FlatFileFallback(str(csv_path))).resolve(
        AddressQuery("123 Main St, Springfield, IL, 62704", source="redfin")
    )
    assert res.result.mailing_address == "PO Box 5"
    assert res.result.owner_name is None
    assert res.result.source_used is SourceUsed.FILE
    assert res.result.emails == [] and res.result.phones == []
    assert res.status == "partial"


def test_zero_results_falls_back_to_people_search_with_raw_address(store):
    provider = FakeProvider(OwnerRecord(no_result={"msg": "SuccessWithoutResult", "total": 0}))
    people = FakePeople(ContactMatch(emails=["who@example.test"], phones=["3125550100"]))
    res = _resolver(store, provider, people).resolve(AddressQuery(ADDRESS))

    assert people.calls == [(None, ADDRESS)]
    assert res.provider_no_result == {"msg": "SuccessWithoutResult", "total": 0}
    assert res.result.emails == ["who@example.test"]
    assert res.result.phones == ["(312) 555-0100"]
    assert res.result.source_used is SourceUsed.PEOPLE_SEARCH
    assert res.status == "partial"


def test_provider_error_is_recorded_and_cascade_continues(store):
    err = PropertyProviderError("rate limited", status_code=429)
    people = FakePeople()
    res = _resolver(store, FakeProvider(err), people).resolve(AddressQuery(ADDRESS))
    assert res.provider_error is err
    assert res.status == "provider_error"
    assert people.calls == []
    assert [s["state"] for s in res.steps] == ["store", "file", "property_provider"]


def test_people_search_after_owner_and_mailing_known(store):
    _seed(store, owner_name="Jane Roe", mailing_address="PO Box 9, Chicago, IL 60601")
    people = FakePeople(ContactMatch(emails=["jane@example.test"]))
    res = _resolver(store, FakeProvider(OwnerRecord()), people).resolve(AddressQuery(ADDRESS))
    assert people.calls == [("Jane Roe", "PO Box 9, Chicago, IL 60601")]
    assert res.result.emails == ["jane@example.test"]
    assert res.result.source_used is SourceUsed.STORE


def test_people_search_errors_do_not_abort(store):
    _seed(store, owner_name="Jane Roe", mailing_address="PO Box 9")
    people = FakePeople(error=PeopleSearchError("down"))
    res = _resolver(store, None, people).resolve(AddressQuery(ADDRESS))
    assert res.status == "enriched"
    assert res.steps[-1]["status"] == "error"


def test_people_search_skipped_when_contacts_exist(store):
    _seed(store, owner_name="Jane Roe", mailing_address="PO Box 9", owner_phones='["3125550100"]')
    people = FakePeople()
    _resolver(store, None, people).resolve(AddressQuery(ADDRESS))
    assert people.calls == []


def test_platform_without_owner_columns(store):
    _seed(store, tag="zillow-fsbo", detail_url="https://z.test/1", phone_number=5551234567)
    res = _resolver(store).resolve(AddressQuery(ADDRESS, source="zillow_fsbo"))
    assert res.platform == "zillow-fsbo"
    assert res.result.phones == ["(555) 123-4567"]
    assert res.result.owner_name is None
    assert res.result.source_used is SourceUsed.STORE
    assert res.write_back is None


def test_redfin_requires_ten_digit_phones(store):
    _seed(store, tag="redfin", phones="555-1234, 312-555-0100")
    res = _resolver(store).resolve(AddressQuery(ADDRESS, source="redfin"))
    assert res.result.phones == ["(312) 555-0100"]


def test_store_errors_do_not_abort(tmp_path):
    bare = SQLiteListingStore(str(tmp_path / "bare.sqlite"))
    try:
        provider = FakeProvider(OwnerRecord(owner_name="ACME LLC", mailing_address="PO Box 1"))
        res = _resolver(bare, provider).resolve(AddressQuery(ADDRESS))
        assert res.steps[0]["status"] == "error"
        assert res.result.owner_name == "ACME LLC"
        assert res.write_back_applied is False
    finally:
        bare.close()


def test_nothing_found(store):
    res = _resolver(store).resolve(AddressQuery(ADDRESS))
    assert res.status == "not_found"
    assert res.result.source_used is SourceUsed.NONE
    assert res.result.to_payload()["allEmails"] == []


@pytest.mark.parametrize("address", ["", "   "])
def test_empty_address_is_rejected(store, address):
    with pytest.raises(AddressValidationError):
        _resolver(store).resolve(AddressQuery(address))


def test_unsplittable_address_is_rejected_before_any_lookup(store):
    provider = FakeProvider(OwnerRecord())
    history = EnrichmentHistory(store.conn)
    with pytest.raises(AddressValidationError) as exc:
        _resolver(store, provider, history=history).resolve(AddressQuery("742 Evergreen Terrace"))
    assert exc.value.details["address2"] == ""
    assert provider.calls == []
    assert history.recent()[0]["status"] == "invalid_address"


def test_history_records_each_resolution(store):
    history = EnrichmentHistory(store.conn)
    _seed(store, owner_name="Jane Roe", mailing_address="PO Box 9")
    _resolver(store, history=history).resolve(AddressQuery(ADDRESS, source="fsbo"))
    (row,) = history.recent()
    assert row["status"] == "enriched"
    assert row["listing_source"] == "fsbo"
    assert row["source_used"] == "store"


def test_build_resolver_wires_configured_defaults(store, monkeypatch):
    from owner_lookup.config import reset_settings_cache

    monkeypatch.setenv("TRULIA_REDFIN_ATTOM_API_KEY", "tr-key")
    reset_settings_cache()
    resolver = build_resolver(store)
    assert resolver.pa_provider_for(get_platform("fsbo")) is None
    assert resolver.pa_provider_for(get_platform("redfin")).api_key == "tr-key"
    assert resolver.history is not None


def test_build_resolver_reuses_provider_clients(store, monkeypatch):
    from owner_lookup.config import reset_settings_cache

    monkeypatch.setenv("ATTOM_API_KEY", "k")
    monkeypatch.setenv("MELISSA_PERSONATOR_API_KEY", "m")
    reset_settings_cache()
    first = build_resolver(store)
    second = build_resolver(store)
    assert second.people_search is first.people_search
    assert second.pa_provider_for(get_platform("fsbo")) is first.pa_provider_for(get_platform("fsbo"))
