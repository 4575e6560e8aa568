import pytest
import requests

from owner_lookup.errors import PropertyProviderError
from owner_lookup.http import RetryConfig
from owner_lookup.models import ProviderAddress
from owner_lookup.pa.attom import AttomPropertyProvider
from owner_lookup.pa.extract import extract_mailing_address, extract_owner_name, find_property


ADDRESS = ProviderAddress("1234 W 63rd St", "Chicago, IL 60636", "Chicago", "IL", "60636")
NO_RETRY = RetryConfig(retries=0)


def _provider(session, retries=NO_RETRY):
    return AttomPropertyProvider(
        "test-key",
        base_url="https://attom.test/propertyapi/v1.0.0/",
        session=session,
        timeout=5,
        retry_config=retries,
    )


def _profile(owner=None, mailing=None):
    return {
        "status": {"code": 0, "msg": "SuccessWithResult", "total": 1},
        "property": [{"assessment": {"owner": {"owner1": owner or {}, **(mailing or {})}}}],
    }


def test_owner_and_mailing_extracted(fake_session, fake_response):
    session = fake_session(
        fake_response(
            200,
            _profile(
                {"fullName": "JANE ROE"},
                {"mailingAddressOneLine": "PO BOX 9, CHICAGO, IL 60601"},
            ),
        )
    )
    out = _provider(session).fetch_owner(ADDRESS)
    assert out.found
    assert out.owner_name == "JANE ROE"
    assert out.mailing_address == "PO BOX 9, CHICAGO, IL 60601"

    call = session.calls[0]
    assert call["url"] == "https://attom.test/propertyapi/v1.0.0/property/expandedprofile"
    assert call["params"] == {"address1": "1234 W 63rd St", "address2": "Chicago, IL 60636"}
    assert call["headers"]["apikey"] == "test-key"
    assert call["headers"]["Accept"] == "application/json"
    assert call["timeout"] == 5


def test_success_without_result_is_not_an_error(fake_session, fake_response):
    status = {"code": 0, "msg": "SuccessWithoutResult", "total": 0}
    out = _provider(fake_session(fake_response(200, {"status": status}))).fetch_owner(ADDRESS)
    assert not out.found
    assert out.no_result == status


def test_400_success_without_result_is_zero_results(fake_session, fake_response):
    status = {"code": 1, "msg": "SuccessWithoutResult", "total": 0}
    out = _provider(fake_session(fake_response(400, {"status": status}))).fetch_owner(ADDRESS)
    assert out.no_result == status


@pytest.mark.parametrize(
    "code,needle",
    [
        (400, "Invalid address format"),
        (401, "authentication failed"),
        (404, "not found"),
        (429, "rate limit"),
    ],
)
def test_http_errors_are_humanized(fake_session, fake_response, code, needle):
    session = fake_session(fake_response(code, {"status": {"msg": "some upstream text"}}))
    with pytest.raises(PropertyProviderError) as exc:
        _provider(session, RetryConfig(retries=2, base_delay=0, jitter=0)).fetch_owner(ADDRESS)
    assert exc.value.status_code == code
    assert needle in exc.value.message
    assert exc.value.details == "some upstream text"
    assert len(session.calls) == 1


def test_xml_error_body_is_parsed(fake_session, fake_response):
    body = "<?xml version='1.0'?><response><status><code>-1</code><msg>Invalid Parameter</msg></status></response>"
    session = fake_session(fake_response(422, body, {"Content-Type": "application/xml"}))
    with pytest.raises(PropertyProviderError) as exc:
        _provider(session).fetch_owner(ADDRESS)
    assert exc.value.status_code == 422
    assert exc.value.message == "Invalid Parameter (code -1)"


def test_xml_success_body_is_a_500(fake_session, fake_response):
    session = fake_session(fake_response(200, "<?xml version='1.0'?><response/>", {"Content-Type": "text/xml"}))
    with pytest.raises(PropertyProviderError) as exc:
        _provider(session).fetch_owner(ADDRESS)
    assert exc.value.status_code == 500
    assert "XML" in exc.value.message


def test_server_errors_are_retried(fake_session, fake_response):
    session = fake_session(
        fake_response(503, "busy"),
        fake_response(200, _profile({"name": "ACME LLC"})),
    )
    out = _provider(session, RetryConfig(retries=1, base_delay=0, jitter=0)).fetch_owner(ADDRESS)
    assert out.owner_name == "ACME LLC"
    assert len(session.calls) == 2


def test_network_failure_is_a_502(fake_session):
    session = fake_session(requests.ConnectionError("refused"))
    with pytest.raises(PropertyProviderError) as exc:
        _provider(session).fetch_owner(ADDRESS)
    assert exc.value.status_code == 502


def test_owner_name_strategies_in_order():
    prop = {
        "assessment": {
            "owner": {
                "owner1": {"fullName": "NOT AVAILABLE FROM DATA SOURCE", "firstNameAndMi": "JANE Q", "lastName": "ROE"}
            }
        },
        "owner": {"name": "IGNORED"},
    }
    assert extract_owner_name(prop) == "JANE Q ROE"
    assert extract_owner_name({"owner1": {"firstName": "Al", "lastName": "Bo"}}) == "Al Bo"
    assert extract_owner_name({"owner": {"name": "null"}}) is None
    assert extract_owner_name(None) is None


def test_mailing_address_composed_from_object():
    prop = {
        "assessment": {"owner": {"mailingAddressOneLine": "  "}},
        "owner": {"mailingAddress": {"line1": "1 Corporate Way", "locality": "Dover", "state": "DE", "postalCode": "19901"}},
    }
    assert extract_mailing_address(prop) == "1 Corporate Way, Dover, DE, 19901"


def test_find_property_shapes():
    node = {"id": 1}
    assert find_property({"property": [node]}) is node
    assert find_property({"property": node}) is node
    assert find_property({"properties": [node]}) is node
    assert find_property({"data": {"property": [node]}}) is node
    assert find_property({"property": []}) is None
    assert find_property("nope") is None
