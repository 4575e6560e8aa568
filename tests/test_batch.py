import pytest

from owner_lookup.batch import neutralize_csv_field, row_address


@pytest.mark.parametrize(
    "value,expected",
    [("=HYPERLINK(1)", "'=HYPERLINK(1)"), ("@cmd", "'@cmd"), ("PO Box 1", "PO Box 1"), (None, "")],
)
def test_neutralize_csv_field(value, expected):
    assert neutralize_csv_field(value) == expected


def test_row_address_joins_locality_columns():
    row = {"address": " 1 Main St ", "city": "Chicago", "state": "IL", "zip": "60601"}
    assert row_address(row) == "1 Main St, Chicago, IL 60601"
    assert row_address({"address": "1 Main St, Chicago, IL"}) == "1 Main St, Chicago, IL"
    assert row_address({"address": "", "city": "Chicago"}) == ""
