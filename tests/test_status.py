import pytest

from gwr_buildingdata.status import BuildingStatus, translate_status


@pytest.mark.parametrize(
    "code, expected",
    [
        ("1001", "planned"),
        ("1002", "approved"),
        ("1003", "under_construction"),
        ("1004", "existing"),
        ("1005", "not_usable"),
        ("1007", "demolished"),
        ("1008", "not_built"),
    ],
)
def test_known_codes(code, expected):
    assert translate_status(code).value == expected


@pytest.mark.parametrize("code", ["", None, "1006", "1009", "abc", "0"])
def test_unrecognised_codes_are_unknown(code):
    assert translate_status(code) is BuildingStatus.UNKNOWN


def test_integer_and_padded_codes():
    assert translate_status(1004) is BuildingStatus.EXISTING
    assert translate_status(" 1007 ") is BuildingStatus.DEMOLISHED
