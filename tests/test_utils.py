from datetime import datetime

import pandas as pd
import pytest

from concentrator_dashboard.loaders.utils import date_key, normalise_date, parse_duration, safe_float


@pytest.mark.parametrize(
    "raw, expected",
    [
        (12.5, 12.5),
        (3, 3.0),
        ("7.25", 7.25),
        (" 1,234.5 ", 1234.5),
        ("78%", 78.0),
        ("0", 0.0),
    ],
)
def test_safe_float_parses(raw, expected):
    assert safe_float(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, "", "   ", "abc", "=SUM(A1:A3)", True, float("nan"), float("inf")])
def test_safe_float_absent(raw):
    assert safe_float(raw) is None


def test_normalise_date_variants():
    expected = pd.Timestamp("2024-05-01")
    assert normalise_date("2024-05-01") == expected
    assert normalise_date("2024-05-01T13:45:00") == expected
    assert normalise_date(datetime(2024, 5, 1, 8, 30)) == expected
    # Excel serial number
    assert normalise_date(45413) == expected


def test_normalise_date_invalid():
    assert normalise_date(None) is None
    assert normalise_date("") is None
    assert normalise_date("not a date") is None
    assert normalise_date(True) is None


def test_date_key():
    assert date_key("2024-05-01 23:59") == "2024-05-01"
    assert date_key(None) is None


@pytest.mark.parametrize(
    "raw, hours",
    [
        ("8小时", 8.0),
        ("1小时34分钟", 1 + 34 / 60),
        ("737小时45分钟", 737.75),
        ("45分钟", 0.75),
        (2.5, 2.5),
        (None, 0.0),
        ("", 0.0),
        ("待确认", 0.0),
    ],
)
def test_parse_duration(raw, hours):
    assert parse_duration(raw) == pytest.approx(hours)
