import pytest

from concentrator_dashboard.trends import build_trend, series_name, trend_frame


def test_missing_day_is_null_not_zero():
    sources = {
        "A": [{"date": "2024-05-01", "x": 1.0}],
        "B": [{"date": "2024-05-01", "x": 2.0}, {"date": "2024-05-02", "x": 3.0}],
    }
    points = build_trend(sources, fields=["x"])

    assert [p["date"] for p in points] == ["2024-05-01", "2024-05-02"]
    assert points[0]["A_x"] == pytest.approx(1.0)
    assert points[0]["B_x"] == pytest.approx(2.0)
    assert points[1]["A_x"] is None
    assert points[1]["B_x"] == pytest.approx(3.0)


def test_points_sorted_ascending_across_sources():
    sources = {
        "A": [{"date": "2024-05-03", "x": 1}, {"date": "2024-05-01", "x": 2}],
        "B": [{"date": "2024-05-02", "x": 3}],
    }
    dates = [p["date"] for p in build_trend(sources, fields=["x"])]
    assert dates == ["2024-05-01", "2024-05-02", "2024-05-03"]


def test_default_fields_skip_date_and_count():
    sources = {"JDXY": [{"date": "2024-05-01", "zn_pct": 12.0, "record_count": 3}]}
    point = build_trend(sources)[0]
    assert set(point) == {"date", "JDXY_zn_pct"}


def test_empty_sources():
    assert build_trend({}) == []
    assert build_trend({"A": []}, fields=["x"]) == []


def test_series_name():
    assert series_name("FDX", "wet_weight_t") == "FDX_wet_weight_t"


def test_trend_frame_parses_dates():
    df = trend_frame([{"date": "2024-05-01", "A_x": 1.0}, {"date": "2024-05-02", "A_x": None}])
    assert str(df["date"].dtype).startswith("datetime64")
    assert len(df) == 2
    assert trend_frame([]).empty


def test_date_without_values_still_gets_a_point():
    sources = {
        "A": [{"date": "2024-05-01", "x": None}],
        "B": [{"date": "2024-05-02", "x": 1.0}],
    }
    points = build_trend(sources, fields=["x"])

    assert [p["date"] for p in points] == ["2024-05-01", "2024-05-02"]
    assert points[0] == {"date": "2024-05-01", "A_x": None, "B_x": None}
    assert points[1]["A_x"] is None
    assert points[1]["B_x"] == pytest.approx(1.0)
