import copy

import pandas as pd
import pytest

from concentrator_dashboard.aggregation import (
    aggregate,
    aggregate_frame,
    by_columns,
    by_date,
    filter_date_range,
)
from concentrator_dashboard.config import DATASETS


def test_weighted_average_concrete(weighted_specs):
    """(10×2 + 20×3) / (2 + 3) = 16."""
    records = [
        {"date": "2024-05-01", "value": 10, "weight": 2},
        {"date": "2024-05-01", "value": 20, "weight": 3},
    ]
    result = aggregate(records, "date", weighted_specs)
    assert result["2024-05-01"]["value"] == pytest.approx(16.0)
    assert result["2024-05-01"]["total_weight"] == pytest.approx(5.0)
    assert result["2024-05-01"]["record_count"] == 2


def test_zero_weight_falls_back_to_mean(weighted_specs):
    records = [
        {"date": "2024-05-01", "value": 10, "weight": 0},
        {"date": "2024-05-01", "value": 20, "weight": 0},
    ]
    result = aggregate(records, "date", weighted_specs)
    assert result["2024-05-01"]["value"] == pytest.approx(15.0)


def test_no_values_gives_zero(weighted_specs):
    records = [
        {"date": "2024-05-01", "value": None, "weight": 5},
        {"date": "2024-05-01", "weight": 5},
    ]
    result = aggregate(records, "date", weighted_specs)
    assert result["2024-05-01"]["value"] == 0.0
    assert result["2024-05-01"]["total_weight"] == pytest.approx(10.0)


def test_absent_values_excluded_from_weighted_average(weighted_specs):
    """A missing reading does not drag the average towards zero."""
    records = [
        {"date": "d", "value": 10, "weight": 1},
        {"date": "d", "value": None, "weight": 100},
        {"date": "d", "value": "n/a", "weight": 100},
    ]
    result = aggregate(records, "date", weighted_specs)
    assert result["d"]["value"] == pytest.approx(10.0)


def test_sum_field_additivity():
    records = [
        {"k": "a", "x": 1.5},
        {"k": "a", "x": None},
        {"k": "a", "x": "2.5"},
        {"k": "b", "x": 4},
        {"k": "a"},
        {"k": "b", "x": "garbage"},
    ]
    specs = [{"field": "x", "mode": "sum"}]
    result = aggregate(records, "k", specs)
    assert result["a"]["x"] == pytest.approx(4.0)
    assert result["b"]["x"] == pytest.approx(4.0)
    assert result["a"]["record_count"] == 4


def test_weighted_average_bounded_by_present_values():
    records = [
        {"k": "a", "v": 3.0, "w": 0.5},
        {"k": "a", "v": 9.0, "w": 7.0},
        {"k": "a", "v": 5.0, "w": 2.0},
        {"k": "a", "v": None, "w": 4.0},
    ]
    specs = [{"field": "v", "mode": "weighted_avg", "weight_field": "w"}]
    value = aggregate(records, "k", specs)["a"]["v"]
    assert 3.0 <= value <= 9.0


def test_mean_mode():
    records = [{"k": "a", "v": 60}, {"k": "a", "v": 70}, {"k": "a", "v": None}]
    result = aggregate(records, "k", [{"field": "v", "mode": "mean"}])
    assert result["a"]["v"] == pytest.approx(65.0)


def test_unknown_mode_raises():
    with pytest.raises(ValueError):
        aggregate([{"k": "a", "v": 1}], "k", [{"field": "v", "mode": "median"}])


def test_first_seen_key_order():
    records = [
        {"date": "2024-05-03", "x": 1},
        {"date": "2024-05-01", "x": 1},
        {"date": "2024-05-03", "x": 1},
        {"date": "2024-05-02", "x": 1},
    ]
    result = aggregate(records, "date", [{"field": "x", "mode": "sum"}])
    assert list(result) == ["2024-05-03", "2024-05-01", "2024-05-02"]


def test_idempotent_and_does_not_mutate(incoming_rows):
    specs = DATASETS["incoming_ore"]["fields"]
    before = copy.deepcopy(incoming_rows)
    first = aggregate(incoming_rows, by_date("计量日期"), specs, key_name="date")
    second = aggregate(incoming_rows, by_date("计量日期"), specs, key_name="date")
    assert first == second
    assert incoming_rows == before


def test_incoming_ore_daily_rollup(incoming_rows):
    specs = DATASETS["incoming_ore"]["fields"]
    result = aggregate(incoming_rows, by_date("计量日期"), specs, key_name="date")

    day1 = result["2024-05-01"]
    assert day1["date"] == "2024-05-01"
    assert day1["wet_weight_t"] == pytest.approx(40.0)
    assert day1["moisture_pct"] == pytest.approx((10 * 10 + 14 * 30) / 40)

    day2 = result["2024-05-02"]
    assert day2["wet_weight_t"] == pytest.approx(40.0)
    # only the truck with a reading contributes to moisture
    assert day2["moisture_pct"] == pytest.approx(12.0)
    # "abc" is treated as absent
    assert day2["zn_pct"] == pytest.approx(11.0)


def test_callable_key_skips_missing_keys():
    records = [{"date": "2024-05-01", "x": 1}, {"date": None, "x": 5}, {"x": 7}]
    result = aggregate(records, by_date("date"), [{"field": "x", "mode": "sum"}])
    assert list(result) == ["2024-05-01"]
    assert result["2024-05-01"]["key"] == "2024-05-01"


def test_by_columns_groups_by_date_and_source():
    records = [
        {"date": "2024-05-01 08:30", "source": "JDXY", "x": 1},
        {"date": "2024-05-01", "source": "FDX", "x": 2},
        {"date": "2024-05-01", "source": "JDXY", "x": 3},
    ]
    result = aggregate(records, by_columns("date", "source"), [{"field": "x", "mode": "sum"}])
    assert result["2024-05-01|JDXY"]["x"] == pytest.approx(4.0)
    assert result["2024-05-01|FDX"]["x"] == pytest.approx(2.0)


def test_empty_input():
    assert aggregate([], "date", [{"field": "x", "mode": "sum"}]) == {}
    df = aggregate_frame([], "date", [{"field": "x", "mode": "sum", "output": "total"}])
    assert list(df.columns) == ["date", "total", "record_count"]
    assert df.empty


def test_aggregate_frame_sorted_desc():
    records = [
        {"date": "2024-05-01", "x": 1},
        {"date": "2024-05-03", "x": 2},
        {"date": "2024-05-02", "x": 3},
    ]
    df = aggregate_frame(records, "date", [{"field": "x", "mode": "sum"}], sort_order="desc")
    assert df["date"].tolist() == ["2024-05-03", "2024-05-02", "2024-05-01"]


def test_accepts_dataframe():
    df = pd.DataFrame({"date": ["a", "a"], "value": [10.0, float("nan")], "weight": [1.0, 1.0]})
    specs = [{"field": "value", "mode": "weighted_avg", "weight_field": "weight"}]
    assert aggregate(df, "date", specs)["a"]["value"] == pytest.approx(10.0)


def test_filter_date_range_inclusive(incoming_rows):
    kept = filter_date_range(incoming_rows, "2024-05-02", "2024-05-02", "计量日期")
    assert len(kept) == 2
    assert filter_date_range(incoming_rows, None, None, "计量日期") == incoming_rows
    assert filter_date_range(incoming_rows, "2024-05-03", None, "计量日期") == []
