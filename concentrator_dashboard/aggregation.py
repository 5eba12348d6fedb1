"""
Weighted aggregation of dated measurement records.

A declarative field-spec table replaces per-page reducers:

    {"field": "水份(%)", "mode": "weighted_avg", "weight_field": "湿重(t)", "output": "moisture_pct"}

Rules
-----
- sum:          plain sum; absent values contribute 0.
- weighted_avg: Σ(value × weight) / Σ(weight) over records where both are
                present; simple mean of present values when Σ(weight) == 0;
                0 when no value is present.
- mean:         simple mean of present values; 0 when none present.

All functions are pure: inputs are never mutated.
"""

import logging
from typing import Any, Callable, Iterable

import pandas as pd

from .loaders.utils import date_key, safe_float

logger = logging.getLogger(__name__)

AGGREGATION_MODES = ("sum", "weighted_avg", "mean")

GroupKey = str | Callable[[dict], Any]


def as_records(records: Iterable[dict] | pd.DataFrame | None) -> list[dict]:
    """Return records as a list of dicts (DataFrames are converted row-wise)."""
    if records is None:
        return []
    if isinstance(records, pd.DataFrame):
        return records.to_dict("records")
    return list(records)


def by_date(date_field: str) -> Callable[[dict], str | None]:
    """Group-key function: the record's date normalised to YYYY-MM-DD."""
    def key(record: dict) -> str | None:
        return date_key(record.get(date_field))
    return key


def by_columns(*fields: str, sep: str = "|") -> Callable[[dict], str | None]:
    """Group-key function joining several columns, e.g. date + data source.

    Date-like values of the first column are normalised to YYYY-MM-DD.
    """
    def key(record: dict) -> str | None:
        parts = []
        for i, field in enumerate(fields):
            val = record.get(field)
            if val is None:
                return None
            if i == 0:
                val = date_key(val) or val
            parts.append(str(val))
        return sep.join(parts)
    return key


def output_name(spec: dict) -> str:
    return spec.get("output") or spec["field"]


def _numeric_series(rows: list[dict], field: str) -> pd.Series:
    return pd.Series([safe_float(r.get(field)) for r in rows], dtype="float64")


def _resolve_keys(rows: list[dict], group_key: GroupKey) -> list:
    if callable(group_key):
        return [group_key(r) for r in rows]
    keys = []
    for r in rows:
        val = r.get(group_key)
        keys.append(None if val is None else str(val))
    return keys


def aggregate(
    records: Iterable[dict] | pd.DataFrame,
    group_key: GroupKey,
    field_specs: list[dict],
    key_name: str | None = None,
) -> dict[str, dict]:
    """Collapse records into one aggregated record per group key.

    Parameters
    ----------
    records : Raw measurement records (list of dicts or DataFrame).
    group_key : Column name or callable returning the group key of a record.
        Records whose key is None are skipped.
    field_specs : Field-spec table (see module docstring).
    key_name : Name of the key column in each aggregated record. Defaults
        to the column name, or "key" when group_key is a callable.

    Returns
    -------
    Dict keyed by group key, ordered by first appearance, each value a dict:
        {key_name: key, <output>: value, ..., "record_count": n}
    """
    rows = as_records(records)
    if key_name is None:
        key_name = "key" if callable(group_key) else group_key

    keys = _resolve_keys(rows, group_key)
    kept = [i for i, k in enumerate(keys) if k is not None]
    if len(kept) < len(rows):
        logger.warning("Skipped %d records without a group key", len(rows) - len(kept))
    rows = [rows[i] for i in kept]
    keys = [keys[i] for i in kept]

    if not rows:
        return {}

    frame = pd.DataFrame({"_key": keys})
    grouped_cols: dict[str, pd.Series] = {}

    for spec in field_specs:
        mode = spec.get("mode", "sum")
        if mode not in AGGREGATION_MODES:
            raise ValueError(f"Unknown aggregation mode: {mode!r}")
        out = output_name(spec)
        values = _numeric_series(rows, spec["field"])
        present = values.notna()

        parts = pd.DataFrame({
            "_key": keys,
            "vsum": values.fillna(0.0),
            "cnt": present.astype(int),
        })

        if mode == "weighted_avg" and spec.get("weight_field"):
            weights = _numeric_series(rows, spec["weight_field"])
            usable = present & weights.notna() & (weights >= 0)
            parts["num"] = (values * weights).where(usable, 0.0)
            parts["den"] = weights.where(usable, 0.0)
        else:
            parts["num"] = 0.0
            parts["den"] = 0.0

        sums = parts.groupby("_key", sort=False).sum()

        if mode == "sum":
            result = sums["vsum"]
        else:
            mean = (sums["vsum"] / sums["cnt"]).where(sums["cnt"] > 0, 0.0)
            weighted = (sums["num"] / sums["den"]).where(sums["den"] > 0)
            result = weighted.fillna(mean)

        grouped_cols[out] = result

    counts = frame.groupby("_key", sort=False).size()

    aggregated: dict[str, dict] = {}
    for key, count in counts.items():
        record: dict = {key_name: key}
        for out, series in grouped_cols.items():
            record[out] = float(series.loc[key])
        record["record_count"] = int(count)
        aggregated[key] = record

    logger.debug("Aggregated %d records into %d groups", len(rows), len(aggregated))
    return aggregated


def aggregate_frame(
    records: Iterable[dict] | pd.DataFrame,
    group_key: GroupKey,
    field_specs: list[dict],
    key_name: str | None = None,
    sort_order: str = "asc",
) -> pd.DataFrame:
    """Same as aggregate(), returned as a DataFrame sorted by key."""
    aggregated = aggregate(records, group_key, field_specs, key_name=key_name)
    if key_name is None:
        key_name = "key" if callable(group_key) else group_key

    columns = [key_name] + [output_name(s) for s in field_specs] + ["record_count"]
    if not aggregated:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame(list(aggregated.values()), columns=columns)
    df = df.sort_values(key_name, ascending=(sort_order != "desc"), kind="stable")
    return df.reset_index(drop=True)


def filter_date_range(
    records: Iterable[dict] | pd.DataFrame,
    start: Any,
    end: Any,
    date_field: str,
) -> list[dict]:
    """Keep records whose date falls in [start, end] (inclusive, either may be None)."""
    start_key = date_key(start) if start is not None else None
    end_key = date_key(end) if end is not None else None

    kept = []
    for record in as_records(records):
        day = date_key(record.get(date_field))
        if day is None:
            continue
        if start_key is not None and day < start_key:
            continue
        if end_key is not None and day > end_key:
            continue
        kept.append(record)
    return kept
