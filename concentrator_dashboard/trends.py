"""
Trend series: outer-join per-source aggregated records on date into
chart-ready points.
"""

import logging
from typing import Iterable

import pandas as pd

from .aggregation import as_records
from .loaders.utils import date_key

logger = logging.getLogger(__name__)

_NON_SERIES_COLUMNS = {"record_count"}


def series_name(source: str, field: str) -> str:
    return f"{source}_{field}"


def build_trend(
    sources: dict[str, Iterable[dict] | pd.DataFrame],
    fields: list[str] | None = None,
    date_key_field: str = "date",
) -> list[dict]:
    """Merge N aggregated record sets into one date-ordered series.

    Parameters
    ----------
    sources : Mapping of source name -> aggregated records keyed by date.
    fields : Value fields to chart. Defaults to every field of each source
        except the date column and record_count.
    date_key_field : Name of the date column in the aggregated records.

    Returns
    -------
    List of points, one per distinct date across all sources, ascending:
        {"date": "2024-05-01", "<source>_<field>": value or None, ...}

    A (date, series) pair with no contributing record is None; there is no
    interpolation or forward-fill.
    """
    frames = []
    all_dates: set[str] = set()
    for source, records in sources.items():
        rows = as_records(records)
        series: dict[str, dict[str, float | None]] = {}
        source_fields = fields
        if source_fields is None:
            source_fields = []
            for row in rows:
                for col in row:
                    if col != date_key_field and col not in _NON_SERIES_COLUMNS and col not in source_fields:
                        source_fields.append(col)

        for field in source_fields:
            series[series_name(source, field)] = {}

        for row in rows:
            day = date_key(row.get(date_key_field))
            if day is None:
                continue
            all_dates.add(day)
            for field in source_fields:
                val = row.get(field)
                if val is not None and not pd.isna(val):
                    series[series_name(source, field)][day] = val

        frame = pd.DataFrame(series, dtype="object")
        if frame.empty and not series:
            continue
        frames.append(frame)

    if not all_dates:
        return []

    # Dates where a source has a record but no value still get a point
    merged = pd.concat(frames, axis=1, join="outer") if frames else pd.DataFrame()
    merged = merged.reindex(sorted(all_dates))
    merged = merged.astype(object).where(merged.notna(), None)

    points = []
    for day, row in merged.iterrows():
        point = {"date": day}
        point.update(row.to_dict())
        points.append(point)

    logger.info("Built trend with %d points and %d series", len(points), len(merged.columns))
    return points


def trend_frame(points: list[dict]) -> pd.DataFrame:
    """Trend points as a DataFrame with a datetime 'date' column, for plotting."""
    if not points:
        return pd.DataFrame(columns=["date"])
    df = pd.DataFrame(points)
    df["date"] = pd.to_datetime(df["date"])
    return df
