"""
Shared utilities for data ingestion: numeric parsing, date normalisation,
header detection.
"""

import logging
import math
import re
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

_HOURS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*小时")
_MINUTES_RE = re.compile(r"(\d+(?:\.\d+)?)\s*分钟")


def normalise_date(val: Any) -> pd.Timestamp | None:
    """Convert Excel serial number, ISO string or datetime to pd.Timestamp.

    Excel serial numbers use the 1899-12-30 epoch. Time-of-day is dropped
    (day granularity). Returns None for unparseable values.
    """
    if val is None or val == "":
        return None
    if isinstance(val, pd.Timestamp):
        return None if pd.isna(val) else val.normalize()
    if isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        if isinstance(val, float) and not math.isfinite(val):
            return None
        try:
            return pd.Timestamp("1899-12-30") + pd.Timedelta(days=int(val))
        except (ValueError, OverflowError):
            logger.warning("Could not convert serial number %s to date", val)
            return None
    try:
        ts = pd.Timestamp(val)
    except (ValueError, TypeError):
        logger.warning("Could not parse date value: %s", val)
        return None
    if pd.isna(ts):
        return None
    return ts.normalize()


def date_key(val: Any) -> str | None:
    """Return the YYYY-MM-DD key for a date-like value, or None."""
    ts = normalise_date(val)
    return ts.strftime("%Y-%m-%d") if ts is not None else None


def find_header_row(
    sheet,
    signature: set[str],
    max_rows: int = 20,
) -> int | None:
    """Scan an openpyxl sheet for the row containing signature strings.

    Returns the 1-based row index where at least two cells match values
    in `signature`, or None if not found within `max_rows`.
    """
    for row_idx in range(1, max_rows + 1):
        matches = 0
        for cell in sheet[row_idx]:
            if cell.value is not None and str(cell.value).strip() in signature:
                matches += 1
        if matches >= 2:
            return row_idx
    return None


def safe_float(val: Any) -> float | None:
    """Coerce a value to float, returning None for absent or non-numeric values.

    Absent readings stay absent: callers decide whether None counts as 0
    (sums) or is skipped (averages).
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, str):
        # Skip formula strings and text labels
        val = val.strip().replace(",", "")
        if val.startswith("=") or not val:
            return None
        # Handle percentage strings like "78%"
        if val.endswith("%"):
            val = val[:-1].strip()
        try:
            result = float(val)
        except ValueError:
            return None
    else:
        try:
            result = float(val)
        except (ValueError, TypeError):
            return None
    if not math.isfinite(result):
        return None
    return result


def parse_duration(val: Any) -> float:
    """Parse a logged duration such as "8小时", "1小时34分钟" or "45分钟" into hours.

    Numbers are taken as hours already. Anything else (None, free text)
    counts as 0 hours.
    """
    if val is None or isinstance(val, bool):
        return 0.0
    if isinstance(val, (int, float)):
        return float(val) if math.isfinite(val) else 0.0
    text = str(val)
    hours = _HOURS_RE.search(text)
    minutes = _MINUTES_RE.search(text)
    total = 0.0
    if hours:
        total += float(hours.group(1))
    if minutes:
        total += float(minutes.group(1)) / 60
    return total
