"""
Delimited-text export for detail tables.

Produces UTF-8 bytes with a leading byte-order mark so spreadsheet tools
detect the encoding, and RFC 4180 quoting for fields containing the
delimiter, quote character or line breaks (unit names can contain commas).
"""

import csv
import logging
from pathlib import Path
from typing import Any, Callable, Iterable

import pandas as pd

from .aggregation import as_records
from .config import EXPORT_DIR

logger = logging.getLogger(__name__)

Column = tuple[str, Callable[[dict], Any] | str] | dict


def _normalise_columns(columns: list[Column]) -> list[tuple[str, Callable[[dict], Any]]]:
    """Accept (header, accessor) pairs or {"header", "accessor"} dicts.

    An accessor may be a callable or a field name.
    """
    normalised = []
    for col in columns:
        if isinstance(col, dict):
            header, accessor = col["header"], col.get("accessor", col["header"])
        else:
            header, accessor = col
        if not callable(accessor):
            field = accessor
            accessor = lambda record, field=field: record.get(field)  # noqa: E731
        normalised.append((str(header), accessor))
    return normalised


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value)


def encode_delimited(
    records: Iterable[dict] | pd.DataFrame,
    columns: list[Column],
    delimiter: str = ",",
) -> bytes:
    """Encode records as delimited text: header line + one line per record.

    Row order follows the input. Returns UTF-8 bytes prefixed with a BOM.
    """
    cols = _normalise_columns(columns)
    headers = [header for header, _ in cols]
    rows = [[_cell(accessor(record)) for _, accessor in cols] for record in as_records(records)]

    df = pd.DataFrame(rows, columns=headers, dtype="object")
    text = df.to_csv(
        index=False,
        sep=delimiter,
        quoting=csv.QUOTE_MINIMAL,
        quotechar='"',
        lineterminator="\r\n",
    )
    return text.encode("utf-8-sig")


def export_filename(prefix: str, source: str, start: Any, end: Any) -> str:
    """Build the download name used by the detail pages, e.g. 进厂原矿数据汇总_JDXY_2024-05-01_2024-05-31.csv."""
    return f"{prefix}_{source}_{start}_{end}.csv"


def export_delimited(
    records: Iterable[dict] | pd.DataFrame,
    columns: list[Column],
    filename: str,
    directory: str | Path | None = None,
) -> Path | None:
    """Write the encoded records to `directory / filename`.

    Refuses to write an empty export: logs a warning and returns None so the
    caller can show a "no data" alert instead.
    """
    rows = as_records(records)
    if not rows:
        logger.warning("No records to export for %s", filename)
        return None

    target_dir = Path(directory) if directory is not None else EXPORT_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / filename
    path.write_bytes(encode_delimited(rows, columns))

    logger.info("Exported %d records to %s", len(rows), path)
    return path
