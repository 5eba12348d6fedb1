"""
Loader for lab / weighbridge sheets exported to Excel.

Used when the hosted database is unreachable and the plant office hands
over a workbook instead. The header row is located by matching known
column names, so title rows and blank rows above the table are tolerated.
Rows come back in the same shape as database rows (column name -> value).
"""

import logging

import openpyxl

from ..config import DATASETS
from .utils import date_key, find_header_row

logger = logging.getLogger(__name__)


def dataset_signature(dataset: str) -> set[str]:
    """Column names expected in a sheet holding `dataset` rows."""
    config = DATASETS[dataset]
    signature = {config["date_field"]}
    if config.get("shift_field"):
        signature.add(config["shift_field"])
    for spec in config["fields"]:
        signature.add(spec["field"])
        if spec.get("weight_field"):
            signature.add(spec["weight_field"])
    return signature


def _read_records(wb, path, signature, sheet_name, date_field, max_header_rows) -> list[dict]:
    if sheet_name is None or sheet_name not in wb.sheetnames:
        if sheet_name is not None:
            logger.warning("Sheet '%s' not found, using '%s'", sheet_name, wb.sheetnames[0])
        sheet_name = wb.sheetnames[0]

    ws = wb[sheet_name]
    header_row = find_header_row(ws, signature, max_rows=min(max_header_rows, ws.max_row))
    if header_row is None:
        logger.warning("No header row matching %s in %s [%s]", sorted(signature), path, sheet_name)
        return []

    headers: dict[int, str] = {}
    for cell in ws[header_row]:
        if cell.value is not None and str(cell.value).strip():
            headers[cell.column] = str(cell.value).strip()

    records = []
    for row in ws.iter_rows(min_row=header_row + 1, max_row=ws.max_row):
        record = {}
        for cell in row:
            name = headers.get(cell.column)
            if name is None:
                continue
            value = cell.value
            if isinstance(value, str):
                value = value.strip() or None
            record[name] = value
        if all(v is None for v in record.values()):
            continue
        if date_field and date_field in record:
            record[date_field] = date_key(record[date_field])
        records.append(record)

    logger.info("Loaded %d rows from %s [%s]", len(records), path, sheet_name)
    return records


def load_sheet_records(
    path: str,
    signature: set[str],
    sheet_name: str | None = None,
    date_field: str | None = None,
    max_header_rows: int = 20,
) -> list[dict]:
    """Read the table below the detected header row of a worksheet.

    Assumptions
    -----------
    - The header row contains at least two names from `signature`.
    - Data rows follow the header; fully blank rows are skipped.
    - Columns with an empty header are ignored.

    Parameters
    ----------
    path : Path to the .xlsx file, or a binary file object (e.g. an upload).
    signature : Expected column names used to find the header row.
    sheet_name : Sheet to read; defaults to the first sheet.
    date_field : If given, values in this column are normalised to YYYY-MM-DD.

    Returns
    -------
    List of dicts keyed by header name.
    """
    try:
        wb = openpyxl.load_workbook(path, data_only=True, read_only=False)
    except Exception:
        logger.exception("Failed to open workbook: %s", path)
        raise

    try:
        return _read_records(wb, path, signature, sheet_name, date_field, max_header_rows)
    finally:
        wb.close()


def load_dataset_workbook(path: str, dataset: str, sheet_name: str | None = None) -> list[dict]:
    """Load rows of a configured dataset from an exported workbook."""
    return load_sheet_records(
        path,
        dataset_signature(dataset),
        sheet_name=sheet_name,
        date_field=DATASETS[dataset]["date_field"],
    )
