"""Data access: hosted database REST fetches and exported workbooks."""

from .supabase import RequestGeneration, fetch_table, fetch_records
from .supabase import fetch_many, load_dataset
from .workbook import load_sheet_records, load_dataset_workbook

__all__ = [
    "RequestGeneration",
    "fetch_table",
    "fetch_records",
    "fetch_many",
    "load_dataset",
    "load_sheet_records",
    "load_dataset_workbook",
]
