"""
Zinc Oxide Concentrator — Production & Lab Dashboard

Analytics backend that turns rows from the plant's hosted database
(weighbridge, lab assays, shift reports) into dashboard-ready rollups.

The core is a set of pure functions:
    aggregation.aggregate   per-day sums and weighted averages
    compliance.classify     status of a value against its standard band
    trends.build_trend      multi-source, date-indexed chart series
    export.encode_delimited CSV bytes for download

To add a new dataset:
    Add an entry to config.DATASETS with its date column, source tables and
    field-spec table; dashboard.get_detail_table() and friends pick it up.

To add a new compliance standard:
    Add it to config.DEFAULT_STANDARDS (plant-wide) or
    config.COMPLIANCE_STANDARDS (per site), then map the aggregated column
    to it in the dataset's "compliance" entry.
"""

from .aggregation import aggregate
from .compliance import classify
from .export import encode_delimited, export_delimited
from .trends import build_trend

__all__ = [
    "aggregate",
    "classify",
    "build_trend",
    "encode_delimited",
    "export_delimited",
]
