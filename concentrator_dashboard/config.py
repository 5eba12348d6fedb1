"""
Configuration: sites, table names, dataset field specs, compliance
standards, database settings.

DATASETS maps each dashboard dataset to its date column, per-site source
table and the declarative field-spec table used by the aggregator.
COMPLIANCE_STANDARDS maps (site, parameter) to its acceptable band.
"""

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
DATA_DIR = Path(__file__).resolve().parent.parent
EXPORT_DIR = Path(os.environ.get("DASHBOARD_EXPORT_DIR", DATA_DIR / "exports"))

# ---------------------------------------------------------------------------
# Plant identity
# ---------------------------------------------------------------------------
PLANT_NAME = "Zinc Oxide Concentrator"

# site code -> display name
SITES: dict[str, str] = {
    "JDXY": "金鼎锌业",
    "FDX": "富鼎翔",
    "KL": "科力",
}

DAY_SHIFT = "白班"
NIGHT_SHIFT = "夜班"

# ---------------------------------------------------------------------------
# Database (Supabase / PostgREST)
# ---------------------------------------------------------------------------
SUPABASE_URL = os.environ.get("SUPABASE_URL") or os.environ.get("NEXT_PUBLIC_SUPABASE_URL")
SUPABASE_ANON_KEY = (
    os.environ.get("SUPABASE_ANON_KEY") or os.environ.get("NEXT_PUBLIC_SUPABASE_ANON_KEY")
)
REQUEST_TIMEOUT_S = float(os.environ.get("DASHBOARD_REQUEST_TIMEOUT_S", "15"))
MAX_FETCH_WORKERS = 4

# ---------------------------------------------------------------------------
# Datasets
# ---------------------------------------------------------------------------
# mode: "sum", "weighted_avg" or "mean"
# weight_field: raw column used to weight a "weighted_avg" field
# output: name of the aggregated column
# compliance: aggregated column -> parameter classified by compliance.py
# column_aliases: per-site column names renamed before aggregation
DATASETS: dict[str, dict] = {
    "incoming_ore": {
        "label": "进厂原矿",
        "date_field": "计量日期",
        "column_aliases": {"进厂湿重": "湿重(t)"},
        "tables": {
            "JDXY": "进厂原矿-JDXY",
            "FDX": "进厂原矿-FDX",
        },
        "fields": [
            {"field": "湿重(t)", "mode": "sum", "output": "wet_weight_t"},
            {"field": "水份(%)", "mode": "weighted_avg", "weight_field": "湿重(t)", "output": "moisture_pct"},
            {"field": "Pb", "mode": "weighted_avg", "weight_field": "湿重(t)", "output": "pb_pct"},
            {"field": "Zn", "mode": "weighted_avg", "weight_field": "湿重(t)", "output": "zn_pct"},
        ],
        "compliance": {"moisture_pct": "ore_moisture_pct"},
    },
    "outgoing_concentrate": {
        "label": "出厂精矿",
        "date_field": "计量日期",
        "tables": {
            "JDXY": "出厂精矿-JDXY",
            "FDX": "出厂精矿-FDX",
        },
        "fields": [
            {"field": "湿重(t)", "mode": "sum", "output": "wet_weight_t"},
            {"field": "水份(%)", "mode": "weighted_avg", "weight_field": "湿重(t)", "output": "moisture_pct"},
            {"field": "Pb", "mode": "weighted_avg", "weight_field": "湿重(t)", "output": "pb_pct"},
            {"field": "Zn", "mode": "weighted_avg", "weight_field": "湿重(t)", "output": "zn_pct"},
            {"field": "金属量(t)", "mode": "sum", "output": "zn_metal_t"},
        ],
        "compliance": {
            "moisture_pct": "concentrate_moisture_pct",
            "zn_pct": "concentrate_zn_pct",
        },
    },
    "shift_report": {
        "label": "生产班报",
        "date_field": "日期",
        "shift_field": "班次",
        "tables": {
            "JDXY": "生产班报-JDXY",
            "FDX": "生产班报-FDX",
        },
        "fields": [
            {"field": "氧化锌原矿-湿重（t）", "mode": "sum", "output": "ore_wet_weight_t"},
            {"field": "氧化锌原矿-干重（t）", "mode": "sum", "output": "ore_dry_weight_t"},
            {"field": "氧化锌原矿-水份（%）", "mode": "weighted_avg",
             "weight_field": "氧化锌原矿-湿重（t）", "output": "ore_moisture_pct"},
            {"field": "氧化锌原矿-Pb全品位（%）", "mode": "weighted_avg",
             "weight_field": "氧化锌原矿-干重（t）", "output": "ore_pb_pct"},
            {"field": "氧化锌原矿-Zn全品位（%）", "mode": "weighted_avg",
             "weight_field": "氧化锌原矿-干重（t）", "output": "ore_zn_pct"},
            {"field": "氧化锌精矿-重量（t）", "mode": "sum", "output": "concentrate_weight_t"},
            {"field": "氧化锌精矿-Pb品位（%）", "mode": "weighted_avg",
             "weight_field": "氧化锌精矿-重量（t）", "output": "concentrate_pb_pct"},
            {"field": "氧化锌精矿-Zn品位（%）", "mode": "weighted_avg",
             "weight_field": "氧化锌精矿-重量（t）", "output": "concentrate_zn_pct"},
            {"field": "氧化锌精矿-Pb金属量（t）", "mode": "sum", "output": "concentrate_pb_metal_t"},
            {"field": "氧化锌精矿-Zn金属量（t）", "mode": "sum", "output": "concentrate_zn_metal_t"},
            {"field": "尾矿-Pb全品位（%）", "mode": "weighted_avg",
             "weight_field": "氧化锌原矿-干重（t）", "output": "tailing_pb_pct"},
            {"field": "尾矿-Zn全品位（%）", "mode": "weighted_avg",
             "weight_field": "氧化锌原矿-干重（t）", "output": "tailing_zn_pct"},
            {"field": "氧化矿Zn理论回收率（%）", "mode": "weighted_avg",
             "weight_field": "氧化锌精矿-重量（t）", "output": "zn_recovery_pct"},
        ],
        "compliance": {
            "ore_moisture_pct": "ore_moisture_pct",
            "concentrate_zn_pct": "concentrate_zn_pct",
            "tailing_zn_pct": "tailing_zn_pct",
            "zn_recovery_pct": "zn_recovery_pct",
        },
    },
    "ball_mill": {
        "label": "浓度细度",
        "date_field": "日期",
        "tables": {
            "FDX": "浓细度记录-FDX",
            "KL": "浓细度记录-KL",
        },
        "fields": [
            {"field": "一号壶浓度", "mode": "mean", "output": "pot1_concentration_pct"},
            {"field": "二号壶浓度", "mode": "mean", "output": "pot2_concentration_pct"},
            {"field": "二号壶细度", "mode": "mean", "output": "pot2_fineness_pct"},
            {"field": "进厂流量", "mode": "mean", "output": "intake_flow_rate"},
        ],
        "compliance": {
            "pot1_concentration_pct": "concentration_pct",
            "pot2_concentration_pct": "concentration_pct",
            "pot2_fineness_pct": "fineness_pct",
            "intake_flow_rate": "intake_flow_rate",
        },
    },
}

# Tables feeding the core production metrics
RAW_MATERIAL_TABLES = {"JDXY": "原料累计-JDXY", "FDX": "原料累计-FDX"}
PRODUCT_TABLES = {"JDXY": "产品累计-JDXY", "FDX": "产品累计-FDX"}
PLAN_TABLES = {"JDXY": "生产计划-JDXY"}

# Machine running log (plant-wide)
MACHINE_RUNNING_TABLE = "机器运行记录"
MACHINE_DATE_FIELD = "日期"
MACHINE_TIME_FIELD = "时间"
MACHINE_STATUS_FIELD = "设备状态"
MACHINE_DURATION_FIELD = "持续时长"
# Display order of the status summary; other statuses follow in first-seen order
MACHINE_STATUS_ORDER = ("正常运行", "设备维护")

# ---------------------------------------------------------------------------
# Compliance standards
# ---------------------------------------------------------------------------
# Fraction of the band width accepted as "warning" just outside [min, max]
WARNING_BAND_FRACTION = 0.1

# Parameter classified by fixed absolute buckets instead of a min/max band
INTAKE_FLOW_PARAMETER = "intake_flow_rate"

# (upper bound, status, label, inclusive); first matching bucket wins.
# Only the 高 bucket includes its upper bound.
INTAKE_FLOW_BANDS: list[tuple[float, str, str, bool]] = [
    (20.0, "extremely_low", "极低", False),
    (30.0, "low", "低", False),
    (40.0, "nominal", "中", False),
    (50.0, "high", "高", True),
]
INTAKE_FLOW_ABOVE = ("extremely_high", "极高")

# Plant-wide defaults, keyed by parameter
DEFAULT_STANDARDS: dict[str, dict] = {
    "concentration_pct": {"min": 60.0, "max": 70.0, "unit": "%", "label": "浓度"},
    "fineness_pct": {"min": 80.0, "max": 90.0, "unit": "%", "label": "细度"},
    "ore_moisture_pct": {"min": 8.0, "max": 15.0, "unit": "%", "label": "原矿水份"},
    "concentrate_moisture_pct": {"min": 8.0, "max": 12.0, "unit": "%", "label": "精矿水份"},
    "concentrate_zn_pct": {"min": 45.0, "max": 55.0, "unit": "%", "label": "精矿Zn品位"},
    "tailing_zn_pct": {"min": 0.0, "max": 3.0, "unit": "%", "label": "尾矿Zn品位"},
    "zn_recovery_pct": {"min": 70.0, "max": 75.0, "unit": "%", "label": "Zn回收率"},
}

# Site-specific overrides, keyed by (site, parameter)
COMPLIANCE_STANDARDS: dict[tuple[str, str], dict] = {
    ("JDXY", "concentrate_zn_pct"): {"min": 48.0, "max": 55.0, "unit": "%", "label": "精矿Zn品位"},
    ("JDXY", "zn_recovery_pct"): {"min": 70.0, "max": 75.0, "unit": "%", "label": "Zn回收率"},
    ("FDX", "concentrate_zn_pct"): {"min": 45.0, "max": 52.0, "unit": "%", "label": "精矿Zn品位"},
    ("FDX", "zn_recovery_pct"): {"min": 68.0, "max": 74.0, "unit": "%", "label": "Zn回收率"},
    ("KL", "zn_recovery_pct"): {"min": 65.0, "max": 72.0, "unit": "%", "label": "Zn回收率"},
}

# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------
STATUS_COLORS = {
    "compliant": "#2ecc71",
    "warning": "#f39c12",
    "non_compliant": "#e74c3c",
    "extremely_low": "#e74c3c",
    "low": "#f39c12",
    "nominal": "#2ecc71",
    "high": "#f39c12",
    "extremely_high": "#e74c3c",
    "正常运行": "#2ecc71",
    "设备维护": "#f39c12",
    "unknown": "#95a5a6",
}

SITE_COLORS = {
    "JDXY": "#3498db",
    "FDX": "#e67e22",
    "KL": "#9b59b6",
}

PLACEHOLDER = "--"
WEIGHT_UNITS = {"t", "kg", "g", "ton", "吨", "千克", "克"}
PERCENTAGE_UNITS = {"%", "percent", "百分比"}
