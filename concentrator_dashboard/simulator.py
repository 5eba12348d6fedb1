"""
Simulated data generator for the concentrator dashboard.

Generates rows shaped like the hosted database tables (same column names)
with typical zinc-oxide plant values. Used for demos and the pipeline
smoke run when no database is configured. All values are synthetic.
"""

import numpy as np
import pandas as pd

from .config import DAY_SHIFT, NIGHT_SHIFT

# ---------------------------------------------------------------------------
# Typical plant parameters (realistic ranges) per site
# ---------------------------------------------------------------------------
_ORE_PARAMS = {
    "JDXY": {"trucks": 6, "wet_t": 32.0, "moisture": 11.5, "pb": 1.8, "zn": 12.5},
    "FDX": {"trucks": 4, "wet_t": 28.0, "moisture": 10.8, "pb": 2.1, "zn": 11.2},
    "KL": {"trucks": 3, "wet_t": 30.0, "moisture": 12.0, "pb": 1.5, "zn": 10.4},
}

_CONCENTRATE_PARAMS = {
    "JDXY": {"trucks": 2, "wet_t": 30.0, "moisture": 10.0, "pb": 1.2, "zn": 50.5},
    "FDX": {"trucks": 2, "wet_t": 26.0, "moisture": 10.5, "pb": 1.4, "zn": 48.0},
    "KL": {"trucks": 1, "wet_t": 28.0, "moisture": 10.2, "pb": 1.1, "zn": 47.0},
}


def _dates(start: str, days: int) -> pd.DatetimeIndex:
    return pd.date_range(start, periods=days, freq="D")


def generate_incoming_ore(
    site: str = "JDXY",
    start: str = "2024-05-01",
    days: int = 14,
    skip_prob: float = 0.1,
    missing_prob: float = 0.05,
    seed: int = 42,
) -> list[dict]:
    """Generate weighbridge + assay rows for incoming ore (进厂原矿).

    Some days have no deliveries (skip_prob) and some assays are missing
    (missing_prob) so gaps and absent values show up downstream.
    """
    rng = np.random.default_rng(seed)
    params = _ORE_PARAMS[site]
    wet_col = "进厂湿重" if site == "FDX" else "湿重(t)"
    rows = []

    for date in _dates(start, days):
        if rng.random() < skip_prob:
            continue
        for truck in range(int(rng.integers(1, params["trucks"] + 1))):
            moisture = round(params["moisture"] + rng.normal(0, 0.8), 2)
            rows.append({
                "计量日期": date.strftime("%Y-%m-%d"),
                "车号": f"{site}-{truck + 1:02d}",
                "发货单位名称": "矿山一, 二号坑口" if truck % 3 == 0 else "矿山三号坑口",
                wet_col: round(params["wet_t"] + rng.normal(0, 3), 3),
                "水份(%)": None if rng.random() < missing_prob else moisture,
                "Pb": round(params["pb"] + rng.normal(0, 0.2), 2),
                "Zn": round(params["zn"] + rng.normal(0, 0.9), 2),
            })

    return rows


def generate_outgoing_concentrate(
    site: str = "JDXY",
    start: str = "2024-05-01",
    days: int = 14,
    skip_prob: float = 0.2,
    seed: int = 7,
) -> list[dict]:
    """Generate rows for outgoing concentrate shipments (出厂精矿)."""
    rng = np.random.default_rng(seed)
    params = _CONCENTRATE_PARAMS[site]
    rows = []

    for date in _dates(start, days):
        if rng.random() < skip_prob:
            continue
        for _ in range(int(rng.integers(1, params["trucks"] + 1))):
            wet = round(params["wet_t"] + rng.normal(0, 2.5), 3)
            moisture = round(params["moisture"] + rng.normal(0, 0.6), 2)
            zn = round(params["zn"] + rng.normal(0, 1.5), 2)
            dry = wet * (1 - moisture / 100)
            rows.append({
                "计量日期": date.strftime("%Y-%m-%d"),
                "湿重(t)": wet,
                "水份(%)": moisture,
                "Pb": round(params["pb"] + rng.normal(0, 0.15), 2),
                "Zn": zn,
                "金属量(t)": round(dry * zn / 100, 3),
            })

    return rows


def generate_shift_report(
    start: str = "2024-05-01",
    days: int = 14,
    cycle: str = "2024-05",
    seed: int = 11,
) -> list[dict]:
    """Generate production shift reports (生产班报), one row per shift."""
    rng = np.random.default_rng(seed)
    rows = []

    for date in _dates(start, days):
        for shift in (DAY_SHIFT, NIGHT_SHIFT):
            wet = round(95 + rng.normal(0, 8), 3)
            moisture = round(11.5 + rng.normal(0, 0.7), 2)
            dry = round(wet * (1 - moisture / 100), 3)
            ore_zn = round(12.0 + rng.normal(0, 0.8), 2)
            ore_pb = round(1.8 + rng.normal(0, 0.15), 2)
            tail_zn = round(2.4 + rng.normal(0, 0.3), 2)
            recovery = round(72.0 + rng.normal(0, 1.5), 2)
            conc_zn = round(50.0 + rng.normal(0, 1.8), 2)
            conc_pb = round(1.3 + rng.normal(0, 0.1), 2)
            conc_t = round(dry * ore_zn / 100 * recovery / 100 / (conc_zn / 100), 3)
            rows.append({
                "日期": date.strftime("%Y-%m-%d"),
                "班次": shift,
                "生产周期": cycle,
                "氧化锌原矿-湿重（t）": wet,
                "氧化锌原矿-干重（t）": dry,
                "氧化锌原矿-水份（%）": moisture,
                "氧化锌原矿-Pb全品位（%）": ore_pb,
                "氧化锌原矿-Zn全品位（%）": ore_zn,
                "氧化锌精矿-重量（t）": conc_t,
                "氧化锌精矿-Pb品位（%）": conc_pb,
                "氧化锌精矿-Zn品位（%）": conc_zn,
                "氧化锌精矿-Pb金属量（t）": round(conc_t * conc_pb / 100, 3),
                "氧化锌精矿-Zn金属量（t）": round(conc_t * conc_zn / 100, 3),
                "尾矿-Pb全品位（%）": round(0.9 + rng.normal(0, 0.1), 2),
                "尾矿-Zn全品位（%）": tail_zn,
                "氧化矿Zn理论回收率（%）": recovery,
            })

    return rows


def generate_ball_mill(
    start: str = "2024-05-01",
    days: int = 14,
    samples_per_day: int = 4,
    seed: int = 3,
) -> list[dict]:
    """Generate ball-mill concentration / fineness samples (浓度细度)."""
    rng = np.random.default_rng(seed)
    rows = []

    for date in _dates(start, days):
        for i in range(samples_per_day):
            rows.append({
                "日期": date.strftime("%Y-%m-%d"),
                "时间": f"{2 + i * 6:02d}:00",
                "一号壶浓度": round(65 + rng.normal(0, 3), 2),
                "二号壶浓度": round(64 + rng.normal(0, 3), 2),
                "二号壶细度": round(85 + rng.normal(0, 4), 2),
                "进厂流量": round(35 + rng.normal(0, 9), 1),
            })

    return rows


def generate_raw_material(cycles: list[str] | None = None, seed: int = 5) -> list[dict]:
    """Generate raw-material ledger rows (原料累计), one per production cycle."""
    rng = np.random.default_rng(seed)
    cycles = cycles or ["2024-04", "2024-05"]
    return [
        {"生产周期": cycle, "本月消耗量": round(2600 + rng.normal(0, 150), 3)}
        for cycle in cycles
    ]


def generate_product(cycles: list[str] | None = None, seed: int = 6) -> list[dict]:
    """Generate product ledger rows (产品累计), one per production cycle."""
    rng = np.random.default_rng(seed)
    cycles = cycles or ["2024-04", "2024-05"]
    return [
        {"生产周期": cycle, "本月产量": round(460 + rng.normal(0, 30), 3)}
        for cycle in cycles
    ]


def generate_plan(cycles: list[str] | None = None) -> list[dict]:
    """Generate production plan rows (生产计划), one per production cycle."""
    cycles = cycles or ["2024-04", "2024-05"]
    return [
        {
            "生产周期": cycle,
            "原矿干重处理量t": 2700.0,
            "产出精矿Zn品位%": 50.0,
            "产出精矿Zn金属量t": 236.0,
            "回收率%": 73.0,
        }
        for cycle in cycles
    ]


def generate_machine_running(
    start: str = "2024-05-01",
    days: int = 14,
    maintenance_prob: float = 0.15,
    seed: int = 8,
) -> list[dict]:
    """Generate machine running log rows (机器运行记录), one or two per day.

    Durations are free text as logged by the operators, e.g. "21小时30分钟".
    """
    rng = np.random.default_rng(seed)
    operators = ["张伟", "李强", "王磊"]
    rows = []

    for date in _dates(start, days):
        running = 24 * 60
        if rng.random() < maintenance_prob:
            stop = int(rng.integers(60, 8 * 60))
            running -= stop
            rows.append({
                "操作员": operators[int(rng.integers(0, len(operators)))],
                "日期": date.strftime("%Y-%m-%d"),
                "时间": "06:00",
                "设备状态": "设备维护",
                "持续时长": f"{stop // 60}小时{stop % 60}分钟",
                "情况说明": "球磨机衬板检修",
            })
        rows.append({
            "操作员": operators[int(rng.integers(0, len(operators)))],
            "日期": date.strftime("%Y-%m-%d"),
            "时间": "08:00",
            "设备状态": "正常运行",
            "持续时长": f"{running // 60}小时" if running % 60 == 0 else f"{running // 60}小时{running % 60}分钟",
            "情况说明": None,
        })

    return rows
