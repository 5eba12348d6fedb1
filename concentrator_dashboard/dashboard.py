"""
Dashboard-ready output functions.

These are the primary entry points for the Streamlit front end. Each
function takes rows already fetched from the database (or an exported
workbook) and returns plain dicts or DataFrames suitable for rendering
cards, charts and tables.
"""

import logging
from typing import Any, Iterable

import pandas as pd

from .aggregation import aggregate, as_records, by_date, filter_date_range, output_name
from .compliance import classify_parameter
from .config import (
    DATASETS,
    DAY_SHIFT,
    MACHINE_DATE_FIELD,
    MACHINE_DURATION_FIELD,
    MACHINE_STATUS_FIELD,
    MACHINE_STATUS_ORDER,
    MACHINE_TIME_FIELD,
    NIGHT_SHIFT,
)
from .loaders.utils import normalise_date, parse_duration, safe_float
from .trends import build_trend

logger = logging.getLogger(__name__)

_AGGREGATION_LABELS = {"sum": "汇总", "weighted_avg": "加权平均", "mean": "平均"}

# Core production metric columns
_RAW_CONSUMED = "本月消耗量"
_PRODUCED = "本月产量"
_CYCLE = "生产周期"
_CONC_GRADE = "氧化锌精矿-Zn品位（%）"
_CONC_WEIGHT = "氧化锌精矿-重量（t）"
_RECOVERY = "氧化矿Zn理论回收率（%）"

_PLAN_PROCESSING = "原矿干重处理量t"
_PLAN_GRADE = "产出精矿Zn品位%"
_PLAN_METAL = "产出精矿Zn金属量t"
_PLAN_RECOVERY = "回收率%"


def field_specs(dataset: str) -> list[dict]:
    return DATASETS[dataset]["fields"]


def prepare_records(records: Iterable[dict] | pd.DataFrame, dataset: str) -> list[dict]:
    """Return copies of the rows with site-specific column names aliased."""
    aliases = DATASETS[dataset].get("column_aliases", {})
    rows = as_records(records)
    if not aliases:
        return rows
    prepared = []
    for row in rows:
        new_row = dict(row)
        for alias, canonical in aliases.items():
            if alias in new_row and canonical not in new_row:
                new_row[canonical] = new_row.pop(alias)
        prepared.append(new_row)
    return prepared


def _mask_unread_averages(
    aggregated: dict[str, dict],
    rows: list[dict],
    group_key,
    specs: list[dict],
) -> dict[str, dict]:
    """Set averages with no contributing reading in their group to None.

    aggregate() reports such averages as 0; the dashboard shows them as a
    placeholder and leaves a gap in charts instead.
    """
    averaged = [s for s in specs if s.get("mode", "sum") != "sum"]
    if not averaged:
        return aggregated

    read: dict[str, set[str]] = {}
    for row in rows:
        key = group_key(row)
        if key is None:
            continue
        for spec in averaged:
            if safe_float(row.get(spec["field"])) is not None:
                read.setdefault(key, set()).add(output_name(spec))

    for key, record in aggregated.items():
        seen = read.get(key, set())
        for spec in averaged:
            out = output_name(spec)
            if out not in seen:
                record[out] = None
    return aggregated


def aggregate_by_date(
    records: Iterable[dict] | pd.DataFrame,
    dataset: str,
    start: Any = None,
    end: Any = None,
) -> list[dict]:
    """Per-day aggregated records for a dataset, ascending by date.

    Averages of a day without any reading are None.
    """
    date_field = DATASETS[dataset]["date_field"]
    specs = field_specs(dataset)
    rows = filter_date_range(prepare_records(records, dataset), start, end, date_field)
    group_key = by_date(date_field)
    aggregated = aggregate(rows, group_key, specs, key_name="date")
    _mask_unread_averages(aggregated, rows, group_key, specs)
    return [aggregated[k] for k in sorted(aggregated)]


def get_detail_table(
    records: Iterable[dict] | pd.DataFrame,
    dataset: str,
    start: Any = None,
    end: Any = None,
    sort_order: str = "desc",
) -> pd.DataFrame:
    """Detail table: one row per day within [start, end].

    Returns
    -------
    DataFrame with columns:
        date, <aggregated outputs>, record_count
    Averages of a day without any reading are NaN (displayed as "--").
    """
    columns = ["date"] + [output_name(s) for s in field_specs(dataset)] + ["record_count"]
    days = aggregate_by_date(records, dataset, start, end)
    if sort_order == "desc":
        days = days[::-1]
    df = pd.DataFrame(days, columns=columns)
    logger.info("Built %s detail table with %d rows", dataset, len(df))
    return df


def get_period_summary(
    records: Iterable[dict] | pd.DataFrame,
    dataset: str,
    site: str | None = None,
    start: Any = None,
    end: Any = None,
) -> dict:
    """Totals, weighted averages and compliance for a period (or single day).

    Averages with no contributing reading are None rather than 0, so the
    front end shows a placeholder instead of a false zero.

    Returns
    -------
    {
        "dataset": "incoming_ore",
        "site": "JDXY",
        "record_count": 12,
        "values": {"wet_weight_t": 380.2, "moisture_pct": 11.4, ...},
        "compliance": {"moisture_pct": {"status": "compliant", ...}, ...},
    }
    """
    config = DATASETS[dataset]
    rows = filter_date_range(prepare_records(records, dataset), start, end, config["date_field"])
    specs = field_specs(dataset)

    summary: dict = {
        "dataset": dataset,
        "site": site,
        "record_count": len(rows),
        "values": {},
        "compliance": {},
    }

    if not rows:
        logger.warning("No %s rows for site=%s in %s..%s", dataset, site, start, end)
        for spec in specs:
            summary["values"][output_name(spec)] = None
        return summary

    def whole_period(r):
        return "total"

    aggregated = aggregate(rows, whole_period, specs)
    total = _mask_unread_averages(aggregated, rows, whole_period, specs)["total"]
    for spec in specs:
        out = output_name(spec)
        summary["values"][out] = total[out]

    for out, parameter in config.get("compliance", {}).items():
        summary["compliance"][out] = classify_parameter(parameter, summary["values"].get(out), site)

    return summary


def get_source_trend(
    records_by_source: dict[str, Iterable[dict] | pd.DataFrame],
    dataset: str,
    fields: list[str] | None = None,
    start: Any = None,
    end: Any = None,
) -> list[dict]:
    """Multi-source trend points for the chart, one per date across all sources."""
    sources = {
        source: aggregate_by_date(records, dataset, start, end)
        for source, records in records_by_source.items()
    }
    if fields is None:
        fields = [output_name(spec) for spec in field_specs(dataset)]
    return build_trend(sources, fields=fields)


def get_shift_comparison(
    records: Iterable[dict] | pd.DataFrame,
    dataset: str = "shift_report",
    outputs: list[str] | None = None,
) -> pd.DataFrame:
    """Day shift minus night shift, each aggregated over the whole range.

    Returns
    -------
    DataFrame with columns:
        parameter, day_shift_value, night_shift_value, difference, aggregation
    Empty when either shift has no rows.
    """
    columns = ["parameter", "day_shift_value", "night_shift_value", "difference", "aggregation"]
    config = DATASETS[dataset]
    shift_field = config.get("shift_field", "班次")
    specs = field_specs(dataset)
    if outputs is not None:
        specs = [s for s in specs if output_name(s) in outputs]

    aggregated = aggregate(prepare_records(records, dataset), shift_field, specs)
    day = aggregated.get(DAY_SHIFT)
    night = aggregated.get(NIGHT_SHIFT)
    if day is None or night is None:
        logger.warning("Shift comparison needs both %s and %s rows", DAY_SHIFT, NIGHT_SHIFT)
        return pd.DataFrame(columns=columns)

    rows = []
    for spec in specs:
        out = output_name(spec)
        rows.append({
            "parameter": out,
            "day_shift_value": day[out],
            "night_shift_value": night[out],
            "difference": round(day[out] - night[out], 3),
            "aggregation": _AGGREGATION_LABELS[spec.get("mode", "sum")],
        })
    return pd.DataFrame(rows, columns=columns)


def _weighted_average(
    rows: list[dict],
    value_field: str,
    weight_field: str,
    default_weight: float = 1.0,
) -> float:
    """Weighted average where a missing or zero weight counts as `default_weight`."""
    weighted_rows = []
    for row in rows:
        weight = safe_float(row.get(weight_field))
        weighted_rows.append({
            "value": row.get(value_field),
            "weight": weight if weight else default_weight,
        })
    spec = [{"field": "value", "mode": "weighted_avg", "weight_field": "weight"}]
    result = aggregate(weighted_rows, lambda r: "all", spec)
    return result["all"]["value"] if result else 0.0


def get_core_production_metrics(
    raw_material: Iterable[dict] | pd.DataFrame,
    product: Iterable[dict] | pd.DataFrame,
    shift_report: Iterable[dict] | pd.DataFrame,
) -> dict:
    """Headline production metrics for the boss overview.

    Rules
    -----
    - dry_ore_processed_t: Σ 本月消耗量 of the raw-material ledger.
    - concentrate_zn_pct:  concentrate Zn grade, weighted by concentrate weight
                           (missing weight counts as 1).
    - zn_metal_output_t:   Σ over production cycles of 本月产量 × cycle grade / 100;
                           a cycle without shift data uses the overall grade.
    - zn_recovery_pct:     theoretical recovery, weighted like the grade.
    """
    raw_rows = as_records(raw_material)
    product_rows = as_records(product)
    report_rows = as_records(shift_report)

    total_processing = sum(safe_float(r.get(_RAW_CONSUMED)) or 0.0 for r in raw_rows)
    avg_grade = _weighted_average(report_rows, _CONC_GRADE, _CONC_WEIGHT)

    metal_by_cycle: dict[str, float] = {}
    for record in product_rows:
        cycle = record.get(_CYCLE)
        production = safe_float(record.get(_PRODUCED)) or 0.0
        cycle_rows = [r for r in report_rows if r.get(_CYCLE) == cycle]
        grade = _weighted_average(cycle_rows, _CONC_GRADE, _CONC_WEIGHT) if cycle_rows else avg_grade
        metal_by_cycle[cycle] = metal_by_cycle.get(cycle, 0.0) + production * grade / 100

    metrics = {
        "dry_ore_processed_t": total_processing,
        "concentrate_zn_pct": avg_grade,
        "zn_metal_output_t": sum(metal_by_cycle.values()),
        "zn_recovery_pct": _weighted_average(report_rows, _RECOVERY, _CONC_WEIGHT),
    }
    logger.info("Computed core production metrics over %d cycles", len(metal_by_cycle))
    return metrics


def aggregate_plan(plan_rows: Iterable[dict] | pd.DataFrame) -> dict:
    """Roll up production-plan rows across cycles.

    Tonnages are summed; grade and recovery are averaged weighted by the
    planned dry-ore processing.
    """
    rows = as_records(plan_rows)
    keys = ("dry_ore_processed_t", "concentrate_zn_pct", "zn_metal_output_t", "zn_recovery_pct")
    if not rows:
        return dict.fromkeys(keys, 0.0)

    specs = [
        {"field": _PLAN_PROCESSING, "mode": "sum", "output": "dry_ore_processed_t"},
        {"field": _PLAN_GRADE, "mode": "weighted_avg", "weight_field": _PLAN_PROCESSING,
         "output": "concentrate_zn_pct"},
        {"field": _PLAN_METAL, "mode": "sum", "output": "zn_metal_output_t"},
        {"field": _PLAN_RECOVERY, "mode": "weighted_avg", "weight_field": _PLAN_PROCESSING,
         "output": "zn_recovery_pct"},
    ]
    total = aggregate(rows, lambda r: "plan", specs)["plan"]
    return {k: total[k] for k in keys}


def calc_variance(actual: float, plan: float) -> tuple[float, float | None]:
    """Return (absolute_variance, pct_variance).

    pct_variance is None if plan == 0.
    """
    absolute = actual - plan
    if plan == 0:
        return absolute, None
    return absolute, (absolute / plan) * 100


def get_plan_comparison(actual: dict, plan: dict) -> pd.DataFrame:
    """Actual vs plan, one row per metric present in both.

    Returns
    -------
    DataFrame with columns: metric, actual, plan, variance, variance_pct
    """
    rows = []
    for metric, plan_value in plan.items():
        if metric not in actual:
            continue
        actual_value = actual[metric]
        if actual_value is None or plan_value is None:
            variance, variance_pct = None, None
        else:
            variance, variance_pct = calc_variance(actual_value, plan_value)
        rows.append({
            "metric": metric,
            "actual": actual_value,
            "plan": plan_value,
            "variance": variance,
            "variance_pct": variance_pct,
        })
    return pd.DataFrame(rows, columns=["metric", "actual", "plan", "variance", "variance_pct"])


def get_machine_status_summary(records: Iterable[dict] | pd.DataFrame) -> dict:
    """Running time per equipment status.

    Durations are logged as text ("1小时34分钟") and parsed to hours.
    正常运行 and 设备维护 come first; any other status follows in the order
    it first appears.

    Returns
    -------
    {
        "statuses": [
            {"status": "正常运行", "count": 12, "total_hours": 160.5, "percentage": 91.2},
            ...
        ],
        "total_records": 14,
        "total_hours": 176.0,
    }
    """
    rows = [
        {"status": r.get(MACHINE_STATUS_FIELD), "hours": parse_duration(r.get(MACHINE_DURATION_FIELD))}
        for r in as_records(records)
    ]
    specs = [{"field": "hours", "mode": "sum", "output": "total_hours"}]
    by_status = aggregate(rows, "status", specs)

    total_hours = sum(group["total_hours"] for group in by_status.values())
    ordered = [s for s in MACHINE_STATUS_ORDER if s in by_status]
    ordered += [s for s in by_status if s not in MACHINE_STATUS_ORDER]

    statuses = []
    for status in ordered:
        group = by_status[status]
        statuses.append({
            "status": status,
            "count": group["record_count"],
            "total_hours": group["total_hours"],
            "percentage": group["total_hours"] / total_hours * 100 if total_hours > 0 else 0.0,
        })

    return {
        "statuses": statuses,
        "total_records": sum(s["count"] for s in statuses),
        "total_hours": total_hours,
    }


def _logged_at(record: dict) -> pd.Timestamp | None:
    day = normalise_date(record.get(MACHINE_DATE_FIELD))
    if day is None:
        return None
    time = record.get(MACHINE_TIME_FIELD)
    if time:
        try:
            return pd.Timestamp(f"{day:%Y-%m-%d} {time}")
        except ValueError:
            logger.warning("Could not parse machine log time: %s", time)
    return day


def get_current_machine_status(
    records: Iterable[dict] | pd.DataFrame,
    now: pd.Timestamp | None = None,
) -> dict | None:
    """The latest machine log entry and how long its status has lasted.

    Returns the record plus "current_duration" ("5小时12分钟"),
    "duration_hours" and "duration_minutes", or None when there is no
    dated record.
    """
    dated = []
    for record in as_records(records):
        logged_at = _logged_at(record)
        if logged_at is not None:
            dated.append((logged_at, record))
    if not dated:
        return None

    logged_at, latest = max(dated, key=lambda item: item[0])
    now = now if now is not None else pd.Timestamp.now()
    minutes = max(int((now - logged_at).total_seconds() // 60), 0)
    hours, minutes = divmod(minutes, 60)

    return {
        **latest,
        "current_duration": f"{hours}小时{minutes}分钟",
        "duration_hours": hours,
        "duration_minutes": minutes,
    }
