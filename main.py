"""
Zinc Oxide Concentrator — End-to-end analytics pipeline.

Loads rows from the hosted database (or simulated rows when no database is
configured), runs them through the aggregation / compliance / trend /
export steps and prints smoke-test summaries.

Usage:
    python main.py
    python main.py --simulate
    python main.py --simulate --workbook 进厂原矿-JDXY.xlsx
"""

import argparse
import logging

import pandas as pd

from concentrator_dashboard import simulator
from concentrator_dashboard.config import (
    MACHINE_DATE_FIELD,
    MACHINE_RUNNING_TABLE,
    PLAN_TABLES,
    PRODUCT_TABLES,
    RAW_MATERIAL_TABLES,
    SUPABASE_ANON_KEY,
    SUPABASE_URL,
)
from concentrator_dashboard.dashboard import (
    aggregate_plan,
    get_core_production_metrics,
    get_current_machine_status,
    get_detail_table,
    get_machine_status_summary,
    get_period_summary,
    get_plan_comparison,
    get_shift_comparison,
    get_source_trend,
)
from concentrator_dashboard.export import export_delimited, export_filename
from concentrator_dashboard.formatters import format_value
from concentrator_dashboard.loaders import (
    RequestGeneration,
    fetch_records,
    load_dataset,
    load_dataset_workbook,
)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

START = "2024-05-01"
END = "2024-05-14"


def load_sources(simulate: bool) -> dict:
    """Fetch every dataset the smoke run needs, or simulate it."""
    if simulate:
        return {
            "incoming_ore": {
                "JDXY": simulator.generate_incoming_ore("JDXY", START, 14, seed=1),
                "FDX": simulator.generate_incoming_ore("FDX", START, 14, skip_prob=0.3, seed=2),
            },
            "outgoing_concentrate": {
                "JDXY": simulator.generate_outgoing_concentrate("JDXY", START, 14, seed=3),
                "FDX": simulator.generate_outgoing_concentrate("FDX", START, 14, seed=4),
            },
            "shift_report": {"JDXY": simulator.generate_shift_report(START, 14)},
            "ball_mill": {
                "FDX": simulator.generate_ball_mill(START, 14, seed=3),
                "KL": simulator.generate_ball_mill(START, 14, seed=9),
            },
            "machine_running": simulator.generate_machine_running(START, 14),
            "raw_material": simulator.generate_raw_material(),
            "product": simulator.generate_product(),
            "plan": simulator.generate_plan(),
        }

    generation = RequestGeneration()
    sources = {}
    for dataset in ("incoming_ore", "outgoing_concentrate", "shift_report", "ball_mill"):
        sources[dataset] = load_dataset(dataset, START, END, generation=generation) or {}
    sources["machine_running"] = fetch_records(
        MACHINE_RUNNING_TABLE, start=START, end=END, date_column=MACHINE_DATE_FIELD,
    )
    sources["raw_material"] = fetch_records(RAW_MATERIAL_TABLES["JDXY"])
    sources["product"] = fetch_records(PRODUCT_TABLES["JDXY"])
    sources["plan"] = fetch_records(PLAN_TABLES["JDXY"])
    return sources


def main() -> None:
    """Run the full analytics pipeline and print smoke-test outputs."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--simulate", action="store_true", help="use simulated rows")
    parser.add_argument(
        "--workbook",
        help="exported incoming-ore workbook; replaces the JDXY incoming ore rows",
    )
    args = parser.parse_args()

    simulate = args.simulate or not (SUPABASE_URL and SUPABASE_ANON_KEY)
    if simulate and not args.simulate:
        logger.warning("No database configured; using simulated rows")

    print("=" * 70)
    print("  ZINC OXIDE CONCENTRATOR — Production & Lab Dashboard")
    print("  Analytics Pipeline Smoke Test")
    print("=" * 70)

    # ------------------------------------------------------------------
    # 1. Load source data
    # ------------------------------------------------------------------
    print("\n[ 1 ] LOADING SOURCE DATA")
    print("-" * 40)
    sources = load_sources(simulate)
    if args.workbook:
        sources["incoming_ore"]["JDXY"] = load_dataset_workbook(args.workbook, "incoming_ore")
    for dataset in ("incoming_ore", "outgoing_concentrate", "shift_report", "ball_mill"):
        for site, rows in sources[dataset].items():
            print(f"  {dataset:22s} {site:5s} {len(rows):4d} rows")

    # ------------------------------------------------------------------
    # 2. Detail tables & summaries
    # ------------------------------------------------------------------
    print("\n[ 2 ] DETAIL TABLES & SUMMARIES")
    print("-" * 40)

    incoming = sources["incoming_ore"]
    for site, rows in incoming.items():
        table = get_detail_table(rows, "incoming_ore", START, END)
        print(f"\nIncoming ore — {site}: {len(table)} days")
        if not table.empty:
            print(table.head(5).to_string(index=False))

        summary = get_period_summary(rows, "incoming_ore", site=site)
        for out, value in summary["values"].items():
            unit = "t" if out.endswith("_t") else "%"
            print(f"  {out:16s} {format_value(value, unit)}")
        for out, result in summary["compliance"].items():
            status = result["status"] if result else "unknown"
            print(f"  [{status}] {result['message'] if result else out}")

    for site, rows in sources["ball_mill"].items():
        summary = get_period_summary(rows, "ball_mill", site=site)
        print(f"\nBall mill — {site}:")
        for out, result in summary["compliance"].items():
            print(f"  {out:24s} {result['status'] if result else 'unknown'}")

    # ------------------------------------------------------------------
    # 3. Trends, shift comparison, production metrics
    # ------------------------------------------------------------------
    print("\n[ 3 ] TRENDS & PRODUCTION METRICS")
    print("-" * 40)

    trend = get_source_trend(incoming, "incoming_ore", fields=["wet_weight_t", "zn_pct"])
    print(f"\nIncoming ore trend: {len(trend)} points")
    if trend:
        print(pd.DataFrame(trend).head(8).to_string(index=False))

    for site, rows in sources["shift_report"].items():
        comparison = get_shift_comparison(rows)
        print(f"\nShift comparison — {site}:")
        if not comparison.empty:
            print(comparison.to_string(index=False))

    report_rows = sources["shift_report"].get("JDXY", [])
    actual = get_core_production_metrics(sources["raw_material"], sources["product"], report_rows)
    plan = aggregate_plan(sources["plan"])
    print("\nActual vs plan:")
    print(get_plan_comparison(actual, plan).to_string(index=False))

    machine = get_machine_status_summary(sources["machine_running"])
    print(f"\nMachine running: {machine['total_records']} entries, {machine['total_hours']:.1f} h")
    for status in machine["statuses"]:
        print(f"  {status['status']:8s} {status['count']:3d}  {status['total_hours']:8.1f} h  {status['percentage']:5.1f}%")
    current = get_current_machine_status(sources["machine_running"])
    if current:
        print(f"  current: {current['设备状态']} for {current['current_duration']}")

    # ------------------------------------------------------------------
    # 4. Export
    # ------------------------------------------------------------------
    print("\n[ 4 ] EXPORT")
    print("-" * 40)
    for site, rows in incoming.items():
        table = get_detail_table(rows, "incoming_ore", START, END)
        columns = [
            ("计量日期", "date"),
            ("进厂湿重(t)", lambda r: format_value(r["wet_weight_t"], "t")),
            ("水份(%)", lambda r: format_value(r["moisture_pct"], "%")),
            ("Pb(%)", lambda r: format_value(r["pb_pct"], "%")),
            ("Zn(%)", lambda r: format_value(r["zn_pct"], "%")),
            ("记录数", "record_count"),
        ]
        path = export_delimited(table, columns, export_filename("进厂原矿数据汇总", site, START, END))
        print(f"  {site}: {path if path else '暂无数据'}")

    print("\n" + "=" * 70)
    print("  Pipeline complete.")
    print("=" * 70)


if __name__ == "__main__":
    main()
