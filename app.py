"""
Zinc Oxide Concentrator — Interactive Dashboard

Run with:  streamlit run app.py
"""

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from concentrator_dashboard import simulator
from concentrator_dashboard.config import (
    DATASETS,
    MACHINE_DATE_FIELD,
    MACHINE_RUNNING_TABLE,
    MACHINE_TIME_FIELD,
    PLAN_TABLES,
    PRODUCT_TABLES,
    RAW_MATERIAL_TABLES,
    SITE_COLORS,
    SITES,
    STATUS_COLORS,
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
from concentrator_dashboard.export import encode_delimited, export_filename
from concentrator_dashboard.formatters import format_value
from concentrator_dashboard.loaders import (
    RequestGeneration,
    fetch_records,
    load_dataset,
    load_dataset_workbook,
)
from concentrator_dashboard.trends import trend_frame

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="Concentrator Dashboard",
    page_icon="⛏️",
    layout="wide",
    initial_sidebar_state="expanded",
)

if "generation" not in st.session_state:
    st.session_state["generation"] = RequestGeneration()

_UNITS = {"_t": "t", "_pct": "%", "_rate": ""}

_LABELS = {
    "wet_weight_t": "湿重",
    "moisture_pct": "水份",
    "pb_pct": "Pb品位",
    "zn_pct": "Zn品位",
    "zn_metal_t": "金属量",
    "pot1_concentration_pct": "一号壶浓度",
    "pot2_concentration_pct": "二号壶浓度",
    "pot2_fineness_pct": "二号壶细度",
    "intake_flow_rate": "进厂流量",
}


def unit_for(column: str) -> str:
    for suffix, unit in _UNITS.items():
        if column.endswith(suffix):
            return unit
    return ""


# ---------------------------------------------------------------------------
# Data loading
# ---------------------------------------------------------------------------
def _simulated_dataset(dataset: str, start: str, days: int) -> dict[str, list[dict]]:
    if dataset == "incoming_ore":
        return {
            "JDXY": simulator.generate_incoming_ore("JDXY", start, days, seed=1),
            "FDX": simulator.generate_incoming_ore("FDX", start, days, skip_prob=0.3, seed=2),
        }
    if dataset == "outgoing_concentrate":
        return {
            "JDXY": simulator.generate_outgoing_concentrate("JDXY", start, days, seed=3),
            "FDX": simulator.generate_outgoing_concentrate("FDX", start, days, seed=4),
        }
    if dataset == "shift_report":
        return {"JDXY": simulator.generate_shift_report(start, days)}
    return {
        "FDX": simulator.generate_ball_mill(start, days, seed=3),
        "KL": simulator.generate_ball_mill(start, days, seed=9),
    }


def fetch_dataset(dataset: str, start: str, end: str, live: bool) -> dict[str, list[dict]]:
    """Fetch a dataset for the current refresh; stop rendering if a newer refresh started.

    An uploaded workbook takes the place of the database for its site.
    """
    if workbook is not None:
        workbook.seek(0)
        rows = load_dataset_workbook(workbook, dataset, sheet_name=DATASETS[dataset]["label"])
        return {workbook_site: rows}

    if not live:
        days = (pd.Timestamp(end) - pd.Timestamp(start)).days + 1
        return _simulated_dataset(dataset, start, max(days, 1))

    result = load_dataset(dataset, start, end, generation=st.session_state["generation"])
    if result is None:
        st.info("A newer refresh is in progress.")
        st.stop()
    return result


def status_badge(result: dict | None) -> str:
    if result is None:
        return f"<span style='color:{STATUS_COLORS['unknown']}'>--</span>"
    color = STATUS_COLORS.get(result["status"], STATUS_COLORS["unknown"])
    text = result.get("label") or result["status"].replace("_", " ")
    return f"<span style='color:{color}; font-weight:600;'>{text}</span>"


def metric_card(label: str, value, unit: str, result: dict | None = None):
    color = STATUS_COLORS.get(result["status"], STATUS_COLORS["unknown"]) if result else "#3498db"
    st.markdown(
        f"""
        <div style="border-left: 4px solid {color}; border-radius: 8px;
                    padding: 12px 16px; margin-bottom: 8px; background: {color}11;">
            <div style="font-size: 13px; color: #888; font-weight: 600;">{label}</div>
            <div style="font-size: 26px; font-weight: 700; color: #222;">{format_value(value, unit)}</div>
            <div style="font-size: 12px;">{status_badge(result) if result else "&nbsp;"}</div>
        </div>
        """,
        unsafe_allow_html=True,
    )


# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
st.sidebar.title("Zinc Oxide Concentrator")
st.sidebar.markdown("Production & Lab Dashboard")
st.sidebar.divider()

configured = bool(SUPABASE_URL and SUPABASE_ANON_KEY)
live = st.sidebar.toggle("Live database", value=configured, disabled=not configured)
if not configured:
    st.sidebar.caption("No database configured — showing simulated data.")

today = pd.Timestamp.today().normalize()
default_start = (today - pd.Timedelta(days=13)) if live else pd.Timestamp("2024-05-01")
default_end = today if live else pd.Timestamp("2024-05-14")
date_range = st.sidebar.date_input("Date range", (default_start.date(), default_end.date()))
if isinstance(date_range, (tuple, list)) and len(date_range) == 2:
    start, end = (d.strftime("%Y-%m-%d") for d in date_range)
else:
    st.sidebar.warning("Select a start and end date.")
    st.stop()

sort_order = st.sidebar.radio("Table order", ["desc", "asc"], horizontal=True)

workbook = st.sidebar.file_uploader("Offline workbook (.xlsx)", type=["xlsx"])
workbook_site = None
if workbook is not None:
    workbook_site = st.sidebar.selectbox("Workbook site", list(SITES), format_func=lambda s: SITES[s])
    st.sidebar.caption("Pages read the sheet named after their dataset, else the first sheet.")

page = st.sidebar.radio(
    "Navigate",
    [
        "Incoming Ore",
        "Outgoing Concentrate",
        "Shift Report",
        "Concentration & Fineness",
        "Machine Running",
        "Production Overview",
    ],
)

if st.sidebar.button("Refresh"):
    st.rerun()


# ===========================================================================
# Detail pages (incoming ore, outgoing concentrate)
# ===========================================================================
def detail_page(dataset: str, title: str, export_prefix: str):
    st.title(title)
    st.caption(f"{start} → {end}")

    by_site = fetch_dataset(dataset, start, end, live)

    # Summary cards per site
    for site, rows in by_site.items():
        st.subheader(f"{SITES.get(site, site)} ({site})")
        summary = get_period_summary(rows, dataset, site=site, start=start, end=end)
        cols = st.columns(len(summary["values"]) or 1)
        for col, (out, value) in zip(cols, summary["values"].items()):
            with col:
                metric_card(_LABELS.get(out, out), value, unit_for(out), summary["compliance"].get(out))

    st.divider()

    # Trend chart
    st.subheader("Trend")
    outputs = [spec.get("output") or spec["field"] for spec in DATASETS[dataset]["fields"]]
    selected = st.selectbox("Series", outputs, format_func=lambda o: _LABELS.get(o, o))
    points = get_source_trend(by_site, dataset, fields=[selected], start=start, end=end)
    df = trend_frame(points)
    if df.empty:
        st.info("暂无数据")
    else:
        fig = go.Figure()
        for site in by_site:
            col = f"{site}_{selected}"
            fig.add_trace(go.Scatter(
                x=df["date"], y=df[col],
                name=SITES.get(site, site),
                mode="lines+markers",
                line=dict(color=SITE_COLORS.get(site), width=2),
                connectgaps=False,
            ))
        fig.update_layout(
            yaxis_title=unit_for(selected),
            height=380,
            plot_bgcolor="rgba(0,0,0,0)",
        )
        st.plotly_chart(fig, use_container_width=True)

    # Detail tables with export
    st.subheader("Daily Summary")
    tabs = st.tabs([SITES.get(site, site) for site in by_site])
    for tab, (site, rows) in zip(tabs, by_site.items()):
        with tab:
            table = get_detail_table(rows, dataset, start, end, sort_order=sort_order)
            if table.empty:
                st.info("暂无数据")
                continue
            display = table.copy()
            for col in outputs:
                display[col] = display[col].apply(lambda v, c=col: format_value(v, unit_for(c)))
            st.dataframe(display, use_container_width=True, hide_index=True)

            columns = [("日期", "date")] + [
                (_LABELS.get(o, o), lambda r, o=o: format_value(r[o], unit_for(o))) for o in outputs
            ] + [("记录数", "record_count")]
            st.download_button(
                "Export CSV",
                data=encode_delimited(table, columns),
                file_name=export_filename(export_prefix, site, start, end),
                mime="text/csv",
                key=f"export-{dataset}-{site}",
            )


if page == "Incoming Ore":
    detail_page("incoming_ore", "Incoming Ore", "进厂原矿数据汇总")

elif page == "Outgoing Concentrate":
    detail_page("outgoing_concentrate", "Outgoing Concentrate", "出厂精矿数据汇总")


# ===========================================================================
# PAGE: Shift Report
# ===========================================================================
elif page == "Shift Report":
    st.title("Shift Report")
    by_site = fetch_dataset("shift_report", start, end, live)

    for site, rows in by_site.items():
        st.subheader(f"{SITES.get(site, site)} ({site})")
        summary = get_period_summary(rows, "shift_report", site=site, start=start, end=end)
        compliance_rows = []
        for out, result in summary["compliance"].items():
            compliance_rows.append({
                "parameter": out,
                "value": format_value(summary["values"].get(out), "%"),
                "status": result["status"] if result else "--",
                "deviation_pct": format_value(result["deviation_pct"]) if result else "--",
                "message": result["message"] if result else "暂无数据",
            })
        if compliance_rows:
            st.dataframe(pd.DataFrame(compliance_rows), use_container_width=True, hide_index=True)

        comparison = get_shift_comparison(rows)
        if comparison.empty:
            st.info("缺少白班或夜班数据")
        else:
            colors = ["#2ecc71" if d >= 0 else "#e74c3c" for d in comparison["difference"]]
            fig = go.Figure(go.Bar(
                x=comparison["difference"],
                y=comparison["parameter"],
                orientation="h",
                marker_color=colors,
            ))
            fig.update_layout(
                title="Day shift − night shift",
                height=420,
                plot_bgcolor="rgba(0,0,0,0)",
            )
            fig.add_vline(x=0, line_dash="dash", line_color="#888")
            st.plotly_chart(fig, use_container_width=True)


# ===========================================================================
# PAGE: Concentration & Fineness
# ===========================================================================
elif page == "Concentration & Fineness":
    st.title("Concentration & Fineness Monitor")
    by_site = fetch_dataset("ball_mill", start, end, live)

    for site, rows in by_site.items():
        st.subheader(f"{SITES.get(site, site)} ({site})")
        summary = get_period_summary(rows, "ball_mill", site=site, start=start, end=end)
        cols = st.columns(len(summary["values"]) or 1)
        for col, (out, value) in zip(cols, summary["values"].items()):
            with col:
                metric_card(_LABELS.get(out, out), value, unit_for(out), summary["compliance"].get(out))

        table = get_detail_table(rows, "ball_mill", start, end, sort_order="asc")
        if not table.empty:
            fig = go.Figure()
            for out in ("pot1_concentration_pct", "pot2_concentration_pct", "pot2_fineness_pct"):
                fig.add_trace(go.Scatter(x=table["date"], y=table[out], name=_LABELS[out], mode="lines+markers"))
            fig.update_layout(height=380, yaxis_title="%", plot_bgcolor="rgba(0,0,0,0)")
            st.plotly_chart(fig, use_container_width=True, key=f"ball-mill-{site}")


# ===========================================================================
# PAGE: Machine Running
# ===========================================================================
elif page == "Machine Running":
    st.title("Machine Running")

    if live:
        machine_rows = fetch_records(
            MACHINE_RUNNING_TABLE, start=start, end=end, date_column=MACHINE_DATE_FIELD,
        )
        latest_rows = fetch_records(
            MACHINE_RUNNING_TABLE, order=f"{MACHINE_DATE_FIELD}.desc,{MACHINE_TIME_FIELD}.desc", limit=1,
        )
    else:
        days = (pd.Timestamp(end) - pd.Timestamp(start)).days + 1
        machine_rows = simulator.generate_machine_running(start, max(days, 1))
        latest_rows = machine_rows

    current = get_current_machine_status(latest_rows)
    if current is None:
        st.info("暂无运行记录")
    else:
        color = STATUS_COLORS.get(current["设备状态"], STATUS_COLORS["unknown"])
        st.markdown(
            f"<div style='font-size:22px;'>Current status: "
            f"<span style='color:{color}; font-weight:700;'>{current['设备状态']}</span>"
            f" for {current['current_duration']}</div>",
            unsafe_allow_html=True,
        )

    summary = get_machine_status_summary(machine_rows)
    if not summary["statuses"]:
        st.info("暂无数据")
    else:
        status_df = pd.DataFrame(summary["statuses"])
        col1, col2 = st.columns([1, 1])
        with col1:
            fig = go.Figure(go.Pie(
                labels=status_df["status"],
                values=status_df["total_hours"],
                marker_colors=[STATUS_COLORS.get(s, STATUS_COLORS["unknown"]) for s in status_df["status"]],
                hole=0.4,
            ))
            fig.update_layout(height=340, title=f"{summary['total_hours']:.1f} h logged")
            st.plotly_chart(fig, use_container_width=True)
        with col2:
            display = status_df.copy()
            display["total_hours"] = display["total_hours"].apply(lambda v: format_value(v, "h"))
            display["percentage"] = display["percentage"].apply(lambda v: format_value(v, "%"))
            st.dataframe(display, use_container_width=True, hide_index=True)

        st.subheader("Log")
        st.dataframe(pd.DataFrame(machine_rows), use_container_width=True, hide_index=True)


# ===========================================================================
# PAGE: Production Overview
# ===========================================================================
elif page == "Production Overview":
    st.title("Production Overview")

    if live:
        raw_material = fetch_records(RAW_MATERIAL_TABLES["JDXY"])
        product = fetch_records(PRODUCT_TABLES["JDXY"])
        plan_rows = fetch_records(PLAN_TABLES["JDXY"])
    else:
        raw_material = simulator.generate_raw_material()
        product = simulator.generate_product()
        plan_rows = simulator.generate_plan()
    report_rows = fetch_dataset("shift_report", start, end, live).get("JDXY", [])

    actual = get_core_production_metrics(raw_material, product, report_rows)
    plan = aggregate_plan(plan_rows)
    comparison = get_plan_comparison(actual, plan)

    cols = st.columns(4)
    labels = {
        "dry_ore_processed_t": ("原矿干重处理量", "t"),
        "concentrate_zn_pct": ("精矿Zn品位", "%"),
        "zn_metal_output_t": ("Zn金属产出量", "t"),
        "zn_recovery_pct": ("回收率", "%"),
    }
    for col, (metric, (label, unit)) in zip(cols, labels.items()):
        with col:
            row = comparison[comparison["metric"] == metric]
            delta = None
            if not row.empty and pd.notna(row.iloc[0]["variance_pct"]):
                delta = f"{row.iloc[0]['variance_pct']:+.1f}% vs plan"
            st.metric(label, format_value(actual[metric], unit), delta=delta)

    st.dataframe(comparison, use_container_width=True, hide_index=True)
