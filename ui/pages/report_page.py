from __future__ import annotations

import logging

import streamlit as st

from core.config import AppConfig, SERIES_LABELS
from core.errors import LoadError
from infrastructure.reporting.figures import (
    daily_counts_figure,
    decomposition_figure,
    forecast_figure,
    moving_average_figure,
    series_figure,
)
from use_cases.build_report import build_report
from use_cases.run_pipeline import RunPipelineInput, RunPipelineOutput, run_pipeline_uc
from ui.components.charts import render_chart
from ui.components.metrics import render_metrics_block
from ui.components.tables import render_comparison_table, render_forecast_values, render_summary_table

logger = logging.getLogger(__name__)


def _render_output(cfg: AppConfig, out: RunPipelineOutput) -> None:
    ss = out.series_set
    m = out.meta
    st.caption(
        f"{m['file_name']}: {m['rows_count']} days, {m['date_range_start']} to {m['date_range_end']}. "
        "Missing counts and absent days are filled with zero."
    )
    for name, err in out.errors.items():
        st.error(f"{SERIES_LABELS.get(name, name)} was not forecast: {err}")

    tab_data, tab_dec, tab_fc, tab_acc = st.tabs(["Data", "Decomposition", "Forecasts", "Accuracy"])

    with tab_data:
        st.subheader("Summary statistics")
        render_summary_table(out.summary)
        render_chart(lambda: daily_counts_figure(ss))
        render_chart(lambda: moving_average_figure(ss))
        for name in ss.names():
            with st.expander(f"{SERIES_LABELS.get(name, name)}: daily and 7-day average"):
                render_chart(lambda n=name: series_figure(ss[n]))

    with tab_dec:
        if cfg.seasonal and cfg.decomposition_period != cfg.seasonal_period:
            st.warning(
                f"The decomposition uses a {cfg.decomposition_period}-day period; "
                f"the daily counts cycle every {cfg.seasonal_period} days."
            )
        for name, outcome in out.outcomes.items():
            if outcome.decomposition is not None:
                render_chart(lambda n=name, d=outcome.decomposition: decomposition_figure(ss[n], d))
            elif outcome.decomposition_error:
                st.info(f"{SERIES_LABELS.get(name, name)}: {outcome.decomposition_error}")

    with tab_fc:
        st.subheader(f"First {cfg.table_rows} forecast days")
        render_comparison_table(out.results, rows=cfg.table_rows)
        for name, outcome in out.outcomes.items():
            if outcome.forecast is None:
                continue
            render_chart(lambda n=name, r=outcome.forecast: forecast_figure(ss[n], r, cfg.history_days))
            with st.expander(f"{SERIES_LABELS.get(name, name)}: forecast values"):
                render_forecast_values(outcome.forecast)

    with tab_acc:
        st.subheader("In-sample")
        render_metrics_block(out.results)
        if cfg.holdout_days > 0:
            st.subheader(f"Last {cfg.holdout_days} days held out")
            render_metrics_block(out.results, holdout=True)

    st.download_button(
        "Download HTML report",
        data=build_report(cfg, out).render(),
        file_name="covid_report.html",
        mime="text/html",
    )


def render_report_page(cfg: AppConfig) -> None:
    st.title("COVID-19 daily counts: decomposition and forecasts")
    st.markdown(
        f"Upload the daily counts CSV with columns `{cfg.date_col}`, "
        + ", ".join(f"`{c}`" for c in cfg.series_columns.values())
        + "."
    )

    uploaded = st.file_uploader("CSV dataset", type=["csv"])
    if uploaded is None:
        st.info("Upload a dataset.")
        return

    # frozen config holds dicts, so repr() stands in for a hash
    run_key = (getattr(uploaded, "name", "dataset.csv"), uploaded.size, repr(cfg))
    if st.button("Run", type="primary"):
        st.session_state["run_trigger"] = True

    if st.session_state["run_trigger"] and st.session_state["last_run_key"] != run_key:
        uploaded.seek(0)
        with st.spinner("Fitting models..."):
            try:
                out = run_pipeline_uc(cfg, RunPipelineInput(source=uploaded))
            except LoadError as e:
                logger.error("Upload rejected: %s", e)
                st.error("Invalid dataset.")
                if e.missing_fields:
                    st.markdown("**Missing required fields:**")
                    st.code(", ".join(e.missing_fields))
                else:
                    st.code(str(e))
                st.session_state["run_trigger"] = False
                st.stop()
        st.session_state["last_output"] = out
        st.session_state["last_run_key"] = run_key

    out = st.session_state["last_output"]
    if out is None or st.session_state["last_run_key"] != run_key:
        st.info("Press Run to fit the models.")
        return

    _render_output(cfg, out)
