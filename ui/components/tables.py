from __future__ import annotations

from typing import Dict, Optional

import pandas as pd
import streamlit as st

from domain.entities import ForecastResult
from infrastructure.reporting.tables import build_comparison_table, build_forecast_table


def render_summary_table(summary: pd.DataFrame) -> None:
    if summary is None or summary.empty:
        st.info("No summary statistics.")
        return
    st.dataframe(summary, width="stretch")


def render_comparison_table(results: Dict[str, Optional[ForecastResult]], rows: int) -> None:
    try:
        df = build_comparison_table(results, rows=rows)
    except ValueError as e:
        st.warning(f"Comparison table unavailable: {e}")
        return
    if df.empty:
        st.info("No forecast to show.")
        return
    st.dataframe(df, width="stretch")


def render_forecast_values(result: ForecastResult) -> None:
    st.dataframe(build_forecast_table(result), width="stretch")
