from __future__ import annotations

import dataclasses

import streamlit as st

from core.config import AppConfig, CFG, INFORMATION_CRITERIA
from ui.state import reset_run


LEVEL_OPTIONS = [0.80, 0.90, 0.95, 0.99]


def render_sidebar(base: AppConfig = CFG) -> AppConfig:
    st.sidebar.markdown("### Settings")

    horizon = st.sidebar.number_input(
        "Forecast horizon (days)",
        min_value=1,
        max_value=180,
        value=int(base.horizon),
        on_change=reset_run,
    )
    period = st.sidebar.number_input(
        "Decomposition period (days)",
        min_value=2,
        max_value=730,
        value=int(base.decomposition_period),
        help="365 reproduces the original analysis; the counts themselves cycle weekly (7).",
        on_change=reset_run,
    )
    levels = st.sidebar.multiselect(
        "Confidence levels",
        LEVEL_OPTIONS,
        default=[x for x in base.confidence_levels if x in LEVEL_OPTIONS],
        format_func=lambda x: f"{round(x * 100)}%",
        on_change=reset_run,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown("### Model search")
    criterion = st.sidebar.selectbox(
        "Information criterion",
        list(INFORMATION_CRITERIA),
        index=list(INFORMATION_CRITERIA).index(base.information_criterion),
        format_func=str.upper,
        on_change=reset_run,
    )
    stepwise = st.sidebar.checkbox("Stepwise search", value=bool(base.stepwise), on_change=reset_run)
    seasonal = st.sidebar.checkbox("Weekly seasonal terms", value=bool(base.seasonal), on_change=reset_run)
    holdout = st.sidebar.number_input(
        "Holdout days (0 = in-sample only)",
        min_value=0,
        max_value=120,
        value=int(base.holdout_days),
        on_change=reset_run,
    )

    if not levels:
        st.sidebar.warning("No confidence level selected, using the defaults.")
        levels = list(base.confidence_levels)

    return dataclasses.replace(
        base,
        horizon=int(horizon),
        decomposition_period=int(period),
        confidence_levels=tuple(sorted(float(x) for x in levels)),
        information_criterion=str(criterion),
        stepwise=bool(stepwise),
        seasonal=bool(seasonal),
        holdout_days=int(holdout),
    )
