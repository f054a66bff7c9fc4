from __future__ import annotations

import math
from typing import Any, Dict, Optional

import streamlit as st

from core.config import SERIES_LABELS, SERIES_ORDER
from domain.entities import ForecastResult


_CARD_CSS = """
<style>
.metrics-grid {
  display: grid;
  grid-template-columns: repeat(3, minmax(220px, 1fr));
  gap: 12px;
}
.metric-card {
  border: 1px solid rgba(49, 51, 63, 0.15);
  border-radius: 14px;
  padding: 12px 14px;
}
.metric-title { font-weight: 800; font-size: 14px; margin-bottom: 4px; }
.metric-model { font-size: 12px; opacity: 0.75; margin-bottom: 10px; }
.metric-body {
  display: grid;
  grid-template-columns: repeat(3, minmax(0, 1fr));
  gap: 10px;
}
.kpi-label { font-size: 12px; opacity: 0.75; }
.kpi-value { font-weight: 900; font-size: 18px; }
@media (max-width: 900px) {
  .metrics-grid { grid-template-columns: 1fr; }
}
</style>
"""


def _fmt(v: Any, suffix: str = "") -> str:
    try:
        x = float(v)
    except (TypeError, ValueError):
        return "n/a"
    if math.isnan(x) or math.isinf(x):
        return "n/a"
    return f"{x:,.2f}{suffix}"


def _card(name: str, result: ForecastResult, holdout: bool) -> str:
    metrics = result.holdout_metrics if holdout else result.metrics
    kpis = [("MAE", _fmt(metrics.get("mae"))), ("RMSE", _fmt(metrics.get("rmse"))), ("MAPE", _fmt(metrics.get("mape"), "%"))]
    body = "".join(
        f'<div><div class="kpi-label">{label}</div><div class="kpi-value">{value}</div></div>' for label, value in kpis
    )
    return (
        '<div class="metric-card">'
        f'<div class="metric-title">{SERIES_LABELS.get(name, name)}</div>'
        f'<div class="metric-model">{result.model_label}</div>'
        f'<div class="metric-body">{body}</div>'
        "</div>"
    )


def render_metrics_block(results: Dict[str, Optional[ForecastResult]], holdout: bool = False) -> None:
    cards = [
        _card(name, results[name], holdout)
        for name in SERIES_ORDER
        if results.get(name) is not None and (not holdout or results[name].holdout_metrics)
    ]
    if not cards:
        st.info("No accuracy figures to show.")
        return

    st.markdown(_CARD_CSS, unsafe_allow_html=True)
    st.markdown('<div class="metrics-grid">' + "".join(cards) + "</div>", unsafe_allow_html=True)
