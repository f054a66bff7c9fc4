from __future__ import annotations

import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from core.config import SERIES_LABELS, SERIES_ORDER
from core.errors import RenderError
from domain.entities import Decomposition, ForecastResult, Series, SeriesSet


BAND_COLORS = ["rgba(31, 119, 180, 0.30)", "rgba(31, 119, 180, 0.15)", "rgba(31, 119, 180, 0.08)"]


def _apply_layout(fig: go.Figure, title: str, yaxis_title: str = "Count") -> go.Figure:
    fig.update_layout(
        title=title,
        xaxis_title="Date",
        yaxis_title=yaxis_title,
        hovermode="x unified",
        template="plotly_white",
    )
    return fig


def daily_counts_figure(series_set: SeriesSet) -> go.Figure:
    fig = go.Figure()
    for n in SERIES_ORDER:
        if n not in series_set:
            continue
        s = series_set[n]
        fig.add_trace(go.Scatter(x=s.dates, y=s.values, mode="lines", name=SERIES_LABELS[n]))
    return _apply_layout(fig, "Daily counts")


def moving_average_figure(series_set: SeriesSet) -> go.Figure:
    fig = go.Figure()
    for n in SERIES_ORDER:
        if n not in series_set or series_set[n].avg_7day is None:
            continue
        s = series_set[n]
        fig.add_trace(go.Scatter(x=s.dates, y=s.avg_7day, mode="lines", name=f"{SERIES_LABELS[n]} (7-day avg)"))
    if not fig.data:
        raise RenderError("no 7-day average columns in the dataset", section="moving_average")
    return _apply_layout(fig, "7-day moving averages")


def series_figure(series: Series) -> go.Figure:
    fig = go.Figure()
    fig.add_trace(go.Scatter(x=series.dates, y=series.values, mode="lines", name="Daily", opacity=0.5))
    if series.avg_7day is not None:
        fig.add_trace(go.Scatter(x=series.dates, y=series.avg_7day, mode="lines", name="7-day avg"))
    return _apply_layout(fig, SERIES_LABELS.get(series.name, series.name))


def decomposition_figure(series: Series, dec: Decomposition) -> go.Figure:
    if len(dec.observed) != len(series.dates):
        raise RenderError(f"decomposition of {series.name} is not aligned with its dates", section="decomposition")
    panels = [("Observed", dec.observed), ("Trend", dec.trend), ("Seasonal", dec.seasonal), ("Residual", dec.resid)]
    fig = make_subplots(rows=4, cols=1, shared_xaxes=True, subplot_titles=[p[0] for p in panels], vertical_spacing=0.05)
    for i, (name, values) in enumerate(panels, start=1):
        fig.add_trace(go.Scatter(x=series.dates, y=values, mode="lines", name=name, showlegend=False), row=i, col=1)
    fig.update_layout(
        title=f"{SERIES_LABELS.get(series.name, series.name)}: additive decomposition (period {dec.period})",
        height=800,
        template="plotly_white",
    )
    return fig


def forecast_figure(series: Series, result: ForecastResult, history_days: int = 120) -> go.Figure:
    if not result.dates_iso:
        raise RenderError(f"empty forecast for {series.name}", section="forecast")

    hist_start = series.last_date - pd.Timedelta(days=int(history_days))
    mask = series.dates >= hist_start
    x_fc = pd.to_datetime(result.dates_iso)

    fig = go.Figure()
    fig.add_trace(go.Scatter(x=series.dates[mask], y=series.values[mask], mode="lines", name="Observed", opacity=0.7))

    # widest band first so narrower ones draw on top
    keys = sorted(result.lower, key=lambda k: float(k.rstrip("%")), reverse=True)
    for i, key in enumerate(keys):
        color = BAND_COLORS[min(len(keys) - 1 - i, len(BAND_COLORS) - 1)]
        fig.add_trace(go.Scatter(x=x_fc, y=result.upper[key], mode="lines", line=dict(width=0), showlegend=False, hoverinfo="skip"))
        fig.add_trace(
            go.Scatter(
                x=x_fc,
                y=result.lower[key],
                mode="lines",
                line=dict(width=0),
                fill="tonexty",
                fillcolor=color,
                name=f"{key} interval",
            )
        )

    fig.add_trace(go.Scatter(x=x_fc, y=result.pred, mode="lines+markers", name="Forecast"))
    return _apply_layout(fig, f"{SERIES_LABELS.get(series.name, series.name)}: {result.model_label}, {result.horizon}-day forecast")
