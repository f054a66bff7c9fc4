from __future__ import annotations

from typing import Dict, Optional

import numpy as np
import pandas as pd

from core.config import SERIES_LABELS, SERIES_ORDER
from domain.entities import ForecastResult
from infrastructure.ml.evaluation import METRIC_KEYS


COMPARISON_COLUMNS = {
    "cases": "Forecasted_Cases",
    "hospitalizations": "Forecasted_Hospitalizations",
    "deaths": "Forecasted_Deaths",
}

ACCURACY_LABELS = {
    "model": "Model",
    "mae": "MAE",
    "rmse": "RMSE",
    "mape": "MAPE %",
    "mae_pct": "MAE % of mean",
    "rmse_pct": "RMSE % of mean",
    "n": "Points",
}


def build_comparison_table(results: Dict[str, Optional[ForecastResult]], rows: int | None = None) -> pd.DataFrame:
    """
    One row per forecast step 1..h: Date plus one forecast column per series.

    All forecasts share the horizon and start date, so rows are aligned by
    step index. A series without a forecast gets an empty column.
    """
    base = next((results[n] for n in SERIES_ORDER if results.get(n) is not None), None)
    if base is None:
        return pd.DataFrame(columns=["Date"] + [COMPARISON_COLUMNS[n] for n in SERIES_ORDER])

    h = base.horizon
    data: Dict[str, list] = {"Date": list(base.dates_iso)}
    for n in SERIES_ORDER:
        r = results.get(n)
        if r is None:
            data[COMPARISON_COLUMNS[n]] = [np.nan] * h
        else:
            if r.dates_iso[:h] != base.dates_iso[: r.horizon]:
                raise ValueError(f"forecast for {n} does not share the horizon start date")
            preds = list(r.pred[:h]) + [np.nan] * (h - r.horizon)
            data[COMPARISON_COLUMNS[n]] = preds

    df = pd.DataFrame(data)
    df.index = pd.RangeIndex(1, h + 1, name="step")
    if rows is not None:
        df = df.head(int(rows))
    return df


def build_forecast_table(result: ForecastResult) -> pd.DataFrame:
    data: Dict[str, list] = {"Date": list(result.dates_iso), "Forecast": list(result.pred)}
    for key in sorted(result.lower, key=lambda k: float(k.rstrip("%"))):
        data[f"Lo {key}"] = result.lower[key]
        data[f"Hi {key}"] = result.upper[key]
    df = pd.DataFrame(data)
    df.index = pd.RangeIndex(1, result.horizon + 1, name="step")
    return df


def build_accuracy_table(results: Dict[str, Optional[ForecastResult]], holdout: bool = False) -> pd.DataFrame:
    rows = {}
    for n in SERIES_ORDER:
        r = results.get(n)
        if r is None:
            continue
        metrics = r.holdout_metrics if holdout else r.metrics
        if not metrics:
            continue
        row = {"model": metrics.get("model", r.model_label)}
        for key in METRIC_KEYS:
            row[key] = metrics.get(key, np.nan)
        rows[SERIES_LABELS[n]] = row
    df = pd.DataFrame.from_dict(rows, orient="index")
    return df.rename(columns=ACCURACY_LABELS)
