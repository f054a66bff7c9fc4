from __future__ import annotations

import logging
from typing import Any, Dict

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error

from core.config import AppConfig
from core.errors import FitError
from domain.entities import Series
from infrastructure.ml.auto_arima import AutoArimaForecaster

logger = logging.getLogger(__name__)

METRIC_KEYS = ("mae", "rmse", "mape", "mae_pct", "rmse_pct", "n")


def _empty_metrics() -> Dict[str, float]:
    return {"mae": np.nan, "rmse": np.nan, "mape": np.nan, "mae_pct": np.nan, "rmse_pct": np.nan, "n": 0}


def _mape(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    # zero-count days carry no percentage error
    nz = y_true != 0
    if not nz.any():
        return np.nan
    return float(np.mean(np.abs((y_true[nz] - y_pred[nz]) / y_true[nz])) * 100.0)


def calc_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, float]:
    """MAE / RMSE / MAPE and MAE, RMSE as % of the observed mean; NaN predictions are skipped."""
    y_t = np.asarray(y_true, dtype=float)
    y_p = np.asarray(y_pred, dtype=float)
    mask = np.isfinite(y_t) & np.isfinite(y_p)
    y_t, y_p = y_t[mask], y_p[mask]
    if len(y_p) == 0:
        return _empty_metrics()

    mae = float(mean_absolute_error(y_t, y_p))
    rmse = float(np.sqrt(mean_squared_error(y_t, y_p)))
    mean_true = float(np.mean(np.abs(y_t)))
    return {
        "mae": mae,
        "rmse": rmse,
        "mape": _mape(y_t, y_p),
        "mae_pct": (mae / mean_true) * 100.0 if mean_true > 0 else np.nan,
        "rmse_pct": (rmse / mean_true) * 100.0 if mean_true > 0 else np.nan,
        "n": int(len(y_p)),
    }


def holdout_metrics(series: Series, cfg: AppConfig) -> Dict[str, Any]:
    """
    Refit on all but the last ``cfg.holdout_days`` and score the forecast of
    the held-out days. Empty when holdout evaluation is disabled.
    """
    k = int(cfg.holdout_days)
    if k <= 0:
        return {}
    if k >= len(series) - 1:
        logger.warning("%s: holdout of %d days leaves no training data", series.name, k)
        return {}

    train = Series(
        name=series.name,
        column=series.column,
        dates=series.dates[:-k],
        values=series.values[:-k],
        avg_7day=series.avg_7day[:-k] if series.avg_7day is not None else None,
    )
    forecaster = AutoArimaForecaster(cfg)
    try:
        forecaster.fit(train)
    except FitError as e:
        logger.warning("%s: holdout refit failed: %s", series.name, e)
        return {}
    fc = forecaster.forecast(k)
    out: Dict[str, Any] = calc_metrics(series.values[-k:], np.asarray(fc.pred))
    out["model"] = fc.model_label
    out["days"] = k
    return out
