from __future__ import annotations

import numpy as np

from core.errors import DecompositionError
from domain.entities import Decomposition


def moving_average_weights(period: int) -> np.ndarray:
    """Centered moving-average filter: ``period`` taps, or ``period + 1`` with half-weight ends when even."""
    if period % 2 == 0:
        w = np.ones(period + 1, dtype=float)
        w[0] = w[-1] = 0.5
    else:
        w = np.ones(period, dtype=float)
    return w / float(period)


def centered_moving_average(values: np.ndarray, period: int) -> np.ndarray:
    y = np.asarray(values, dtype=float)
    w = moving_average_weights(period)
    half = len(w) // 2
    out = np.full(len(y), np.nan)
    if len(y) >= len(w):
        out[half : len(y) - half] = np.convolve(y, w, mode="valid")
    return out


def seasonal_figure(detrended: np.ndarray, period: int) -> np.ndarray:
    fig = np.empty(period, dtype=float)
    for phase in range(period):
        phase_vals = detrended[phase::period]
        phase_vals = phase_vals[~np.isnan(phase_vals)]
        fig[phase] = phase_vals.mean() if len(phase_vals) else 0.0
    # centered so one full period sums to zero
    return fig - fig.mean()


def classical_decompose(values: np.ndarray, period: int) -> Decomposition:
    y = np.asarray(values, dtype=float)
    period = int(period)
    if period < 2:
        raise DecompositionError(f"period must be >= 2, got {period}")
    if len(y) < 2 * period:
        raise DecompositionError(
            f"series of {len(y)} points is shorter than two full periods of {period}"
        )

    trend = centered_moving_average(y, period)
    detrended = y - trend
    fig = seasonal_figure(detrended, period)
    seasonal = np.tile(fig, len(y) // period + 1)[: len(y)]
    resid = y - trend - seasonal

    return Decomposition(observed=y, trend=trend, seasonal=seasonal, resid=resid, period=period)


def seasonal_strength(values: np.ndarray, period: int) -> float:
    """max(0, 1 - var(resid) / var(seasonal + resid)) over the defined part of the decomposition."""
    dec = classical_decompose(values, period)
    mask = dec.defined
    remainder = dec.resid[mask]
    detrended = remainder + dec.seasonal[mask]
    denom = float(np.var(detrended))
    if denom <= 0.0:
        return 0.0
    return float(max(0.0, 1.0 - np.var(remainder) / denom))
