from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict

import numpy as np

from core.errors import DecompositionError
from infrastructure.ml.decomposition import seasonal_strength
from infrastructure.ml.differencing import difference

logger = logging.getLogger(__name__)

# MacKinnon (2010) response surface, constant-only regression, one variable:
# crit(T) = b0 + b1 / T + b2 / T**2 + b3 / T**3
ADF_CRITICAL_SURFACE: Dict[str, tuple[float, float, float, float]] = {
    "1%": (-3.43035, -6.5393, -16.786, -79.433),
    "5%": (-2.86154, -2.8903, -4.234, -40.040),
    "10%": (-2.56677, -1.5384, -2.809, 0.0),
}


@dataclass(frozen=True)
class AdfResult:
    statistic: float
    used_lag: int
    nobs: int
    critical_values: Dict[str, float]

    def rejects_unit_root(self, level: str = "5%") -> bool:
        return self.statistic < self.critical_values[level]


def adf_critical_values(nobs: int) -> Dict[str, float]:
    t = float(nobs)
    return {
        level: b0 + b1 / t + b2 / t**2 + b3 / t**3
        for level, (b0, b1, b2, b3) in ADF_CRITICAL_SURFACE.items()
    }


def _adf_design(y: np.ndarray, lag: int, start: int) -> tuple[np.ndarray, np.ndarray]:
    # regression of dy_t on [1, y_{t-1}, dy_{t-1}, ..., dy_{t-lag}] for t >= start
    dy = np.diff(y)
    idx = np.arange(start, len(dy))
    cols = [np.ones(len(idx)), y[idx]]
    for i in range(1, lag + 1):
        cols.append(dy[idx - i])
    return np.column_stack(cols), dy[idx]


def _ols(X: np.ndarray, z: np.ndarray) -> tuple[np.ndarray, np.ndarray, float]:
    beta, _, rank, _ = np.linalg.lstsq(X, z, rcond=None)
    resid = z - X @ beta
    return beta, resid, float(rank)


def schwert_max_lag(n: int) -> int:
    return int(math.floor(12.0 * (n / 100.0) ** 0.25))


def adf_test(y: np.ndarray, max_lag: int | None = None) -> AdfResult:
    """Augmented Dickey-Fuller test with a constant, lag length chosen by AIC."""
    y = np.asarray(y, dtype=float)
    n = len(y)
    if max_lag is None:
        max_lag = schwert_max_lag(n)
    max_lag = max(0, min(int(max_lag), n // 2 - 2))
    # residual degrees of freedom of the widest regression: max_lag lags plus constant and level
    if n - 1 - max_lag - (max_lag + 2) < 4:
        raise ValueError(f"series of {n} points is too short for the ADF test")

    # lag selection on the common sample
    best_lag, best_aic = 0, np.inf
    for lag in range(max_lag + 1):
        X, z = _adf_design(y, lag, max_lag)
        _, resid, _ = _ols(X, z)
        nobs = len(z)
        ssr = float(resid @ resid)
        if ssr <= 0.0:
            continue
        aic = nobs * math.log(ssr / nobs) + 2.0 * X.shape[1]
        if aic < best_aic:
            best_aic, best_lag = aic, lag

    X, z = _adf_design(y, best_lag, best_lag)
    beta, resid, _ = _ols(X, z)
    nobs, k = X.shape
    sigma2 = float(resid @ resid) / max(nobs - k, 1)
    xtx_inv = np.linalg.pinv(X.T @ X)
    se = math.sqrt(max(sigma2 * xtx_inv[1, 1], 0.0))
    if se == 0.0:
        # perfect fit: no evidence either way, treat as a unit root
        stat = 0.0
    else:
        stat = float(beta[1] / se)

    return AdfResult(
        statistic=stat,
        used_lag=best_lag,
        nobs=nobs,
        critical_values=adf_critical_values(nobs),
    )


def is_constant(y: np.ndarray) -> bool:
    y = np.asarray(y, dtype=float)
    return len(y) == 0 or bool(np.ptp(y) == 0.0)


def ndiffs(y: np.ndarray, max_d: int = 2, level: str = "5%") -> int:
    """Number of regular differences needed before the ADF test rejects a unit root."""
    x = np.asarray(y, dtype=float)
    d = 0
    while d < max_d:
        if is_constant(x):
            break
        try:
            res = adf_test(x)
        except ValueError:
            break
        logger.debug("ADF d=%d stat=%.3f crit(%s)=%.3f", d, res.statistic, level, res.critical_values[level])
        if res.rejects_unit_root(level):
            break
        x = difference(x, 1)
        d += 1
    return d


def nsdiffs(y: np.ndarray, m: int, max_D: int = 1, threshold: float = 0.64) -> int:
    """Seasonal differences (0..max_D) by the seasonal-strength heuristic."""
    x = np.asarray(y, dtype=float)
    D = 0
    while D < max_D:
        if is_constant(x) or len(x) < 2 * m + 1:
            break
        try:
            strength = seasonal_strength(x, m)
        except DecompositionError:
            break
        logger.debug("seasonal strength at m=%d after D=%d: %.3f", m, D, strength)
        if strength <= threshold:
            break
        x = difference(x, 0, 1, m)
        D += 1
    return D
