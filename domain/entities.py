from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class Series:
    name: str                 # "cases" / "hospitalizations" / "deaths"
    column: str
    dates: pd.DatetimeIndex
    values: np.ndarray
    avg_7day: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return len(self.values)

    @property
    def last_date(self) -> pd.Timestamp:
        return self.dates[-1]


@dataclass(frozen=True)
class SeriesSet:
    dates: pd.DatetimeIndex
    series: Dict[str, Series]
    source_name: str = "dataset.csv"
    # series name -> load error message
    failed: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for s in self.series.values():
            if len(s) != len(self.dates) or not s.dates.equals(self.dates):
                raise ValueError(f"series `{s.name}` is not aligned with the shared date index")

    def __getitem__(self, name: str) -> Series:
        return self.series[name]

    def __contains__(self, name: object) -> bool:
        return name in self.series

    def names(self) -> List[str]:
        return list(self.series.keys())


@dataclass(frozen=True)
class Decomposition:
    observed: np.ndarray
    trend: np.ndarray
    seasonal: np.ndarray
    resid: np.ndarray
    period: int

    @property
    def defined(self) -> np.ndarray:
        return ~np.isnan(self.trend)

    @property
    def seasonal_figure(self) -> np.ndarray:
        return self.seasonal[: self.period]


@dataclass(frozen=True)
class ArimaOrder:
    p: int
    d: int
    q: int
    P: int = 0
    D: int = 0
    Q: int = 0
    m: int = 0

    @property
    def seasonal(self) -> bool:
        return self.m > 1 and (self.P + self.D + self.Q) > 0

    @property
    def n_arma(self) -> int:
        return self.p + self.q + self.P + self.Q

    @property
    def max_lag(self) -> int:
        m = self.m if self.m > 1 else 0
        return max(self.p + m * self.P, self.q + m * self.Q)

    @property
    def n_lost(self) -> int:
        # observations consumed by differencing
        return self.d + (self.m * self.D if self.m > 1 else 0)

    def label(self) -> str:
        s = f"ARIMA({self.p},{self.d},{self.q})"
        if self.seasonal:
            s += f"({self.P},{self.D},{self.Q})[{self.m}]"
        return s

    def __str__(self) -> str:
        return self.label()


@dataclass(frozen=True)
class FittedModel:
    order: ArimaOrder
    include_constant: bool
    ar: np.ndarray
    ma: np.ndarray
    sar: np.ndarray
    sma: np.ndarray
    constant: float
    sigma2: float
    loglik: float
    aic: float
    aicc: float
    bic: float
    nobs: int                 # length of the differenced series
    y: np.ndarray             # series snapshot the model was fit on
    innovations: np.ndarray   # one-step errors on the differenced scale
    fitted: np.ndarray        # in-sample one-step predictions, original scale
    converged: bool = True

    @property
    def n_params(self) -> int:
        return self.order.n_arma + int(self.include_constant) + 1

    def ic(self, name: str) -> float:
        return float(getattr(self, name))

    def label(self) -> str:
        s = self.order.label()
        if self.include_constant:
            s += " with drift" if self.order.n_lost == 1 else " with non-zero mean"
        return s

    def coefficients(self) -> Dict[str, float]:
        out: Dict[str, float] = {}
        for prefix, values in (("ar", self.ar), ("ma", self.ma), ("sar", self.sar), ("sma", self.sma)):
            for i, v in enumerate(values, start=1):
                out[f"{prefix}{i}"] = float(v)
        if self.include_constant:
            out["drift" if self.order.n_lost == 1 else "mean"] = float(self.constant)
        return out


@dataclass(frozen=True)
class ForecastResult:
    series_name: str
    model_label: str
    dates_iso: List[str]
    pred: List[float]
    lower: Dict[str, List[float]]     # "80%" -> bounds
    upper: Dict[str, List[float]]
    metrics: Dict[str, Any]
    holdout_metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def horizon(self) -> int:
        return len(self.pred)

    def interval_width(self, level_key: str) -> np.ndarray:
        return np.asarray(self.upper[level_key]) - np.asarray(self.lower[level_key])


def level_key(level: float) -> str:
    return f"{round(float(level) * 100):d}%"
