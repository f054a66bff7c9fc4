"""Shared fixtures: a synthetic daily-counts CSV and a small, fast search configuration."""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import numpy as np
import pandas as pd
import pytest

from core.config import AppConfig
from domain.entities import ForecastResult, Series


@pytest.fixture
def fast_cfg(tmp_path: Path) -> AppConfig:
    """Non-seasonal search over a small order grid, weekly decomposition."""
    return AppConfig(
        decomposition_period=7,
        seasonal=False,
        max_p=2,
        max_q=2,
        max_order=3,
        horizon=14,
        optimizer_maxiter=100,
        report_path=str(tmp_path / "report.html"),
    )


def synthetic_counts(n: int = 120, seed: int = 7) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    t = np.arange(n)
    week = np.sin(2.0 * np.pi * t / 7.0)
    cases = 1500.0 + 4.0 * t + 150.0 * week + rng.normal(0.0, 40.0, n)
    hosp = 200.0 + 0.5 * t + 15.0 * week + rng.normal(0.0, 8.0, n)
    deaths = 30.0 + 4.0 * week + rng.normal(0.0, 3.0, n)
    df = pd.DataFrame(
        {
            "date_of_interest": pd.date_range("2021-01-01", periods=n, freq="D").strftime("%m/%d/%Y"),
            "CASE_COUNT": np.round(cases).astype(int),
            "HOSPITALIZED_COUNT": np.round(hosp).astype(int),
            "DEATH_COUNT": np.round(np.maximum(deaths, 0.0)).astype(int),
        }
    )
    for col, avg in (
        ("CASE_COUNT", "CASE_COUNT_7DAY_AVG"),
        ("HOSPITALIZED_COUNT", "HOSP_COUNT_7DAY_AVG"),
        ("DEATH_COUNT", "DEATH_COUNT_7DAY_AVG"),
    ):
        df[avg] = df[col].rolling(7, min_periods=1).mean().round()
    return df


@pytest.fixture
def counts_df() -> pd.DataFrame:
    return synthetic_counts()


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[[pd.DataFrame, str], Path]:
    def _write(df: pd.DataFrame, name: str = "counts.csv") -> Path:
        path = tmp_path / name
        df.to_csv(path, index=False)
        return path

    return _write


@pytest.fixture
def csv_path(counts_df: pd.DataFrame, write_csv) -> Path:
    return write_csv(counts_df)


def make_series(values, name: str = "cases", start: str = "2021-01-01", avg: Optional[np.ndarray] = None) -> Series:
    values = np.asarray(values, dtype=float)
    return Series(
        name=name,
        column=name.upper(),
        dates=pd.date_range(start, periods=len(values), freq="D", name="date"),
        values=values,
        avg_7day=avg,
    )


def make_result(name: str = "cases", horizon: int = 12, start: str = "2021-05-01", level: float = 100.0) -> ForecastResult:
    dates = pd.date_range(start, periods=horizon, freq="D").strftime("%Y-%m-%d").tolist()
    pred = [level + i for i in range(horizon)]
    spread = [1.0 + 0.1 * i for i in range(horizon)]
    return ForecastResult(
        series_name=name,
        model_label="ARIMA(1,1,0)",
        dates_iso=dates,
        pred=pred,
        lower={
            "80%": [p - s for p, s in zip(pred, spread)],
            "95%": [p - 2 * s for p, s in zip(pred, spread)],
        },
        upper={
            "80%": [p + s for p, s in zip(pred, spread)],
            "95%": [p + 2 * s for p, s in zip(pred, spread)],
        },
        metrics={"mae": 1.0, "rmse": 1.5, "mape": 2.0, "mae_pct": 1.0, "rmse_pct": 1.5, "n": 100},
    )


@pytest.fixture
def ar1_series() -> np.ndarray:
    """Stationary AR(1), phi = 0.6, around a level of 50."""
    rng = np.random.default_rng(11)
    e = rng.normal(0.0, 1.0, 300)
    y = np.zeros(300)
    for t in range(1, 300):
        y[t] = 0.6 * y[t - 1] + e[t]
    return 50.0 + y
