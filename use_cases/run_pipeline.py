from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import pandas as pd

from core.config import AppConfig
from domain.entities import ForecastResult, SeriesSet
from infrastructure.ml.predictors import SeriesOutcome, ThreeSeriesForecaster
from infrastructure.ml.preprocessing import CsvSource, load_series_set
from infrastructure.ml.summary import summarize_series_set
from infrastructure.reporting.tables import build_comparison_table

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunPipelineInput:
    source: CsvSource
    strict: bool = False


@dataclass(frozen=True)
class RunPipelineOutput:
    meta: Dict[str, Any]
    series_set: SeriesSet
    summary: pd.DataFrame
    outcomes: Dict[str, SeriesOutcome]
    comparison: pd.DataFrame

    @property
    def results(self) -> Dict[str, Optional[ForecastResult]]:
        return {n: o.forecast for n, o in self.outcomes.items()}

    @property
    def errors(self) -> Dict[str, str]:
        return {n: o.error for n, o in self.outcomes.items() if o.error}


def run_pipeline_uc(cfg: AppConfig, inp: RunPipelineInput) -> RunPipelineOutput:
    series_set = load_series_set(inp.source, cfg, strict=inp.strict)

    if cfg.seasonal and cfg.decomposition_period != cfg.seasonal_period:
        logger.warning(
            "Decomposition period %d differs from the %d-day cycle used for ARIMA seasonality",
            cfg.decomposition_period,
            cfg.seasonal_period,
        )

    summary = summarize_series_set(series_set)
    outcomes = ThreeSeriesForecaster(cfg).forecast(series_set)
    results = {n: o.forecast for n, o in outcomes.items()}
    comparison = build_comparison_table(results)

    dates = series_set.dates
    meta = {
        "file_name": series_set.source_name,
        "rows_count": int(len(dates)),
        "date_range_start": dates[0].date().isoformat(),
        "date_range_end": dates[-1].date().isoformat(),
        "horizon": int(cfg.horizon),
        "decomposition_period": int(cfg.decomposition_period),
        "seasonal_period": int(cfg.seasonal_period) if cfg.seasonal else None,
        "information_criterion": cfg.information_criterion,
        "confidence_levels": [float(x) for x in cfg.confidence_levels],
        "holdout_days": int(cfg.holdout_days),
    }

    return RunPipelineOutput(
        meta=meta,
        series_set=series_set,
        summary=summary,
        outcomes=outcomes,
        comparison=comparison,
    )
