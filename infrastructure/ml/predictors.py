from __future__ import annotations

import dataclasses
import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional

from core.config import AppConfig, SERIES_ORDER
from core.errors import DecompositionError, FitError
from domain.entities import Decomposition, FittedModel, ForecastResult, Series, SeriesSet
from infrastructure.ml.auto_arima import AutoArimaForecaster
from infrastructure.ml.decomposition import classical_decompose
from infrastructure.ml.evaluation import calc_metrics, holdout_metrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeriesOutcome:
    name: str
    decomposition: Optional[Decomposition] = None
    model: Optional[FittedModel] = None
    forecast: Optional[ForecastResult] = None
    error: Optional[str] = None
    decomposition_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.forecast is not None


def process_series(cfg: AppConfig, series: Series) -> SeriesOutcome:
    """decompose -> fit -> forecast -> evaluate for one series; failures stay inside the outcome."""
    decomposition: Optional[Decomposition] = None
    decomposition_error: Optional[str] = None
    try:
        decomposition = classical_decompose(series.values, cfg.decomposition_period)
    except DecompositionError as e:
        logger.warning("%s: decomposition skipped: %s", series.name, e)
        decomposition_error = str(e)

    forecaster = AutoArimaForecaster(cfg)
    try:
        model = forecaster.fit(series)
    except FitError as e:
        logger.error("%s: no forecast: %s", series.name, e)
        return SeriesOutcome(
            name=series.name,
            decomposition=decomposition,
            error=str(e),
            decomposition_error=decomposition_error,
        )

    fc = forecaster.forecast(cfg.horizon)
    fc = dataclasses.replace(
        fc,
        metrics=calc_metrics(series.values, model.fitted),
        holdout_metrics=holdout_metrics(series, cfg),
    )
    logger.info(
        "%s: %s, in-sample MAE=%.2f RMSE=%.2f",
        series.name,
        fc.model_label,
        fc.metrics["mae"],
        fc.metrics["rmse"],
    )
    return SeriesOutcome(
        name=series.name,
        decomposition=decomposition,
        model=model,
        forecast=fc,
        decomposition_error=decomposition_error,
    )


class ThreeSeriesForecaster:
    def __init__(self, cfg: AppConfig) -> None:
        self._cfg = cfg

    def forecast(self, series_set: SeriesSet) -> Dict[str, SeriesOutcome]:
        cfg = self._cfg
        names: List[str] = [n for n in SERIES_ORDER if n in series_set]
        outcomes: Dict[str, SeriesOutcome] = {}

        workers = min(int(cfg.max_workers), len(names))
        if workers > 1:
            # independent pure computations; joined before the comparison table
            with ProcessPoolExecutor(max_workers=workers) as pool:
                futures = {n: pool.submit(process_series, cfg, series_set[n]) for n in names}
                for n in names:
                    outcomes[n] = futures[n].result()
        else:
            for n in names:
                outcomes[n] = process_series(cfg, series_set[n])

        for n, msg in series_set.failed.items():
            outcomes[n] = SeriesOutcome(name=n, error=msg)

        return {n: outcomes[n] for n in SERIES_ORDER if n in outcomes}
