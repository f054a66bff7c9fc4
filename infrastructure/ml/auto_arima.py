from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from core.config import AppConfig
from core.errors import FitError, ForecastError
from domain.entities import ArimaOrder, FittedModel, ForecastResult, Series, level_key
from infrastructure.ml.arma import fit_arima, forecast_arima, normal_quantile
from infrastructure.ml.differencing import difference
from infrastructure.ml.stationarity import is_constant, ndiffs, nsdiffs

logger = logging.getLogger(__name__)

# (p, q, P, Q, constant)
Candidate = Tuple[int, int, int, int, bool]


@dataclass
class SearchLog:
    tried: Dict[Candidate, float] = field(default_factory=dict)
    rejected: Dict[Candidate, str] = field(default_factory=dict)

    @property
    def n_fitted(self) -> int:
        return len(self.tried) + len(self.rejected)


@dataclass(frozen=True)
class SearchSpace:
    d: int
    D: int
    m: int
    max_p: int
    max_q: int
    max_P: int
    max_Q: int
    max_order: int
    allow_constant: bool

    def admissible(self, c: Candidate) -> bool:
        p, q, P, Q, const = c
        if min(p, q, P, Q) < 0:
            return False
        if p > self.max_p or q > self.max_q or P > self.max_P or Q > self.max_Q:
            return False
        if p + q + P + Q > self.max_order:
            return False
        if const and not self.allow_constant:
            return False
        return True

    def order(self, c: Candidate) -> ArimaOrder:
        p, q, P, Q, _ = c
        return ArimaOrder(p=p, d=self.d, q=q, P=P, D=self.D, Q=Q, m=self.m)

    @property
    def largest_lag(self) -> int:
        m = self.m if self.m > 1 else 0
        return max(self.max_p + m * self.max_P, self.max_q + m * self.max_Q) + self.d + m * self.D


def _rank(model: FittedModel, criterion: str) -> tuple[float, int]:
    # parsimony breaks ties
    return (model.ic(criterion), model.order.n_arma)


def detect_seasonality(y: np.ndarray, cfg: AppConfig) -> int:
    """Seasonal differencing order D at ``cfg.seasonal_period`` (0 = no seasonality)."""
    m = int(cfg.seasonal_period)
    if not cfg.seasonal or m < 2 or len(y) < 2 * m + 1:
        return 0
    return nsdiffs(y, m, max_D=cfg.max_D, threshold=cfg.seasonal_strength_threshold)


def build_search_space(y: np.ndarray, cfg: AppConfig) -> SearchSpace:
    D = detect_seasonality(y, cfg)
    seasonal = D > 0
    m = int(cfg.seasonal_period) if seasonal else 0
    x = difference(y, 0, D, m) if seasonal else np.asarray(y, dtype=float)
    d = ndiffs(x, max_d=cfg.max_d, level=cfg.adf_level)
    return SearchSpace(
        d=d,
        D=D,
        m=m,
        max_p=cfg.max_p,
        max_q=cfg.max_q,
        max_P=cfg.max_P if seasonal else 0,
        max_Q=cfg.max_Q if seasonal else 0,
        max_order=cfg.max_order,
        allow_constant=(d + D) <= 1,
    )


class OrderSearch:
    def __init__(self, y: np.ndarray, space: SearchSpace, cfg: AppConfig) -> None:
        self._y = np.asarray(y, dtype=float)
        self._space = space
        self._cfg = cfg
        self._fits: Dict[Candidate, Optional[FittedModel]] = {}
        self.log = SearchLog()

    def _fit(self, c: Candidate) -> Optional[FittedModel]:
        if c in self._fits:
            return self._fits[c]
        order = self._space.order(c)
        try:
            model = fit_arima(
                self._y,
                order,
                include_constant=c[4],
                maxiter=self._cfg.optimizer_maxiter,
                root_tolerance=self._cfg.root_tolerance,
            )
        except FitError as e:
            # includes CandidateRejectedError: excluded from the search
            logger.debug("rejected %s const=%s: %s", order, c[4], e)
            self.log.rejected[c] = str(e)
            self._fits[c] = None
            return None
        logger.debug("%s -> %s=%.3f", model.label(), self._cfg.information_criterion, model.ic(self._cfg.information_criterion))
        self.log.tried[c] = model.ic(self._cfg.information_criterion)
        self._fits[c] = model
        return model

    def _better(self, a: Optional[FittedModel], b: Optional[FittedModel]) -> bool:
        if a is None or not np.isfinite(a.ic(self._cfg.information_criterion)):
            return False
        if b is None:
            return True
        crit = self._cfg.information_criterion
        return _rank(a, crit) < _rank(b, crit)

    def _starting_points(self) -> List[Candidate]:
        sp = self._space
        const = sp.allow_constant
        if sp.m:
            starts = [(2, 2, 1, 1, const), (0, 0, 0, 0, const), (1, 0, 1, 0, const), (0, 1, 0, 1, const)]
        else:
            starts = [(2, 2, 0, 0, const), (0, 0, 0, 0, const), (1, 0, 0, 0, const), (0, 1, 0, 0, const)]
        if const:
            starts.append((0, 0, 0, 0, False))
        out = []
        for p, q, P, Q, c in starts:
            cand = (min(p, sp.max_p), min(q, sp.max_q), min(P, sp.max_P), min(Q, sp.max_Q), c)
            while sum(cand[:4]) > sp.max_order:
                p_, q_, P_, Q_, c_ = cand
                if p_ >= q_ and p_ > 0:
                    p_ -= 1
                elif q_ > 0:
                    q_ -= 1
                elif P_ >= Q_ and P_ > 0:
                    P_ -= 1
                else:
                    Q_ -= 1
                cand = (p_, q_, P_, Q_, c_)
            if cand not in out:
                out.append(cand)
        return out

    @staticmethod
    def _neighbours(c: Candidate) -> Iterable[Candidate]:
        p, q, P, Q, const = c
        yield (p, q, P - 1, Q, const)
        yield (p, q, P + 1, Q, const)
        yield (p, q, P, Q - 1, const)
        yield (p, q, P, Q + 1, const)
        yield (p, q, P - 1, Q - 1, const)
        yield (p, q, P + 1, Q + 1, const)
        yield (p - 1, q, P, Q, const)
        yield (p + 1, q, P, Q, const)
        yield (p, q - 1, P, Q, const)
        yield (p, q + 1, P, Q, const)
        yield (p - 1, q - 1, P, Q, const)
        yield (p + 1, q + 1, P, Q, const)
        yield (p, q, P, Q, not const)

    def stepwise(self) -> Optional[FittedModel]:
        best_c: Optional[Candidate] = None
        best: Optional[FittedModel] = None
        for c in self._starting_points():
            model = self._fit(c)
            if self._better(model, best):
                best, best_c = model, c

        if best_c is None:
            return None

        improved = True
        while improved and self.log.n_fitted < self._cfg.max_models:
            improved = False
            for c in self._neighbours(best_c):
                if not self._space.admissible(c) or c in self._fits:
                    continue
                if self.log.n_fitted >= self._cfg.max_models:
                    break
                model = self._fit(c)
                if self._better(model, best):
                    best, best_c = model, c
                    improved = True
                    break
        return best

    def exhaustive(self) -> Optional[FittedModel]:
        sp = self._space
        best: Optional[FittedModel] = None
        consts = [False, True] if sp.allow_constant else [False]
        for p in range(sp.max_p + 1):
            for q in range(sp.max_q + 1):
                for P in range(sp.max_P + 1):
                    for Q in range(sp.max_Q + 1):
                        for const in consts:
                            c = (p, q, P, Q, const)
                            if not sp.admissible(c):
                                continue
                            model = self._fit(c)
                            if self._better(model, best):
                                best = model
        return best


def select_arima(y: np.ndarray, cfg: AppConfig, series_name: str | None = None) -> FittedModel:
    """
    Choose d (and D) by unit-root / seasonal-strength testing, then search
    (p, q)(P, Q) by the configured information criterion.
    """
    y = np.asarray(y, dtype=float)
    if len(y) == 0 or is_constant(y):
        raise FitError("degenerate series", series_name=series_name)

    space = build_search_space(y, cfg)
    if len(y) < 2 * space.largest_lag:
        raise FitError(
            f"{len(y)} observations are fewer than twice the largest candidate lag ({space.largest_lag})",
            series_name=series_name,
        )
    if is_constant(difference(y, space.d, space.D, space.m)):
        raise FitError("degenerate series", series_name=series_name)

    logger.info(
        "%s: d=%d, D=%d, m=%d, searching by %s (%s)",
        series_name or "series",
        space.d,
        space.D,
        space.m,
        cfg.information_criterion,
        "stepwise" if cfg.stepwise else "exhaustive",
    )

    search = OrderSearch(y, space, cfg)
    best = search.stepwise() if cfg.stepwise else search.exhaustive()
    if best is None:
        raise FitError(
            f"no admissible ARIMA model ({len(search.log.rejected)} candidate(s) rejected)",
            series_name=series_name,
        )
    logger.info(
        "%s: selected %s, %s=%.2f after %d candidate(s), %d rejected",
        series_name or "series",
        best.label(),
        cfg.information_criterion,
        best.ic(cfg.information_criterion),
        search.log.n_fitted,
        len(search.log.rejected),
    )
    return best


class AutoArimaForecaster:
    def __init__(self, cfg: AppConfig) -> None:
        self._cfg = cfg
        self._model: Optional[FittedModel] = None
        self._series: Optional[Series] = None

    @property
    def model(self) -> FittedModel:
        if self._model is None:
            raise ForecastError("no fitted model: call fit() first")
        return self._model

    @property
    def is_fitted(self) -> bool:
        return self._model is not None

    def fit(self, series: Series) -> FittedModel:
        self._model = None
        self._series = None
        model = select_arima(series.values, self._cfg, series_name=series.name)
        self._model = model
        self._series = series
        return model

    def forecast(self, horizon: int | None = None) -> ForecastResult:
        if self._model is None or self._series is None:
            raise ForecastError("forecast requested before a successful fit")
        h = int(horizon if horizon is not None else self._cfg.horizon)
        if h < 1:
            raise ForecastError(f"horizon must be positive, got {h}")

        mean, se = forecast_arima(self._model, h)
        lower: Dict[str, List[float]] = {}
        upper: Dict[str, List[float]] = {}
        for level in sorted(self._cfg.confidence_levels):
            z = normal_quantile(level)
            key = level_key(level)
            lower[key] = [float(x) for x in mean - z * se]
            upper[key] = [float(x) for x in mean + z * se]

        dates = [
            (self._series.last_date + pd.Timedelta(days=step)).date().isoformat()
            for step in range(1, h + 1)
        ]
        return ForecastResult(
            series_name=self._series.name,
            model_label=self._model.label(),
            dates_iso=dates,
            pred=[float(x) for x in mean],
            lower=lower,
            upper=upper,
            metrics={},
        )
