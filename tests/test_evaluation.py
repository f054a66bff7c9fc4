from __future__ import annotations

import dataclasses

import numpy as np
import pytest

from infrastructure.ml.evaluation import METRIC_KEYS, calc_metrics, holdout_metrics

from conftest import make_series


class TestCalcMetrics:
    def test_known_values(self):
        m = calc_metrics(np.array([1.0, 2.0, 3.0, 4.0]), np.array([1.0, 2.0, 3.0, 6.0]))

        assert m["mae"] == pytest.approx(0.5)
        assert m["rmse"] == pytest.approx(1.0)
        assert m["mape"] == pytest.approx(12.5)
        assert m["mae_pct"] == pytest.approx(0.5 / 2.5 * 100.0)
        assert m["n"] == 4
        assert set(m) == set(METRIC_KEYS)

    def test_nan_predictions_skipped(self):
        m = calc_metrics(np.array([5.0, 1.0, 2.0]), np.array([np.nan, 1.0, 4.0]))

        assert m["n"] == 2
        assert m["mae"] == pytest.approx(1.0)

    def test_zero_days_excluded_from_mape(self):
        m = calc_metrics(np.array([0.0, 10.0]), np.array([3.0, 11.0]))

        assert m["mape"] == pytest.approx(10.0)
        assert m["mae"] == pytest.approx(2.0)

    def test_all_zero_truth(self):
        m = calc_metrics(np.zeros(3), np.ones(3))

        assert np.isnan(m["mape"])
        assert np.isnan(m["mae_pct"])

    def test_nothing_to_score(self):
        m = calc_metrics(np.array([1.0]), np.array([np.nan]))

        assert m["n"] == 0
        assert np.isnan(m["mae"])


class TestHoldout:
    def test_disabled_by_default(self, fast_cfg, ar1_series):
        assert holdout_metrics(make_series(ar1_series), fast_cfg) == {}

    def test_scores_held_out_days(self, fast_cfg, ar1_series):
        cfg = dataclasses.replace(fast_cfg, holdout_days=10)

        m = holdout_metrics(make_series(ar1_series), cfg)

        assert m["n"] == 10
        assert m["days"] == 10
        assert m["model"].startswith("ARIMA(")
        assert m["mae"] < 5.0

    def test_holdout_longer_than_series(self, fast_cfg):
        cfg = dataclasses.replace(fast_cfg, holdout_days=30)

        assert holdout_metrics(make_series(np.arange(20.0)), cfg) == {}
