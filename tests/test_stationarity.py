from __future__ import annotations

import numpy as np
import pytest

from infrastructure.ml.differencing import difference, differencing_lags, integrate
from infrastructure.ml.stationarity import (
    adf_critical_values,
    adf_test,
    ndiffs,
    nsdiffs,
)


class TestDifferencing:
    def test_lag_order(self):
        assert differencing_lags(1, 1, 7) == [7, 1]
        assert differencing_lags(2) == [1, 1]
        # a seasonal difference without a period is ignored
        assert differencing_lags(1, 1, 0) == [1]

    @pytest.mark.parametrize("d,D,m", [(1, 0, 0), (2, 0, 0), (0, 1, 7), (1, 1, 7)])
    def test_integrate_reverses_difference(self, d, D, m):
        rng = np.random.default_rng(1)
        y = np.cumsum(np.cumsum(rng.normal(size=100)))
        history, future = y[:80], y[80:]

        w = difference(y, d, D, m)
        rebuilt = integrate(w[-len(future):], history, d, D, m)

        np.testing.assert_allclose(rebuilt, future, rtol=1e-10, atol=1e-8)

    def test_difference_too_short(self):
        assert len(difference(np.array([1.0, 2.0]), 0, 1, 7)) == 0


class TestAdf:
    def test_critical_values_ordered(self):
        crit = adf_critical_values(500)

        assert crit["1%"] < crit["5%"] < crit["10%"]
        assert crit["5%"] == pytest.approx(-2.87, abs=0.01)

    def test_white_noise_rejects_unit_root(self):
        rng = np.random.default_rng(2)
        res = adf_test(rng.normal(size=300))

        assert res.rejects_unit_root("5%")
        assert 0 <= res.used_lag

    def test_random_walk_with_drift_keeps_unit_root(self):
        rng = np.random.default_rng(4)
        y = np.cumsum(1.0 + rng.normal(size=200))

        assert not adf_test(y).rejects_unit_root("5%")

    def test_too_short(self):
        with pytest.raises(ValueError, match="too short"):
            adf_test(np.arange(5.0))

    def test_shortest_series_leaves_residual_freedom(self):
        rng = np.random.default_rng(10)

        with pytest.raises(ValueError, match="too short"):
            adf_test(rng.normal(size=6), max_lag=0)
        res = adf_test(rng.normal(size=7), max_lag=0)
        assert res.nobs - 2 >= 4

    def test_short_series_stops_differencing(self):
        assert ndiffs(np.array([1.0, 4.0, 2.0, 8.0, 3.0]), max_d=2) == 0


class TestNdiffs:
    def test_never_exceeds_max_d(self):
        rng = np.random.default_rng(6)
        e = rng.normal(size=200)
        for y in (e, np.cumsum(e), np.cumsum(np.cumsum(e)), np.cumsum(np.cumsum(np.cumsum(e)))):
            for max_d in (0, 1, 2):
                assert 0 <= ndiffs(y, max_d=max_d) <= max_d

    def test_trending_series_differenced(self):
        rng = np.random.default_rng(4)
        y = np.cumsum(1.0 + rng.normal(size=200))

        assert ndiffs(y, max_d=2) >= 1

    def test_constant_series(self):
        assert ndiffs(np.full(50, 797.0)) == 0

    def test_nsdiffs(self):
        rng = np.random.default_rng(8)
        t = np.arange(140)
        weekly = 50.0 + 10.0 * np.sin(2.0 * np.pi * t / 7.0) + rng.normal(size=140)

        assert nsdiffs(weekly, 7, max_D=1) == 1
        assert nsdiffs(rng.normal(size=140), 7, max_D=1) == 0
        assert nsdiffs(weekly, 7, max_D=0) == 0
