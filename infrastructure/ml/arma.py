"""
Exact-likelihood ARIMA estimation and forecasting.

A seasonal ARIMA(p,d,q)(P,D,Q)[m] model is handled as an ARMA model for the
differenced series w = (1 - B)^d (1 - B^m)^D y, with multiplicative AR and MA
polynomials expanded to plain lag polynomials:

    phi(B) Phi(B^m) (w_t - mu) = theta(B) Theta(B^m) e_t

The Gaussian likelihood is evaluated with a Kalman filter on the Harvey
state-space form (stationary initial covariance from the discrete Lyapunov
equation). Once the state covariance has converged the remaining innovations
follow the plain ARMA recursion and are computed with ``scipy.signal.lfilter``.

Coefficients are optimized through the partial-autocorrelation
reparameterization, so AR polynomials stay stationary and MA polynomials stay
invertible during the search.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np
from scipy import linalg, optimize, signal, stats

from core.errors import CandidateRejectedError, FitError
from domain.entities import ArimaOrder, FittedModel
from infrastructure.ml.differencing import difference, integrate
from infrastructure.ml.stationarity import is_constant

logger = logging.getLogger(__name__)

LOG_2PI = math.log(2.0 * math.pi)


# ---------------------------------------------------------------------------
# polynomials
# ---------------------------------------------------------------------------

def ar_polynomial(coefs: np.ndarray, lag: int = 1) -> np.ndarray:
    """1 - c1 B^lag - c2 B^(2 lag) - ..."""
    coefs = np.asarray(coefs, dtype=float)
    poly = np.zeros(len(coefs) * lag + 1)
    poly[0] = 1.0
    poly[lag::lag] = -coefs
    return poly


def ma_polynomial(coefs: np.ndarray, lag: int = 1) -> np.ndarray:
    """1 + c1 B^lag + c2 B^(2 lag) + ..."""
    coefs = np.asarray(coefs, dtype=float)
    poly = np.zeros(len(coefs) * lag + 1)
    poly[0] = 1.0
    poly[lag::lag] = coefs
    return poly


def expand_ar(ar: np.ndarray, sar: np.ndarray, m: int) -> np.ndarray:
    poly = np.convolve(ar_polynomial(ar), ar_polynomial(sar, max(m, 1)))
    return -poly[1:]


def expand_ma(ma: np.ndarray, sma: np.ndarray, m: int) -> np.ndarray:
    poly = np.convolve(ma_polynomial(ma), ma_polynomial(sma, max(m, 1)))
    return poly[1:]


def max_inverse_root(poly: np.ndarray) -> float:
    """Largest modulus among the inverse roots of ``poly`` (``poly[0] == 1``)."""
    poly = np.trim_zeros(np.asarray(poly, dtype=float), "b")
    if len(poly) <= 1:
        return 0.0
    return float(np.max(np.abs(np.roots(poly))))


# ---------------------------------------------------------------------------
# partial-autocorrelation reparameterization
# ---------------------------------------------------------------------------

def pacf_to_coefs(x: np.ndarray) -> np.ndarray:
    """Map unconstrained values to the coefficients of a stationary AR polynomial."""
    r = np.tanh(np.asarray(x, dtype=float))
    phi = np.zeros(0)
    for rk in r:
        phi = np.concatenate([phi - rk * phi[::-1], [rk]])
    return phi


@dataclass(frozen=True)
class _Layout:
    p: int
    q: int
    P: int
    Q: int
    m: int
    constant: bool

    @property
    def size(self) -> int:
        return self.p + self.q + self.P + self.Q + int(self.constant)


def _unpack(x: np.ndarray, lay: _Layout, w_mean: float, w_scale: float):
    i = 0
    ar = pacf_to_coefs(x[i : i + lay.p])
    i += lay.p
    ma = -pacf_to_coefs(x[i : i + lay.q])
    i += lay.q
    sar = pacf_to_coefs(x[i : i + lay.P])
    i += lay.P
    sma = -pacf_to_coefs(x[i : i + lay.Q])
    i += lay.Q
    mu = w_mean + w_scale * float(x[i]) if lay.constant else 0.0
    return ar, ma, sar, sma, mu


# ---------------------------------------------------------------------------
# likelihood
# ---------------------------------------------------------------------------

def state_space(phi: np.ndarray, theta: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    p, q = len(phi), len(theta)
    r = max(p, q + 1)
    T = np.zeros((r, r))
    T[:p, 0] = phi
    if r > 1:
        T[:-1, 1:] = np.eye(r - 1)
    R = np.zeros(r)
    R[0] = 1.0
    R[1 : q + 1] = theta
    return T, R


def _steady_state_innovations(w: np.ndarray, v: np.ndarray, phi: np.ndarray, theta: np.ndarray, t0: int) -> np.ndarray:
    if len(phi) == 0 and len(theta) == 0:
        return w[t0:].copy()
    b = np.r_[1.0, -phi]
    a = np.r_[1.0, theta]
    x_past = w[t0 - len(phi) : t0][::-1] if len(phi) else np.zeros(0)
    y_past = v[t0 - len(theta) : t0][::-1] if len(theta) else np.zeros(0)
    zi = signal.lfiltic(b, a, y=y_past, x=x_past)
    out, _ = signal.lfilter(b, a, w[t0:], zi=zi)
    return out


def kalman_innovations(w: np.ndarray, phi: np.ndarray, theta: np.ndarray, tol: float = 1e-9) -> tuple[np.ndarray, np.ndarray]:
    """
    One-step prediction errors ``v`` and their variances ``F`` (in units of the
    innovation variance) for a zero-mean stationary ARMA series ``w``.
    """
    n = len(w)
    T, R = state_space(phi, theta)
    RR = np.outer(R, R)
    P = linalg.solve_discrete_lyapunov(T, RR)
    a = np.zeros(len(R))

    v = np.empty(n)
    F = np.ones(n)
    warmup = max(len(phi), len(theta))
    t = 0
    while t < n:
        f = P[0, 0]
        v[t] = w[t] - a[0]
        F[t] = f
        pc = P[:, 0]
        a = T @ (a + pc * (v[t] / f))
        P_new = T @ (P - np.outer(pc, pc) / f) @ T.T + RR
        t += 1
        converged = float(np.max(np.abs(P_new - P))) < tol
        P = P_new
        if converged and t >= warmup:
            break

    if t < n:
        v[t:] = _steady_state_innovations(w, v, phi, theta, t)
    return v, F


def concentrated_loglik(w: np.ndarray, phi: np.ndarray, theta: np.ndarray) -> tuple[float, float, np.ndarray]:
    """(log-likelihood, sigma2, innovations) with the innovation variance profiled out."""
    n = len(w)
    v, F = kalman_innovations(w, phi, theta)
    if np.any(F <= 0.0) or not np.all(np.isfinite(v)):
        return -np.inf, np.nan, v
    sigma2 = float(np.sum(v * v / F)) / n
    if not np.isfinite(sigma2) or sigma2 <= 0.0:
        return -np.inf, sigma2, v
    ll = -0.5 * (n * (LOG_2PI + math.log(sigma2)) + float(np.sum(np.log(F))) + n)
    return ll, sigma2, v


def css_objective(w: np.ndarray, phi: np.ndarray, theta: np.ndarray) -> float:
    e = signal.lfilter(np.r_[1.0, -phi], np.r_[1.0, theta], w)[len(phi):]
    if len(e) == 0:
        return np.inf
    ssq = float(e @ e)
    if not np.isfinite(ssq) or ssq <= 0.0:
        return np.inf
    return 0.5 * math.log(ssq / len(e))


# ---------------------------------------------------------------------------
# fitting
# ---------------------------------------------------------------------------

def information_criteria(loglik: float, n_params: int, nobs: int) -> tuple[float, float, float]:
    aic = -2.0 * loglik + 2.0 * n_params
    denom = nobs - n_params - 1
    aicc = aic + 2.0 * n_params * (n_params + 1) / denom if denom > 0 else np.inf
    bic = -2.0 * loglik + n_params * math.log(nobs)
    return aic, aicc, bic


def _check_roots(ar, ma, sar, sma, order: ArimaOrder, tolerance: float) -> None:
    limit = 1.0 - tolerance
    checks = (
        ("AR", "near unit root", ar_polynomial(ar)),
        ("seasonal AR", "near unit root", ar_polynomial(sar)),
        ("MA", "near non-invertible", ma_polynomial(ma)),
        ("seasonal MA", "near non-invertible", ma_polynomial(sma)),
    )
    for name, kind, poly in checks:
        root = max_inverse_root(poly)
        if root > limit:
            raise CandidateRejectedError(f"{order}: {kind} ({name} inverse root {root:.4f})")


def fit_arima(
    y: np.ndarray,
    order: ArimaOrder,
    include_constant: bool = False,
    maxiter: int = 200,
    root_tolerance: float = 0.01,
) -> FittedModel:
    """
    Fit one ARIMA order by exact maximum likelihood.

    Starting values come from conditional least squares. Raises
    ``CandidateRejectedError`` when the optimizer does not converge or the
    estimate sits at a near unit / near non-invertible root, and ``FitError``
    when the series cannot support the order at all.
    """
    y = np.asarray(y, dtype=float)
    m = order.m if order.m > 1 else 0
    if include_constant and order.n_lost > 1:
        raise FitError(f"{order}: a constant is only allowed with d + D <= 1")

    w = difference(y, order.d, order.D, m)
    if len(w) < 2 * max(order.max_lag, 1) + 1:
        raise FitError(f"{order}: {len(w)} differenced observations are too few")
    if is_constant(w):
        raise FitError("degenerate series")

    lay = _Layout(order.p, order.q, order.P, order.Q, m, include_constant)
    w_mean = float(np.mean(w))
    w_scale = float(np.std(w)) or 1.0

    def _polys(x):
        ar, ma, sar, sma, mu = _unpack(x, lay, w_mean, w_scale)
        return expand_ar(ar, sar, m), expand_ma(ma, sma, m), mu

    def _css(x):
        phi, theta, mu = _polys(x)
        return css_objective(w - mu, phi, theta)

    def _nll(x):
        phi, theta, mu = _polys(x)
        ll, _, _ = concentrated_loglik(w - mu, phi, theta)
        if not np.isfinite(ll):
            return 1e10
        return -ll / len(w)

    x = np.zeros(lay.size)
    converged = True
    if lay.size > 0:
        with np.errstate(all="ignore"):
            css = optimize.minimize(_css, x, method="BFGS", options={"maxiter": maxiter})
        if np.all(np.isfinite(css.x)) and np.isfinite(css.fun):
            x = css.x
        with np.errstate(all="ignore"):
            res = optimize.minimize(_nll, x, method="BFGS", options={"maxiter": maxiter})
        # status 2 is BFGS precision loss at an optimum it cannot improve on
        if not np.isfinite(res.fun) or res.fun >= 1e10 or res.status not in (0, 2):
            raise CandidateRejectedError(f"{order}: optimizer did not converge ({res.message})")
        converged = res.status == 0
        x = res.x

    ar, ma, sar, sma, mu = _unpack(x, lay, w_mean, w_scale)
    _check_roots(ar, ma, sar, sma, order, root_tolerance)

    phi, theta = expand_ar(ar, sar, m), expand_ma(ma, sma, m)
    ll, sigma2, v = concentrated_loglik(w - mu, phi, theta)
    if not np.isfinite(ll):
        raise CandidateRejectedError(f"{order}: likelihood is not finite")

    n_params = lay.size + 1
    aic, aicc, bic = information_criteria(ll, n_params, len(w))

    fitted = np.full(len(y), np.nan)
    fitted[order.n_lost :] = y[order.n_lost :] - v

    return FittedModel(
        order=order,
        include_constant=include_constant,
        ar=ar,
        ma=ma,
        sar=sar,
        sma=sma,
        constant=float(mu),
        sigma2=float(sigma2),
        loglik=float(ll),
        aic=float(aic),
        aicc=float(aicc),
        bic=float(bic),
        nobs=len(w),
        y=y,
        innovations=v,
        fitted=fitted,
        converged=converged,
    )


# ---------------------------------------------------------------------------
# forecasting
# ---------------------------------------------------------------------------

def psi_weights(model: FittedModel, horizon: int) -> np.ndarray:
    """MA(infinity) weights of the full integrated model, psi_0 = 1."""
    o = model.order
    m = o.m if o.m > 1 else 0
    ar_full = np.convolve(ar_polynomial(model.ar), ar_polynomial(model.sar, max(m, 1)))
    for _ in range(o.d):
        ar_full = np.convolve(ar_full, [1.0, -1.0])
    if m:
        seasonal_diff = np.zeros(m + 1)
        seasonal_diff[0], seasonal_diff[m] = 1.0, -1.0
        for _ in range(o.D):
            ar_full = np.convolve(ar_full, seasonal_diff)
    phi_star = -ar_full[1:]
    theta = expand_ma(model.ma, model.sma, m)

    psi = np.zeros(horizon)
    psi[0] = 1.0
    for j in range(1, horizon):
        acc = theta[j - 1] if j <= len(theta) else 0.0
        k = min(j, len(phi_star))
        if k:
            acc += float(np.dot(phi_star[:k], psi[j - 1 :: -1][:k]))
        psi[j] = acc
    return psi


def forecast_arima(model: FittedModel, horizon: int) -> tuple[np.ndarray, np.ndarray]:
    """Point forecasts and forecast standard errors for steps 1..horizon."""
    o = model.order
    m = o.m if o.m > 1 else 0
    phi = expand_ar(model.ar, model.sar, m)
    theta = expand_ma(model.ma, model.sma, m)

    w = difference(model.y, o.d, o.D, m) - model.constant
    n = len(w)
    ext_w = np.concatenate([w, np.zeros(horizon)])
    # future innovations at their expectation
    ext_v = np.concatenate([model.innovations, np.zeros(horizon)])

    for i in range(horizon):
        t = n + i
        k = min(len(phi), t)
        val = float(np.dot(phi[:k], ext_w[t - 1 :: -1][:k])) if k else 0.0
        k = min(len(theta), t)
        if k:
            val += float(np.dot(theta[:k], ext_v[t - 1 :: -1][:k]))
        ext_w[t] = val

    w_future = ext_w[n:] + model.constant
    mean = integrate(w_future, model.y, o.d, o.D, m)
    se = np.sqrt(model.sigma2 * np.cumsum(psi_weights(model, horizon) ** 2))
    return mean, se


def normal_quantile(level: float) -> float:
    return float(stats.norm.ppf(0.5 + float(level) / 2.0))
