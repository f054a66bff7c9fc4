from __future__ import annotations

from typing import List

import numpy as np


def differencing_lags(d: int, D: int = 0, m: int = 0) -> List[int]:
    """Lags applied in order: ``D`` seasonal differences at ``m`` first, then ``d`` regular ones."""
    lags = [int(m)] * int(D) if m > 1 else []
    return lags + [1] * int(d)


def difference(y: np.ndarray, d: int, D: int = 0, m: int = 0) -> np.ndarray:
    w = np.asarray(y, dtype=float)
    for lag in differencing_lags(d, D, m):
        if len(w) <= lag:
            return np.empty(0, dtype=float)
        w = w[lag:] - w[:-lag]
    return w


def integrate(w_future: np.ndarray, history: np.ndarray, d: int, D: int = 0, m: int = 0) -> np.ndarray:
    """
    Undo ``difference`` for values that continue ``history``.

    ``w_future`` are differenced values for the steps after the end of
    ``history``; the result is on the scale of ``history``.
    """
    x = np.asarray(history, dtype=float)
    tails = []
    for lag in differencing_lags(d, D, m):
        tails.append((lag, x[-lag:].copy()))
        x = x[lag:] - x[:-lag]

    out = np.asarray(w_future, dtype=float)
    for lag, tail in reversed(tails):
        buf = np.concatenate([tail, np.zeros(len(out))])
        for i, v in enumerate(out):
            buf[lag + i] = v + buf[i]
        out = buf[lag:]
    return out
