from __future__ import annotations

import numpy as np
import pandas as pd

from domain.entities import SeriesSet


SUMMARY_COLUMNS = ["Min", "1Q", "Median", "Mean", "3Q", "Max", "Total", "Peak_Date"]


def summarize_values(values: np.ndarray) -> dict[str, float]:
    v = np.asarray(values, dtype=float)
    q1, med, q3 = np.quantile(v, [0.25, 0.5, 0.75])
    return {
        "Min": float(np.min(v)),
        "1Q": float(q1),
        "Median": float(med),
        "Mean": float(np.mean(v)),
        "3Q": float(q3),
        "Max": float(np.max(v)),
        "Total": float(np.sum(v)),
    }


def summarize_series_set(series_set: SeriesSet) -> pd.DataFrame:
    rows = {}
    for name, s in series_set.series.items():
        row = summarize_values(s.values)
        row["Peak_Date"] = s.dates[int(np.argmax(s.values))].date().isoformat()
        rows[name] = row
    out = pd.DataFrame.from_dict(rows, orient="index")
    return out.reindex(columns=SUMMARY_COLUMNS)
