from __future__ import annotations

import logging
import os
from typing import IO, Dict, Union

import numpy as np
import pandas as pd

from core.config import AppConfig, SERIES_ORDER
from core.errors import LoadError
from domain.entities import Series, SeriesSet

logger = logging.getLogger(__name__)

CsvSource = Union[str, "os.PathLike[str]", IO]


def read_csv_source(source: CsvSource) -> pd.DataFrame:
    try:
        return pd.read_csv(source, thousands=",")
    except FileNotFoundError:
        raise LoadError(f"CSV file not found: {source}")
    except pd.errors.EmptyDataError:
        raise LoadError("CSV file is empty.")
    except pd.errors.ParserError as e:
        raise LoadError(f"CSV file could not be parsed: {e}")


def load_and_validate_df(
    df: pd.DataFrame,
    required_cols: list[str],
    date_col: str,
    date_format: str,
) -> pd.DataFrame:
    if not isinstance(df, pd.DataFrame):
        raise LoadError("Input is not a valid CSV table.")

    missing = [c for c in required_cols if c not in df.columns]
    if date_col in missing:
        raise LoadError("Missing required columns", missing_fields=missing)

    if df.empty:
        raise LoadError("Dataset is empty.")

    df = df.copy()
    raw = df[date_col].astype(str).str.strip()
    parsed = pd.to_datetime(raw, format=date_format, errors="coerce")
    bad = parsed.isna()
    if bad.any():
        first = raw[bad].iloc[0]
        raise LoadError(
            f"Date {first!r} does not match the expected format {date_format!r}",
            column=date_col,
        )
    df[date_col] = parsed

    if df[date_col].duplicated().any():
        dup = df.loc[df[date_col].duplicated(), date_col].iloc[0]
        raise LoadError(f"duplicate date row {dup.date().isoformat()}", column=date_col)

    return df.sort_values(date_col).reset_index(drop=True)


def clean_core_col(df: pd.DataFrame, col: str) -> np.ndarray:
    if col not in df.columns:
        raise LoadError("Missing required column", column=col, missing_fields=[col])

    raw = df[col]
    values = pd.to_numeric(raw, errors="coerce")
    # blank cells are allowed (they become 0), text that is not a number is not
    bad = values.isna() & raw.notna() & (raw.astype(str).str.strip() != "")
    if bad.any():
        first = raw[bad].iloc[0]
        raise LoadError(f"Non-numeric value {first!r}", column=col)

    n_missing = int(values.isna().sum())
    if n_missing:
        logger.warning("Column %s: %d missing cells filled with 0", col, n_missing)
    return values.fillna(0.0).to_numpy(dtype=float)


def fill_date_gaps(df: pd.DataFrame, date_col: str, fill: bool) -> pd.DataFrame:
    full = pd.date_range(df[date_col].iloc[0], df[date_col].iloc[-1], freq="D")
    if len(full) == len(df):
        return df

    missing = full.difference(pd.DatetimeIndex(df[date_col]))
    if not fill:
        raise LoadError(
            f"missing date row {missing[0].date().isoformat()} ({len(missing)} day(s) absent)",
            column=date_col,
        )

    logger.warning(
        "%d absent calendar day(s) inserted with zero counts, first %s",
        len(missing),
        missing[0].date().isoformat(),
    )
    out = df.set_index(date_col).reindex(full)
    out.index.name = date_col
    numeric = out.select_dtypes(include=["number"]).columns
    out[numeric] = out[numeric].fillna(0.0)
    return out.reset_index()


def load_series_set(source: CsvSource, cfg: AppConfig, strict: bool = False) -> SeriesSet:
    """
    Read the daily counts CSV and return the cleaned, date-sorted series.

    Missing numeric cells become 0. A count column that cannot be read removes
    only its own series (recorded in ``SeriesSet.failed``) unless ``strict``.
    """
    if isinstance(source, (str, os.PathLike)):
        source_name = os.path.basename(os.fspath(source))
    else:
        source_name = getattr(source, "name", "dataset.csv")

    df_raw = read_csv_source(source)
    required = [cfg.date_col] + [cfg.series_columns[s] for s in SERIES_ORDER]
    df = load_and_validate_df(df_raw, required, cfg.date_col, cfg.date_format)

    columns: Dict[str, np.ndarray] = {}
    failed: Dict[str, str] = {}
    for name in SERIES_ORDER:
        col = cfg.series_columns[name]
        try:
            columns[name] = clean_core_col(df, col)
        except LoadError as e:
            if strict:
                raise
            logger.error("Series %s dropped: %s", name, e)
            failed[name] = str(e)

    if not columns:
        raise LoadError("No usable count column in dataset", missing_fields=list(cfg.series_columns.values()))

    clean = pd.DataFrame({cfg.date_col: df[cfg.date_col]})
    for name, values in columns.items():
        clean[name] = values
        avg_col = cfg.avg_columns.get(name)
        if avg_col and avg_col in df.columns:
            clean[f"{name}_avg"] = pd.to_numeric(df[avg_col], errors="coerce").fillna(0.0).to_numpy(dtype=float)
        else:
            logger.info("No 7-day average column for %s", name)

    clean = fill_date_gaps(clean, cfg.date_col, cfg.fill_missing_dates)
    dates = pd.DatetimeIndex(clean[cfg.date_col], freq="D", name="date")

    series: Dict[str, Series] = {}
    for name in columns:
        avg_key = f"{name}_avg"
        series[name] = Series(
            name=name,
            column=cfg.series_columns[name],
            dates=dates,
            values=clean[name].to_numpy(dtype=float),
            avg_7day=clean[avg_key].to_numpy(dtype=float) if avg_key in clean.columns else None,
        )

    logger.info(
        "Loaded %s: %d days %s..%s, series: %s",
        source_name,
        len(dates),
        dates[0].date().isoformat(),
        dates[-1].date().isoformat(),
        ", ".join(series.keys()),
    )
    return SeriesSet(dates=dates, series=series, source_name=source_name, failed=failed)
