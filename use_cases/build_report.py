from __future__ import annotations

import os
from pathlib import Path

from core.config import AppConfig, SERIES_LABELS
from infrastructure.reporting.figures import (
    daily_counts_figure,
    decomposition_figure,
    forecast_figure,
    moving_average_figure,
)
from infrastructure.reporting.html_report import HtmlReport
from infrastructure.reporting.tables import (
    build_accuracy_table,
    build_comparison_table,
    build_forecast_table,
)
from use_cases.run_pipeline import RunPipelineOutput


def _meta_text(out: RunPipelineOutput) -> str:
    m = out.meta
    lines = [
        f"File: {m['file_name']} ({m['rows_count']} days, {m['date_range_start']} to {m['date_range_end']})",
        f"Forecast horizon: {m['horizon']} days, intervals: "
        + ", ".join(f"{round(x * 100)}%" for x in m["confidence_levels"]),
        f"Order selection by {m['information_criterion'].upper()}",
        f"Decomposition period: {m['decomposition_period']} days",
        "Missing counts and absent days are filled with zero.",
    ]
    if m.get("seasonal_period") and m["decomposition_period"] != m["seasonal_period"]:
        lines.append(
            f"Note: the decomposition uses a {m['decomposition_period']}-day period while the data "
            f"cycles every {m['seasonal_period']} days."
        )
    for name, err in out.errors.items():
        lines.append(f"{SERIES_LABELS.get(name, name)}: not forecast ({err})")
    return "\n".join(lines)


def build_report(cfg: AppConfig, out: RunPipelineOutput) -> HtmlReport:
    report = HtmlReport("COVID-19 daily counts: decomposition and ARIMA forecasts")
    ss = out.series_set
    results = out.results

    report.add_text("Run", _meta_text(out))
    report.add_table("Summary statistics", lambda: out.summary)
    report.add_figure("Daily counts", lambda: daily_counts_figure(ss))
    report.add_figure("7-day moving averages", lambda: moving_average_figure(ss))

    for name, outcome in out.outcomes.items():
        label = SERIES_LABELS.get(name, name)
        if outcome.decomposition is not None:
            report.add_figure(
                f"{label}: decomposition",
                lambda n=name, d=outcome.decomposition: decomposition_figure(ss[n], d),
            )

    for name, outcome in out.outcomes.items():
        if outcome.forecast is None:
            continue
        label = SERIES_LABELS.get(name, name)
        report.add_figure(
            f"{label}: forecast",
            lambda n=name, r=outcome.forecast: forecast_figure(ss[n], r, cfg.history_days),
        )
        report.add_table(f"{label}: forecast values", lambda r=outcome.forecast: build_forecast_table(r))

    report.add_table("Accuracy (in-sample)", lambda: build_accuracy_table(results))
    if cfg.holdout_days > 0:
        report.add_table(f"Accuracy (last {cfg.holdout_days} days held out)", lambda: build_accuracy_table(results, holdout=True))
    report.add_table(
        f"Forecast comparison (first {cfg.table_rows} days)",
        lambda: build_comparison_table(results, rows=cfg.table_rows),
    )
    return report


def build_report_uc(cfg: AppConfig, out: RunPipelineOutput, path: str | os.PathLike | None = None) -> Path:
    report = build_report(cfg, out)
    return report.write(path or cfg.report_path)
