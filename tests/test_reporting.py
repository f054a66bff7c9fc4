"""Report tables, figures and the HTML writer."""
from __future__ import annotations

import numpy as np
import plotly.graph_objects as go
import pytest

from core.errors import RenderError
from domain.entities import SeriesSet
from infrastructure.ml.decomposition import classical_decompose
from infrastructure.reporting.figures import (
    daily_counts_figure,
    decomposition_figure,
    forecast_figure,
    moving_average_figure,
    series_figure,
)
from infrastructure.reporting.html_report import HtmlReport
from infrastructure.reporting.tables import (
    build_accuracy_table,
    build_comparison_table,
    build_forecast_table,
)

from conftest import make_result, make_series


@pytest.fixture
def results():
    return {
        "cases": make_result("cases", level=1000.0),
        "hospitalizations": make_result("hospitalizations", level=100.0),
        "deaths": make_result("deaths", level=10.0),
    }


class TestTables:
    def test_comparison_table_shape(self, results):
        df = build_comparison_table(results, rows=10)

        assert list(df.columns) == ["Date", "Forecasted_Cases", "Forecasted_Hospitalizations", "Forecasted_Deaths"]
        assert len(df) == 10
        assert list(df.index) == list(range(1, 11))
        assert df["Date"].iloc[0] == "2021-05-01"
        assert df.loc[1, "Forecasted_Deaths"] == 10.0

    def test_full_horizon_without_row_limit(self, results):
        assert len(build_comparison_table(results)) == 12

    def test_missing_series_gets_empty_column(self, results):
        results["deaths"] = None

        df = build_comparison_table(results)

        assert df["Forecasted_Deaths"].isna().all()
        assert df["Forecasted_Cases"].notna().all()

    def test_no_forecasts(self):
        df = build_comparison_table({"cases": None})

        assert df.empty
        assert "Forecasted_Cases" in df.columns

    def test_misaligned_start_dates(self, results):
        results["deaths"] = make_result("deaths", start="2021-05-02")

        with pytest.raises(ValueError, match="horizon start date"):
            build_comparison_table(results)

    def test_forecast_table_columns(self, results):
        df = build_forecast_table(results["cases"])

        assert list(df.columns) == ["Date", "Forecast", "Lo 80%", "Hi 80%", "Lo 95%", "Hi 95%"]

    def test_accuracy_table(self, results):
        results["deaths"] = None

        df = build_accuracy_table(results)

        assert list(df.index) == ["Cases", "Hospitalizations"]
        assert df.loc["Cases", "MAE"] == 1.0
        assert build_accuracy_table(results, holdout=True).empty


class TestFigures:
    def test_daily_counts(self):
        s = make_series(np.arange(30.0))
        fig = daily_counts_figure(SeriesSet(dates=s.dates, series={"cases": s}))

        assert isinstance(fig, go.Figure)
        assert len(fig.data) == 1

    def test_moving_average_requires_average_columns(self):
        s = make_series(np.arange(30.0))

        with pytest.raises(RenderError):
            moving_average_figure(SeriesSet(dates=s.dates, series={"cases": s}))

    def test_series_with_average(self):
        s = make_series(np.arange(30.0), avg=np.arange(30.0) - 3.0)

        assert len(series_figure(s).data) == 2
        assert len(series_figure(make_series(np.arange(30.0))).data) == 1

    def test_decomposition_panels(self):
        s = make_series(np.sin(np.arange(42.0)) + np.arange(42.0))
        fig = decomposition_figure(s, classical_decompose(s.values, 7))

        assert len(fig.data) == 4

    def test_forecast_bands(self):
        s = make_series(np.arange(120.0), start="2021-01-01")
        fig = forecast_figure(s, make_result("cases", start="2021-05-01"), history_days=30)

        # history, an upper and a lower edge per band, point forecast
        assert len(fig.data) == 6


class TestHtmlReport:
    def test_failed_sections_are_skipped(self, tmp_path):
        report = HtmlReport("Test report")

        def broken():
            raise RenderError("no data")

        def bad_value():
            raise ValueError("bad shape")

        report.add_text("Intro", "hello\nworld")
        report.add_figure("Broken", broken)
        report.add_table("Also broken", bad_value)
        report.add_figure("Chart", lambda: go.Figure(go.Scatter(x=[1, 2], y=[3, 4])))

        assert [s.title for s in report.sections] == ["Intro", "Chart"]
        assert [t for t, _ in report.skipped] == ["Broken", "Also broken"]

        path = report.write(tmp_path / "out" / "report.html")
        html = path.read_text(encoding="utf-8")
        assert "Skipped sections" in html
        assert "no data" in html
        assert html.count("<h2>") == 3

    def test_empty_table_skipped(self):
        import pandas as pd

        report = HtmlReport("t")
        report.add_table("Empty", lambda: pd.DataFrame())

        assert report.skipped[0][0] == "Empty"

    def test_plotlyjs_embedded_once(self):
        report = HtmlReport("t")
        for i in range(3):
            report.add_figure(f"f{i}", lambda: go.Figure(go.Scatter(x=[1], y=[1])))

        bodies = [s.body for s in report.sections]
        assert len(bodies[0]) > 10 * len(bodies[1])
