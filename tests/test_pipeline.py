"""End-to-end runs of the batch pipeline on synthetic CSVs."""
from __future__ import annotations

import dataclasses

import numpy as np
import pytest

from core.errors import LoadError
from infrastructure.ml.predictors import ThreeSeriesForecaster, process_series
from infrastructure.ml.preprocessing import load_series_set
from use_cases.build_report import build_report, build_report_uc
from use_cases.run_pipeline import RunPipelineInput, run_pipeline_uc

import main as batch


class TestRunPipeline:
    def test_all_series_forecast(self, fast_cfg, csv_path):
        out = run_pipeline_uc(fast_cfg, RunPipelineInput(source=str(csv_path)))

        assert not out.errors
        assert list(out.outcomes) == ["cases", "hospitalizations", "deaths"]
        assert all(o.ok for o in out.outcomes.values())
        assert len(out.comparison) == fast_cfg.horizon
        assert out.comparison.notna().all().all()
        assert out.meta["rows_count"] == 120
        assert out.meta["date_range_start"] == "2021-01-01"
        for o in out.outcomes.values():
            assert o.decomposition is not None
            assert o.forecast.metrics["n"] > 0

    def test_degenerate_series_isolated(self, fast_cfg, counts_df, write_csv):
        counts_df["DEATH_COUNT"] = 797
        out = run_pipeline_uc(fast_cfg, RunPipelineInput(source=write_csv(counts_df)))

        assert set(out.errors) == {"deaths"}
        assert "degenerate series" in out.errors["deaths"]
        assert out.results["deaths"] is None
        assert out.results["cases"] is not None
        assert out.comparison["Forecasted_Deaths"].isna().all()
        assert out.comparison["Forecasted_Cases"].notna().all()

    def test_unreadable_column_isolated(self, fast_cfg, counts_df, write_csv):
        df = counts_df.astype({"HOSPITALIZED_COUNT": object})
        df.loc[7, "HOSPITALIZED_COUNT"] = "unknown"
        out = run_pipeline_uc(fast_cfg, RunPipelineInput(source=write_csv(df)))

        assert set(out.errors) == {"hospitalizations"}
        assert list(out.outcomes) == ["cases", "hospitalizations", "deaths"]
        assert out.outcomes["deaths"].ok

    def test_strict_mode_aborts(self, fast_cfg, counts_df, write_csv):
        df = counts_df.astype({"HOSPITALIZED_COUNT": object})
        df.loc[7, "HOSPITALIZED_COUNT"] = "unknown"

        with pytest.raises(LoadError):
            run_pipeline_uc(fast_cfg, RunPipelineInput(source=write_csv(df), strict=True))

    def test_short_series_skips_decomposition_only(self, csv_path):
        from core.config import AppConfig

        cfg = AppConfig(seasonal=False, max_p=1, max_q=1, max_order=2, horizon=5)
        ss = load_series_set(csv_path, cfg)

        outcome = process_series(cfg, ss["cases"])

        assert outcome.decomposition is None
        assert "shorter than two full periods" in outcome.decomposition_error
        assert outcome.ok

    def test_parallel_matches_sequential(self, fast_cfg, csv_path):
        ss = load_series_set(csv_path, fast_cfg)

        seq = ThreeSeriesForecaster(fast_cfg).forecast(ss)
        par = ThreeSeriesForecaster(dataclasses.replace(fast_cfg, max_workers=3)).forecast(ss)

        for name in seq:
            np.testing.assert_allclose(seq[name].forecast.pred, par[name].forecast.pred)


class TestReport:
    def test_report_written(self, fast_cfg, csv_path):
        out = run_pipeline_uc(fast_cfg, RunPipelineInput(source=csv_path))

        path = build_report_uc(fast_cfg, out)

        html = path.read_text(encoding="utf-8")
        assert path.name == "report.html"
        assert "Forecast comparison (first 10 days)" in html
        assert "Forecasted_Hospitalizations" in html
        assert "Cases: decomposition" in html

    def test_holdout_section_only_when_enabled(self, fast_cfg, csv_path):
        out = run_pipeline_uc(fast_cfg, RunPipelineInput(source=csv_path))
        titles = [s.title for s in build_report(fast_cfg, out).sections]

        assert "Accuracy (in-sample)" in titles
        assert not any(t.startswith("Accuracy (last") for t in titles)


class TestMain:
    def test_missing_input_exits_nonzero(self, fast_cfg, tmp_path):
        cfg = dataclasses.replace(fast_cfg, csv_path=str(tmp_path / "absent.csv"))

        assert batch.main(cfg) == 1

    def test_batch_run(self, fast_cfg, csv_path):
        cfg = dataclasses.replace(fast_cfg, csv_path=str(csv_path))

        assert batch.main(cfg) == 0
        assert (csv_path.parent / "report.html").exists()
