from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


SERIES_ORDER = ["cases", "hospitalizations", "deaths"]

SERIES_LABELS = {
    "cases": "Cases",
    "hospitalizations": "Hospitalizations",
    "deaths": "Deaths",
}

INFORMATION_CRITERIA = ("aicc", "aic", "bic")
ADF_LEVELS = ("1%", "5%", "10%")


@dataclass(frozen=True)
class AppConfig:
    # ---- Data ----
    csv_path: str = "data/COVID-19_Daily_Counts_of_Cases__Hospitalizations__and_Deaths.csv"
    date_col: str = "date_of_interest"
    date_format: str = "%m/%d/%Y"
    # series name -> CSV column
    series_columns: Dict[str, str] = None  # type: ignore
    avg_columns: Dict[str, str] = None  # type: ignore
    fill_missing_dates: bool = True

    # ---- Decomposition ----
    # Annual period carried over from the source analysis; the data cycles weekly.
    decomposition_period: int = 365

    # ---- ARIMA order search ----
    seasonal: bool = True
    seasonal_period: int = 7
    seasonal_strength_threshold: float = 0.64
    max_p: int = 5
    max_q: int = 5
    max_P: int = 2
    max_Q: int = 2
    max_d: int = 2
    max_D: int = 1
    max_order: int = 5
    information_criterion: str = "aicc"
    stepwise: bool = True
    max_models: int = 94
    adf_level: str = "5%"
    root_tolerance: float = 0.01
    optimizer_maxiter: int = 200

    # ---- Forecast ----
    horizon: int = 30
    confidence_levels: tuple[float, ...] = (0.80, 0.95)
    holdout_days: int = 0

    # ---- Report ----
    report_path: str = "reports/covid_report.html"
    table_rows: int = 10
    history_days: int = 120

    # ---- Runtime ----
    max_workers: int = 1
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.series_columns is None:
            object.__setattr__(
                self,
                "series_columns",
                {
                    "cases": "CASE_COUNT",
                    "hospitalizations": "HOSPITALIZED_COUNT",
                    "deaths": "DEATH_COUNT",
                },
            )
        if self.avg_columns is None:
            object.__setattr__(
                self,
                "avg_columns",
                {
                    "cases": "CASE_COUNT_7DAY_AVG",
                    "hospitalizations": "HOSP_COUNT_7DAY_AVG",
                    "deaths": "DEATH_COUNT_7DAY_AVG",
                },
            )
        self._validate()

    def _validate(self) -> None:
        if int(self.horizon) < 1:
            raise ValueError(f"horizon must be positive, got {self.horizon}")
        if int(self.decomposition_period) < 2:
            raise ValueError(f"decomposition_period must be >= 2, got {self.decomposition_period}")
        if self.seasonal and int(self.seasonal_period) < 2:
            raise ValueError(f"seasonal_period must be >= 2, got {self.seasonal_period}")
        if not self.confidence_levels:
            raise ValueError("confidence_levels must not be empty")
        for level in self.confidence_levels:
            if not 0.0 < float(level) < 1.0:
                raise ValueError(f"confidence level must be in (0, 1), got {level}")
        if self.information_criterion not in INFORMATION_CRITERIA:
            raise ValueError(
                f"information_criterion must be one of {INFORMATION_CRITERIA}, "
                f"got {self.information_criterion!r}"
            )
        if self.adf_level not in ADF_LEVELS:
            raise ValueError(f"adf_level must be one of {ADF_LEVELS}, got {self.adf_level!r}")
        for name in ("max_p", "max_q", "max_P", "max_Q", "max_d", "max_D", "max_order", "holdout_days"):
            if int(getattr(self, name)) < 0:
                raise ValueError(f"{name} must be >= 0")
        if int(self.max_workers) < 1:
            raise ValueError("max_workers must be >= 1")
        missing = [s for s in SERIES_ORDER if s not in self.series_columns]
        if missing:
            raise ValueError(f"series_columns has no column for: {', '.join(missing)}")


CFG = AppConfig()
