# main.py
import logging
import sys

from core.config import AppConfig, CFG
from core.errors import LoadError
from core.logging_config import setup_logging
from use_cases.build_report import build_report_uc
from use_cases.run_pipeline import RunPipelineInput, run_pipeline_uc

logger = logging.getLogger("main")


def main(cfg: AppConfig = CFG) -> int:
    setup_logging(cfg.log_level)
    try:
        out = run_pipeline_uc(cfg, RunPipelineInput(source=cfg.csv_path))
    except LoadError as e:
        logger.error("Aborted, input could not be loaded: %s", e)
        return 1

    path = build_report_uc(cfg, out)

    logger.info("Summary statistics:\n%s", out.summary.to_string(float_format=lambda x: f"{x:,.2f}"))
    logger.info("Forecast comparison:\n%s", out.comparison.head(cfg.table_rows).to_string(float_format=lambda x: f"{x:,.1f}"))
    for name, err in out.errors.items():
        logger.error("%s was not forecast: %s", name, err)
    logger.info("Report: %s", path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
