"""
Grouped trend workflow: prepare -> partition -> estimate -> classify.
"""

import logging
from typing import Optional

import pandas as pd

from ..config import AnalysisConfig
from ..trend_detection.estimators import make_estimator
from .assembler import assemble, rows_to_frame
from .partition import partition
from .tidy import TidyTable

logger = logging.getLogger(__name__)


def prepare_table(table: TidyTable, config: AnalysisConfig) -> TidyTable:
    """Apply the daily aggregation and low-flow filter named in config."""
    if config.daily_mean:
        table = table.daily_mean()
    if config.low_flow_months is not None:
        table = table.low_flow(config.low_flow_months)
    return table


def run_trend_analysis(table: TidyTable, config: Optional[AnalysisConfig] = None) -> pd.DataFrame:
    """
    Run a grouped trend analysis and return the summary table.

    Args:
        table: Observations
        config: Analysis settings (AnalysisConfig() if None)

    Returns:
        DataFrame with one row per partition key present in the data:
        key columns, slope, p_value, trend, status, n, estimator, message
    """
    config = config if config is not None else AnalysisConfig()
    logger.info(
        "Trend analysis: estimator=%s group_keys=%s alpha=%s",
        config.estimator.kind, list(config.group_keys), config.alpha
    )

    prepared = prepare_table(table, config)
    parts = partition(prepared, config.group_keys, time_unit=config.estimator.time_unit)
    estimator = make_estimator(config.estimator)
    rows = assemble(parts, estimator, alpha=config.alpha, n_jobs=config.n_jobs)

    n_trend = sum(r.trend for r in rows)
    logger.info("Trend present in %d of %d partitions (alpha=%s)", n_trend, len(rows), config.alpha)
    return rows_to_frame(rows, key_names=config.group_keys)
