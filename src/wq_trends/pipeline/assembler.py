"""
Result Assembler

Applies a trend estimator to every partition and assembles one flat summary
table, one row per partition key. Partition-level failures become explicit
"not computed" rows so callers can tell "no trend" from "could not evaluate".
"""

import logging
import math
from dataclasses import dataclass
from multiprocessing import Pool
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd

from ..errors import RECOVERABLE_ERRORS
from ..trend_detection.estimators import TrendEstimator, TrendResult
from ..utils import format_p_value

logger = logging.getLogger(__name__)

STATUS_OK = 'ok'
NOT_COMPUTED = float('nan')

SUMMARY_COLUMNS = ['slope', 'p_value', 'trend', 'status', 'n', 'estimator', 'message']


@dataclass(frozen=True)
class SummaryRow:
    """One partition's entry in the summary table."""
    key_names: Tuple[str, ...]
    key: Tuple[Any, ...]
    slope: float
    p_value: float
    trend: bool
    status: str
    n: int
    estimator_kind: str
    message: str = ''

    @property
    def computed(self) -> bool:
        return self.status == STATUS_OK

    def as_dict(self) -> Dict[str, Any]:
        out = dict(zip(self.key_names, self.key))
        out.update({
            'slope': self.slope,
            'p_value': self.p_value,
            'trend': self.trend,
            'status': self.status,
            'n': self.n,
            'estimator': self.estimator_kind,
            'message': self.message,
        })
        return out


def _estimate_one(args) -> Tuple[Tuple[Any, ...], Optional[TrendResult], Optional[Tuple[str, str]]]:
    """Estimate one partition; recoverable failures are returned, not raised."""
    estimator, part = args
    try:
        return part.key, estimator.estimate(part), None
    except RECOVERABLE_ERRORS as e:
        return part.key, None, (e.kind, str(e))


def _to_row(part, estimator, result, failure) -> SummaryRow:
    if failure is None:
        logger.debug("%s: slope=%.4g p=%s n=%d", part.labels, result.slope,
                     format_p_value(result.p_value), result.n)
        return SummaryRow(
            key_names=part.key_names, key=part.key,
            slope=float(result.slope), p_value=float(result.p_value),
            trend=False, status=STATUS_OK, n=result.n,
            estimator_kind=result.estimator_kind
        )
    kind, message = failure
    logger.warning("Trend not computed for %s: %s", part.labels, message)
    return SummaryRow(
        key_names=part.key_names, key=part.key,
        slope=NOT_COMPUTED, p_value=NOT_COMPUTED,
        trend=False, status=kind, n=len(part),
        estimator_kind=estimator.kind, message=message
    )


def assemble(
    partitions: Mapping[Tuple[Any, ...], Any],
    estimator: TrendEstimator,
    alpha: Optional[float] = None,
    n_jobs: int = 1
) -> List[SummaryRow]:
    """
    Estimate every partition and return summary rows ordered by key.

    Args:
        partitions: Mapping key -> Partition (as returned by partition())
        estimator: Estimator applied to each partition
        alpha: If given, rows are classified with this significance level
        n_jobs: Worker processes; 1 runs serially

    Returns:
        List of SummaryRow, lexicographically ordered by key tuple
    """
    keys = sorted(partitions)
    tasks = [(estimator, partitions[k]) for k in keys]

    if n_jobs > 1 and len(tasks) > 1:
        logger.info("Estimating %d partitions on %d workers", len(tasks), n_jobs)
        with Pool(processes=n_jobs) as pool:
            outcomes = pool.map(_estimate_one, tasks)
    else:
        outcomes = [_estimate_one(task) for task in tasks]

    by_key = {key: (result, failure) for key, result, failure in outcomes}
    rows = [_to_row(partitions[k], estimator, *by_key[k]) for k in keys]

    n_failed = sum(not r.computed for r in rows)
    logger.info("Assembled %d summary rows (%d not computed) with %s", len(rows), n_failed, estimator.kind)

    if alpha is not None:
        from .classifier import classify_rows
        rows = classify_rows(rows, alpha)
    return rows


def rows_to_frame(rows: List[SummaryRow], key_names: Optional[Tuple[str, ...]] = None) -> pd.DataFrame:
    """
    Flatten summary rows into a DataFrame with key columns first.

    key_names fixes the key columns when rows may be empty; otherwise they
    come from the first row.
    """
    if rows:
        key_names = rows[0].key_names
    key_names = list(key_names or ())
    if not rows:
        return pd.DataFrame(columns=key_names + SUMMARY_COLUMNS)
    df = pd.DataFrame([r.as_dict() for r in rows], columns=key_names + SUMMARY_COLUMNS)
    return df


def is_not_computed(value: float) -> bool:
    """True for the sentinel used in slope/p_value of rows that failed."""
    return value is None or (isinstance(value, float) and math.isnan(value))
