"""
Significance Classifier

Labels summary rows as "trend present" when the p-value is defined and below
alpha. alpha is always passed explicitly; the documented default for a full
analysis is config.DEFAULT_ALPHA.
"""

import math
from dataclasses import replace
from typing import Iterable, List

from .assembler import SummaryRow


def _check_alpha(alpha: float) -> float:
    alpha = float(alpha)
    if not 0.0 < alpha < 1.0:
        raise ValueError(f"alpha must be in (0, 1), got {alpha}")
    return alpha


def classify(row: SummaryRow, alpha: float) -> bool:
    """Return True when the row's p-value is finite and strictly below alpha."""
    alpha = _check_alpha(alpha)
    p = row.p_value
    return p is not None and math.isfinite(p) and p < alpha


def classify_rows(rows: Iterable[SummaryRow], alpha: float) -> List[SummaryRow]:
    """Return copies of rows with the trend flag set."""
    alpha = _check_alpha(alpha)
    return [replace(row, trend=classify(row, alpha)) for row in rows]
