"""
Sen's Slope Estimator

A robust, non-parametric estimator for the slope of a trend line.
Sen's slope is the median of all pairwise slopes (x_j - x_i) / (t_j - t_i),
making it resistant to outliers and usable on irregularly sampled series.

References:
    - Sen, P. K. (1968). Estimates of the regression coefficient based on
      Kendall's tau. Journal of the American Statistical Association.
    - Gilbert, R. O. (1987). Statistical Methods for Environmental Pollution Monitoring.
"""

import numpy as np
from scipy.stats import norm
from typing import Optional, Tuple
from dataclasses import dataclass


@dataclass(frozen=True)
class SenSlopeResult:
    """Result container for Sen's slope estimation."""
    slope: float
    intercept: float
    conf_interval: Optional[Tuple[float, float]]
    n_slopes: int

    def to_dict(self):
        return {
            'slope': self.slope,
            'intercept': self.intercept,
            'conf_interval': self.conf_interval,
            'n_slopes': self.n_slopes
        }


def _time_axis(x: np.ndarray, t: Optional[np.ndarray]) -> np.ndarray:
    if t is None:
        return np.arange(len(x), dtype=np.float64)
    return np.asarray(t, dtype=np.float64)


def compute_all_slopes(x: np.ndarray, t: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Compute all pairwise slopes.

    For each pair (i, j) where i < j and t_i != t_j:
        slope_{ij} = (x_j - x_i) / (t_j - t_i)

    Args:
        x: Values, ordered by time
        t: Time values (if None, uses 0, 1, 2, ...)

    Returns:
        Sorted array of all pairwise slopes
    """
    x = np.asarray(x, dtype=np.float64)
    t = _time_axis(x, t)
    n = x.size

    if n < 2:
        return np.array([], dtype=np.float64)

    slopes = []
    for i in range(n - 1):
        dt = t[i + 1:] - t[i]
        keep = dt != 0
        if not np.any(keep):
            continue
        s = (x[i + 1:][keep] - x[i]) / dt[keep]
        s = s[np.isfinite(s)]
        if s.size > 0:
            slopes.append(s)

    if not slopes:
        return np.array([], dtype=np.float64)

    all_slopes = np.concatenate(slopes)
    all_slopes.sort(kind='mergesort')

    return all_slopes


def compute_sens_slope(x: np.ndarray, t: Optional[np.ndarray] = None) -> float:
    """
    Compute Sen's slope estimator (median of all pairwise slopes).

    Returns NaN when no pair has distinct times.
    """
    slopes = compute_all_slopes(x, t)

    if slopes.size == 0:
        return float('nan')

    return float(np.median(slopes))


def compute_intercept(x: np.ndarray, slope: float, t: Optional[np.ndarray] = None) -> float:
    """
    Compute intercept using median of (x_i - slope * t_i).
    """
    x = np.asarray(x, dtype=np.float64)
    t = _time_axis(x, t)
    return float(np.median(x - slope * t))


def _confidence_interval_exact(n: int, alpha: float) -> Optional[float]:
    """
    Get C value from exact table for small samples (n <= 10).
    Used for confidence interval calculation.
    """
    from .mann_kendall import MK_SMALL_SAMPLE_TABLE

    table = MK_SMALL_SAMPLE_TABLE.get(int(n))
    if table is None:
        return None

    M = n * (n - 1) // 2
    valid_keys = sorted(k for k in table if (k % 2) == (M % 2))
    target = alpha / 2.0

    # Find smallest key where P <= alpha/2
    candidates = [k for k in valid_keys if table[k] <= target]
    if candidates:
        return float(min(candidates))

    # Fallback: largest key where P > alpha/2
    larger = [k for k in valid_keys if table[k] > target]
    return float(max(larger)) if larger else float(valid_keys[-1])


def _confidence_interval_normal(var_s: float, alpha: float) -> float:
    """
    Compute C value using normal approximation.

    C = z_{1-alpha/2} * sqrt(Var(S))
    """
    if not np.isfinite(var_s) or var_s <= 0:
        return 0.0

    z = norm.ppf(1 - alpha / 2.0)
    return float(z * np.sqrt(var_s))


def sens_slope_confidence_interval(
    slopes_sorted: np.ndarray,
    C: float
) -> Tuple[float, float]:
    """
    Compute confidence interval for Sen's slope.

    The interval is based on the rank positions in the sorted slope array.

    Args:
        slopes_sorted: Sorted array of all pairwise slopes
        C: Critical value (from exact table or normal approximation)

    Returns:
        Tuple of (lower_bound, upper_bound)
    """
    M = slopes_sorted.size

    # Rank indices (1-based, then converted to 0-based)
    L = int(np.floor((M - C) / 2.0))
    U = int(np.ceil((M + C) / 2.0))

    L = max(1, min(L, M)) - 1
    U = max(1, min(U, M)) - 1

    low, high = float(slopes_sorted[L]), float(slopes_sorted[U])

    if low > high:
        low, high = high, low

    return (low, high)


def sens_slope(
    x: np.ndarray,
    t: Optional[np.ndarray] = None,
    alpha: float = 0.05,
    var_s: Optional[float] = None
) -> SenSlopeResult:
    """
    Compute Sen's slope with confidence interval.

    Args:
        x: Values, ordered by time
        t: Time values (if None, uses 0, 1, 2, ...)
        alpha: Significance level for confidence interval (default 0.05 for 95% CI)
        var_s: Variance of S statistic (if None, uses the no-ties variance)

    Returns:
        SenSlopeResult object
    """
    x = np.asarray(x, dtype=np.float64)
    t = _time_axis(x, t)
    n = len(x)

    slopes_sorted = compute_all_slopes(x, t)

    if slopes_sorted.size == 0:
        return SenSlopeResult(
            slope=float('nan'),
            intercept=float('nan'),
            conf_interval=None,
            n_slopes=0
        )

    slope = float(np.median(slopes_sorted))
    intercept = compute_intercept(x, slope, t)

    conf_interval = None
    # Exact table only holds for untied series, as in mann_kendall_test
    has_ties = np.unique(x).size < n or np.unique(t).size < n
    if 4 <= n <= 10 and not has_ties:
        C = _confidence_interval_exact(n, alpha)
        if C is not None:
            conf_interval = sens_slope_confidence_interval(slopes_sorted, C)
    else:
        if var_s is None:
            var_s = n * (n - 1) * (2 * n + 5) / 18.0
        C = _confidence_interval_normal(var_s, alpha)
        conf_interval = sens_slope_confidence_interval(slopes_sorted, C)

    return SenSlopeResult(
        slope=slope,
        intercept=intercept,
        conf_interval=conf_interval,
        n_slopes=int(slopes_sorted.size)
    )
