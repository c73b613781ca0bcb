"""
Mann-Kendall Trend Test with optional HR98 Autocorrelation Correction

This module implements the two-sided Mann-Kendall test for monotonic trends in
irregularly sampled concentration series, with tie-adjusted variance and an
optional Hamed & Rao (1998) variance correction for autocorrelated data.

The test is rank based and insensitive to the distribution of the values, but
like ordinary regression it assumes independent observations. For serially
correlated series the HR98 correction inflates Var(S) to compensate.

References:
    - Mann, H. B. (1945). Nonparametric tests against trend. Econometrica.
    - Kendall, M. G. (1975). Rank Correlation Methods. Griffin, London.
    - Hamed, K. H., & Rao, A. R. (1998). A modified Mann-Kendall trend test
      for autocorrelated data. Journal of Hydrology.
    - Gilbert, R. O. (1987). Statistical Methods for Environmental Pollution Monitoring.
"""

import numpy as np
from scipy.stats import norm, t as tdist, rankdata
from functools import lru_cache
from typing import Optional, Dict, Any, List, Tuple
from dataclasses import dataclass

from .series import check_series


# =============================================================================
# Small Sample Exact Tables (Gilbert 1987)
# =============================================================================

# Right-tail probability table for small samples (n=4 to 10) without ties
MK_SMALL_SAMPLE_TABLE = {
    4: {0: 0.625, 2: 0.375, 4: 0.167, 6: 0.042},
    5: {0: 0.592, 2: 0.408, 4: 0.242, 6: 0.117, 8: 0.042, 10: 0.0083},
    6: {1: 0.500, 3: 0.360, 5: 0.235, 7: 0.136, 9: 0.068, 11: 0.028, 13: 0.0083, 15: 0.0014},
    7: {1: 0.500, 3: 0.386, 5: 0.281, 7: 0.191, 9: 0.119, 11: 0.068, 13: 0.035,
        15: 0.015, 17: 0.0054, 19: 0.0014, 21: 0.00020},
    8: {0: 0.548, 2: 0.452, 4: 0.360, 6: 0.274, 8: 0.199, 10: 0.138, 12: 0.089,
        14: 0.054, 16: 0.031, 18: 0.016, 20: 0.0071, 22: 0.0028, 24: 0.00087,
        26: 0.00019, 28: 0.000025},
    9: {0: 0.540, 2: 0.460, 4: 0.381, 6: 0.306, 8: 0.238, 10: 0.179, 12: 0.130,
        14: 0.090, 16: 0.060, 18: 0.038, 20: 0.022, 22: 0.012, 24: 0.0063,
        26: 0.0029, 28: 0.0012, 30: 0.00043, 32: 0.00012, 34: 0.000025, 36: 0.0000028},
    10: {1: 0.500, 3: 0.431, 5: 0.364, 7: 0.300, 9: 0.242, 11: 0.190, 13: 0.146,
         15: 0.108, 17: 0.078, 19: 0.054, 21: 0.036, 23: 0.023, 25: 0.014,
         27: 0.0083, 29: 0.0046, 31: 0.0023, 33: 0.0011, 35: 0.00047, 37: 0.00018,
         39: 0.000058, 41: 0.000015, 43: 0.0000028, 45: 0.00000028}
}

MK_MIN_LENGTH = 4


@dataclass(frozen=True)
class MKTestResult:
    """Result container for Mann-Kendall test."""
    p_value: float
    direction: Optional[str]
    n: int
    S: int
    Z: Optional[float]
    method: str
    var_s_raw: Optional[float] = None
    var_s_corrected: Optional[float] = None
    correction_factor: Optional[float] = None
    acf_used: Optional[List[Tuple[int, float]]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'p_value': self.p_value,
            'direction': self.direction,
            'n': self.n,
            'S': self.S,
            'Z': self.Z,
            'method': self.method,
            'var_s_raw': self.var_s_raw,
            'var_s_corrected': self.var_s_corrected,
            'correction_factor': self.correction_factor,
            'acf_used': self.acf_used
        }


# =============================================================================
# Core Functions
# =============================================================================

def compute_s_statistic(x: np.ndarray, t: Optional[np.ndarray] = None, eps: float = 0.0) -> int:
    """
    Compute the Mann-Kendall S statistic.

    S = sum_{i<j} sign(t_j - t_i) * sign(x_j - x_i)

    Pairs observed at the same time contribute nothing. With strictly
    increasing times this reduces to sum_{i<j} sign(x_j - x_i).

    Args:
        x: Values, ordered by time
        t: Time values (if None, uses 0, 1, 2, ...)
        eps: Tolerance for treating small differences as zero (for numerical stability)

    Returns:
        S statistic (integer)
    """
    x = np.asarray(x, dtype=np.float64)
    n = len(x)
    t = np.arange(n, dtype=np.float64) if t is None else np.asarray(t, dtype=np.float64)
    S = 0

    for i in range(n - 1):
        diff = x[i + 1:] - x[i]
        if eps > 0:
            diff = np.where(np.abs(diff) <= eps, 0.0, diff)
        S += int((np.sign(t[i + 1:] - t[i]) * np.sign(diff)).sum())

    return int(S)


def _tie_sums(a: np.ndarray) -> Tuple[float, float, float]:
    _, counts = np.unique(a, return_counts=True)
    u = counts.astype(np.float64)
    return (
        float(np.sum(u * (u - 1) * (2 * u + 5))),
        float(np.sum(u * (u - 1))),
        float(np.sum(u * (u - 1) * (u - 2))),
    )


def compute_variance_with_ties(x: np.ndarray, t: Optional[np.ndarray] = None) -> Tuple[float, bool]:
    """
    Compute variance of S statistic accounting for ties.

    Without ties in time:
        Var(S) = [n(n-1)(2n+5) - sum_u u(u-1)(2u+5)] / 18

    With ties in time as well, Kendall's (1975) full expression is used,
    adding the cross terms between value ties and time ties.

    Args:
        x: Values
        t: Time values (if None, assumed distinct)

    Returns:
        Tuple of (variance, has_ties)
    """
    x = np.asarray(x, dtype=np.float64)
    n = len(x)

    x_a, x_b, x_c = _tie_sums(x)
    if t is None:
        t_a = t_b = t_c = 0.0
    else:
        t_a, t_b, t_c = _tie_sums(np.asarray(t, dtype=np.float64))

    variance = (n * (n - 1) * (2 * n + 5) - x_a - t_a) / 18.0
    if n > 1:
        variance += (x_b * t_b) / (2.0 * n * (n - 1))
    if n > 2:
        variance += (x_c * t_c) / (9.0 * n * (n - 1) * (n - 2))

    has_ties = x_b > 0 or t_b > 0
    return float(variance), bool(has_ties)


def _lookup_exact_p_value(n: int, s_abs: int) -> Optional[Tuple[float, int]]:
    """
    Look up exact right-tail p-value from small sample table.

    Args:
        n: Sample size
        s_abs: Absolute value of S statistic

    Returns:
        Tuple of (p_value, aligned_s) or None if not available
    """
    table = MK_SMALL_SAMPLE_TABLE.get(n)
    if table is None:
        return None

    M = n * (n - 1) // 2  # Maximum possible S

    # Align parity (S and M must have same parity)
    if (s_abs % 2) != (M % 2):
        s_abs -= 1

    base = 0 if (M % 2 == 0) else 1
    s_abs = max(s_abs, base)

    # Find the largest key <= s_abs with matching parity
    valid_keys = sorted(k for k in table if (k % 2) == (M % 2))
    k_use = max([k for k in valid_keys if k <= s_abs], default=valid_keys[0])

    return float(table[k_use]), int(s_abs)


@lru_cache(maxsize=None)
def _critical_correlation(n_eff: int, alpha: float) -> float:
    """Compute critical correlation value for significance testing."""
    df = max(3, int(n_eff) - 2)
    t_crit = tdist.ppf(1 - alpha, df)  # One-tailed
    return t_crit / np.sqrt(t_crit ** 2 + df)


def hr98_variance_correction(
    x: np.ndarray,
    var_raw: float,
    t: Optional[np.ndarray] = None,
    slope: Optional[float] = None,
    alpha_acf: float = 0.05,
    max_lag: Optional[int] = None,
    use_rank: bool = True
) -> Tuple[float, float, List[Tuple[int, float]]]:
    """
    Apply Hamed & Rao (1998) variance correction for autocorrelation.

    The correction inflates the variance when significant positive autocorrelation
    is detected in the detrended series, making the test more conservative.

    Args:
        x: Values, ordered by time
        var_raw: Raw variance of S (without correction)
        t: Time values (if None, uses 0, 1, 2, ...)
        slope: Slope for detrending (if None, Sen's slope is computed)
        alpha_acf: Significance level for autocorrelation testing (one-tailed)
        max_lag: Maximum lag to consider (if None, determined by sample size)
        use_rank: Whether to use rank-based autocorrelation

    Returns:
        Tuple of (corrected_variance, correction_factor, list of (lag, rho) used)
    """
    x = np.asarray(x, dtype=np.float64)
    n = len(x)
    t = np.arange(n, dtype=np.float64) if t is None else np.asarray(t, dtype=np.float64)

    # No correction for small samples or invalid variance
    if n <= 10 or var_raw <= 0:
        return var_raw, 1.0, []

    if slope is None:
        from .sens_slope import compute_sens_slope
        slope = compute_sens_slope(x, t)
        if not np.isfinite(slope):
            return var_raw, 1.0, []

    residuals = x - slope * t
    x_acf = rankdata(residuals, method="average") if use_rank else residuals

    if max_lag is None:
        if n < 14:
            max_lag = 0
        elif n < 21:
            max_lag = 1
        else:
            max_lag = int(min(10 * np.log10(n), n // 4))
    else:
        max_lag = min(int(max_lag), n // 2)

    gamma = 0.0
    acf_used = []

    for k in range(1, max_lag + 1):
        m = n - k
        if m < 5:
            break

        a, b = x_acf[:m], x_acf[k:]
        da, db = a - a.mean(), b - b.mean()

        denominator = np.sqrt(np.dot(da, da) * np.dot(db, db))
        if denominator == 0:
            continue

        rho = float(np.dot(da, db) / denominator)
        if not np.isfinite(rho):
            continue

        # Only include significant positive autocorrelations
        if rho > _critical_correlation(m, alpha_acf):
            gamma += m * (m - 1) * (m - 2) * rho
            acf_used.append((k, float(rho)))

    C = max(1.0, 1.0 + 2.0 * gamma / (n * (n - 1) * (n - 2)))
    var_corrected = var_raw * C

    return float(var_corrected), float(C), acf_used


# =============================================================================
# Main Test Function
# =============================================================================

def mann_kendall_test(
    values: np.ndarray,
    times: Optional[np.ndarray] = None,
    use_hr98: bool = False,
    alpha_acf: float = 0.05,
    max_lag: Optional[int] = None,
    use_exact_table: bool = True,
    min_length: int = MK_MIN_LENGTH,
    eps: float = 0.0
) -> MKTestResult:
    """
    Perform the two-sided Mann-Kendall trend test.

    Decision logic:
    - n < min_length: InsufficientData
    - 4 <= n <= 10 without ties: exact table lookup (two-sided p = 2 * tail)
    - otherwise: normal approximation with continuity correction
      - HR98 correction (optional) applies from n >= 14

    Args:
        values: Values, ordered by time
        times: Time values (if None, uses 0, 1, 2, ...)
        use_hr98: Whether to apply HR98 autocorrelation correction
        alpha_acf: Significance level for ACF testing in HR98
        max_lag: Maximum lag for HR98 (None for automatic)
        use_exact_table: Whether to use exact table for small samples
        min_length: Minimum number of observations
        eps: Tolerance for numerical stability

    Returns:
        MKTestResult object

    Raises:
        InsufficientData, NonFiniteInput, InsufficientVariance, UnorderedSeries
    """
    if times is None:
        times = np.arange(len(np.asarray(values)), dtype=np.float64)
    t, x = check_series(times, values, min_length)
    n = len(x)

    S = compute_s_statistic(x, t, eps=eps)
    var_raw, has_ties = compute_variance_with_ties(x, t)

    if S == 0:
        return MKTestResult(
            p_value=1.0, direction=None, n=n, S=0, Z=0.0,
            method='degenerate', var_s_raw=var_raw
        )

    direction = 'increasing' if S > 0 else 'decreasing'
    s_abs = abs(S)

    # ========== Small Sample Path (Exact Table) ==========
    if use_exact_table and (4 <= n <= 10) and not has_ties:
        result = _lookup_exact_p_value(n, s_abs)
        if result is not None:
            p_tail, _ = result
            return MKTestResult(
                p_value=min(1.0, 2.0 * p_tail), direction=direction,
                n=n, S=S, Z=None, method='exact_table',
                var_s_raw=var_raw
            )

    # ========== Normal Approximation Path ==========
    var_corrected = var_raw
    correction_factor = 1.0
    acf_used = []

    apply_hr98 = use_hr98 and n >= 14
    if apply_hr98:
        var_corrected, correction_factor, acf_used = hr98_variance_correction(
            x, var_raw, t=t, alpha_acf=alpha_acf, max_lag=max_lag
        )

    if var_corrected <= 0:
        return MKTestResult(
            p_value=1.0, direction=direction, n=n, S=S, Z=None,
            method='degenerate_variance', var_s_raw=var_raw
        )

    Z = float(np.sign(S) * (s_abs - 1) / np.sqrt(var_corrected))
    p_value = float(np.clip(2.0 * norm.sf(abs(Z)), 0.0, 1.0))

    return MKTestResult(
        p_value=p_value, direction=direction,
        n=n, S=S, Z=Z, method='normal_hr98' if apply_hr98 else 'normal',
        var_s_raw=var_raw, var_s_corrected=var_corrected,
        correction_factor=correction_factor, acf_used=acf_used
    )
