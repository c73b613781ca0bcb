"""
OLS Trend on Time

Ordinary least squares fit of value = intercept + slope * t with a two-sided
t-test on the slope. Kept as a baseline: concentration series are serially
correlated, which violates the independence assumption behind the standard
error, so p-values from the plain test are too optimistic. Newey-West HAC
standard errors are available as an option.

References:
    - Newey, W. K., & West, K. D. (1987). A simple, positive semi-definite,
      heteroskedasticity and autocorrelation consistent covariance matrix.
      Econometrica.
"""

import numpy as np
from scipy.stats import t as tdist
from typing import Optional, Tuple
from dataclasses import dataclass

from .series import check_series

OLS_MIN_LENGTH = 3


@dataclass(frozen=True)
class OLSResult:
    """Result container for OLS trend test."""
    slope: float
    intercept: float
    slope_se: float
    t_statistic: float
    p_value: float
    conf_interval: Tuple[float, float]
    r_squared: float
    n: int
    method: str
    lag: Optional[int] = None

    def to_dict(self):
        return {
            'slope': self.slope,
            'intercept': self.intercept,
            'slope_se': self.slope_se,
            't_statistic': self.t_statistic,
            'p_value': self.p_value,
            'conf_interval': self.conf_interval,
            'r_squared': self.r_squared,
            'n': self.n,
            'method': self.method,
            'lag': self.lag
        }


def _bartlett_kernel(j: int, lag: int) -> float:
    """
    Bartlett kernel weight for Newey-West estimator.

    w(j) = 1 - j/(lag+1) for j <= lag, 0 otherwise
    """
    if j > lag:
        return 0.0
    return 1.0 - j / (lag + 1)


def _select_lag(n: int) -> int:
    """Newey-West rule: floor(4 * (n/100)^(2/9))."""
    lag = int(np.floor(4 * (n / 100) ** (2 / 9)))
    return max(0, min(lag, n - 2))


def ols_fit(y: np.ndarray, x: np.ndarray) -> Tuple[float, float, np.ndarray]:
    """
    Fit OLS regression: y = intercept + slope * x

    Uses the centred form slope = Sxy / Sxx so that a constant series gives
    an exact zero slope and zero residuals.

    Returns:
        Tuple of (intercept, slope, residuals)
    """
    y = np.asarray(y, dtype=np.float64)
    x = np.asarray(x, dtype=np.float64)

    x_mean, y_mean = x.mean(), y.mean()
    xc = x - x_mean
    slope = float(np.dot(xc, y - y_mean) / np.dot(xc, xc))
    intercept = float(y_mean - slope * x_mean)
    residuals = y - (intercept + slope * x)

    return intercept, slope, residuals


def ols_standard_se(residuals: np.ndarray, x: np.ndarray) -> float:
    """
    Standard OLS standard error for the slope (homoskedastic, independent errors).

    Var(beta_1) = sigma^2 / sum((x - x_mean)^2), sigma^2 = RSS / (n - 2)
    """
    n = len(residuals)
    sigma2 = np.sum(residuals ** 2) / (n - 2)
    x_centered = x - x.mean()
    return float(np.sqrt(sigma2 / np.sum(x_centered ** 2)))


def newey_west_se(
    residuals: np.ndarray,
    x: np.ndarray,
    lag: Optional[int] = None
) -> Tuple[float, int]:
    """
    Compute Newey-West HAC standard error for slope coefficient.

    Args:
        residuals: OLS residuals
        x: Independent variable (time)
        lag: Number of lags (if None, uses automatic selection)

    Returns:
        Tuple of (standard_error_for_slope, lag_used)
    """
    n = len(residuals)

    if lag is None:
        lag = _select_lag(n)
    lag = min(int(lag), n - 1)

    X = np.column_stack([np.ones(n), x])
    XtX_inv = np.linalg.inv(X.T @ X)

    # Score contributions u_i * x_i
    scores = X * residuals[:, None]
    S = scores.T @ scores

    for j in range(1, lag + 1):
        w = _bartlett_kernel(j, lag)
        Gamma_j = scores[j:].T @ scores[:-j]
        S += w * (Gamma_j + Gamma_j.T)

    V_hac = XtX_inv @ S @ XtX_inv
    slope_se = float(np.sqrt(max(V_hac[1, 1], 0.0)))

    return slope_se, lag


def ols_trend_test(
    y: np.ndarray,
    x: Optional[np.ndarray] = None,
    alpha: float = 0.05,
    use_hac: bool = False,
    lag: Optional[int] = None,
    min_length: int = OLS_MIN_LENGTH
) -> OLSResult:
    """
    Perform OLS-based trend test.

    Tests H0: slope = 0 vs H1: slope != 0 with n - 2 degrees of freedom.
    A zero standard error (perfect fit) gives p = 1 for a zero slope and
    p = 0 otherwise.

    Args:
        y: Values, ordered by time
        x: Time values (if None, uses 0, 1, 2, ...)
        alpha: Significance level for the slope confidence interval
        use_hac: Whether to use Newey-West HAC standard errors
        lag: Lag for HAC (if None, uses automatic selection)
        min_length: Minimum number of observations (at least 3)

    Returns:
        OLSResult object

    Raises:
        InsufficientData, NonFiniteInput, InsufficientVariance, UnorderedSeries
    """
    if x is None:
        x = np.arange(len(np.asarray(y)), dtype=np.float64)
    x, y = check_series(x, y, max(min_length, OLS_MIN_LENGTH))
    n = len(y)

    intercept, slope, residuals = ols_fit(y, x)

    if use_hac:
        slope_se, lag_used = newey_west_se(residuals, x, lag)
        method = f'ols_hac_lag{lag_used}'
    else:
        slope_se = ols_standard_se(residuals, x)
        lag_used = None
        method = 'ols_standard'

    df = n - 2
    if slope_se > 0:
        t_stat = slope / slope_se
        p_value = float(2 * tdist.sf(abs(t_stat), df))
    elif slope == 0:
        t_stat, p_value = 0.0, 1.0
    else:
        t_stat, p_value = float(np.sign(slope) * np.inf), 0.0

    t_crit = tdist.ppf(1 - alpha / 2, df)
    ci_low = slope - t_crit * slope_se
    ci_high = slope + t_crit * slope_se

    ss_res = np.sum(residuals ** 2)
    ss_tot = np.sum((y - y.mean()) ** 2)
    r_squared = float(1 - ss_res / ss_tot) if ss_tot > 0 else 0.0

    return OLSResult(
        slope=slope,
        intercept=intercept,
        slope_se=slope_se,
        t_statistic=float(t_stat),
        p_value=p_value,
        conf_interval=(float(ci_low), float(ci_high)),
        r_squared=r_squared,
        n=n,
        method=method,
        lag=lag_used
    )
