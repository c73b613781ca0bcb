"""
Trend Detection Module

Statistical methods for detecting monotonic trends in water-quality
concentration series.

Available methods:
    - Mann-Kendall test with tie-adjusted variance and optional HR98
      autocorrelation correction
    - Sen's slope estimator (robust, non-parametric)
    - OLS slope on time with t-test and optional Newey-West HAC errors
    - TrendEstimator interface over both (OLSTrend, MannKendallSen)
"""

from .mann_kendall import (
    mann_kendall_test,
    compute_s_statistic,
    compute_variance_with_ties,
    hr98_variance_correction,
    MKTestResult
)

from .sens_slope import (
    sens_slope,
    compute_sens_slope,
    compute_all_slopes,
    SenSlopeResult
)

from .ols import (
    ols_trend_test,
    ols_fit,
    newey_west_se,
    OLSResult
)

from .series import (
    to_time_ordinal,
    check_series
)

from .estimators import (
    TrendEstimator,
    OLSTrend,
    MannKendallSen,
    TrendResult,
    make_estimator
)

__all__ = [
    # Mann-Kendall
    'mann_kendall_test',
    'compute_s_statistic',
    'compute_variance_with_ties',
    'hr98_variance_correction',
    'MKTestResult',

    # Sen's slope
    'sens_slope',
    'compute_sens_slope',
    'compute_all_slopes',
    'SenSlopeResult',

    # OLS
    'ols_trend_test',
    'ols_fit',
    'newey_west_se',
    'OLSResult',

    # Series preparation
    'to_time_ordinal',
    'check_series',

    # Estimators
    'TrendEstimator',
    'OLSTrend',
    'MannKendallSen',
    'TrendResult',
    'make_estimator'
]
