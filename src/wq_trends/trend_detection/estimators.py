"""
Trend Estimators

A common interface over the two supported trend estimators:

- OLSTrend: least squares slope on time with a t-test. Kept as a cautionary
  baseline, since serial correlation in concentration series makes its
  p-values unreliable.
- MannKendallSen: two-sided Mann-Kendall test for the p-value and Sen's slope
  for the magnitude. Rank based and robust to outliers and skew, but still
  assumes independent observations unless the HR98 correction is enabled.

Each estimator is built from an explicit EstimatorConfig and holds no state
between calls.

Example:
    >>> estimator = make_estimator(EstimatorConfig(kind='mann_kendall'))
    >>> result = estimator.estimate_series(times, values)
    >>> result.slope, result.p_value
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np

from ..config import EstimatorConfig
from .mann_kendall import mann_kendall_test, MK_MIN_LENGTH
from .ols import ols_trend_test, OLS_MIN_LENGTH
from .sens_slope import sens_slope
from .series import check_series

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrendResult:
    """Trend of one partition, as produced by a TrendEstimator."""
    key: Tuple[Any, ...]
    slope: float
    p_value: float
    estimator_kind: str
    n: int
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'slope': self.slope,
            'p_value': self.p_value,
            'estimator_kind': self.estimator_kind,
            'n': self.n,
            **self.diagnostics
        }


class TrendEstimator(ABC):
    """Base class for trend estimators over a single time-ordered series."""

    kind: str = ''
    default_min_length: int = 2

    def __init__(self, config: Optional[EstimatorConfig] = None):
        self.config = config if config is not None else EstimatorConfig(kind=self.kind)
        if self.config.kind != self.kind:
            raise ValueError(f"{type(self).__name__} cannot use a '{self.config.kind}' configuration")

    @property
    def min_length(self) -> int:
        if self.config.min_length is not None:
            return self.config.min_length
        return self.default_min_length

    @property
    def time_unit(self) -> str:
        return self.config.time_unit

    def estimate(self, partition) -> TrendResult:
        """Estimate the trend of a Partition (uses its sorted times and values)."""
        return self.estimate_series(partition.times, partition.values, key=partition.key)

    def estimate_series(self, times, values, key: Tuple[Any, ...] = ()) -> TrendResult:
        """
        Estimate the trend of a time-ordered series.

        Raises:
            InsufficientData: fewer than min_length points
            NonFiniteInput: NaN or Inf in times or values
            UnorderedSeries: times not sorted ascending
            InsufficientVariance: all times identical
        """
        t, x = check_series(times, values, self.min_length)
        result = self._fit(t, x, tuple(key))
        logger.debug("%s %s: n=%d slope=%.6g p=%.4g", self.kind, key, result.n, result.slope, result.p_value)
        return result

    @abstractmethod
    def _fit(self, t: np.ndarray, x: np.ndarray, key: Tuple[Any, ...]) -> TrendResult:
        ...

    def __repr__(self):
        return f"{type(self).__name__}({self.config!r})"


class OLSTrend(TrendEstimator):
    """Least squares slope on time with a two-sided t-test."""

    kind = 'ols'
    default_min_length = OLS_MIN_LENGTH

    def _fit(self, t, x, key):
        res = ols_trend_test(
            x, t,
            alpha=self.config.ci_alpha,
            use_hac=self.config.use_hac,
            lag=self.config.hac_lag,
            min_length=self.min_length
        )
        diagnostics = res.to_dict()
        for name in ('slope', 'p_value', 'n'):
            diagnostics.pop(name)
        return TrendResult(
            key=key, slope=res.slope, p_value=res.p_value,
            estimator_kind=self.kind, n=res.n, diagnostics=diagnostics
        )


class MannKendallSen(TrendEstimator):
    """Mann-Kendall test p-value with Sen's slope magnitude."""

    kind = 'mann_kendall'
    default_min_length = MK_MIN_LENGTH

    def _fit(self, t, x, key):
        mk = mann_kendall_test(
            x, t,
            use_hr98=self.config.use_hr98,
            alpha_acf=self.config.alpha_acf,
            max_lag=self.config.hr98_max_lag,
            use_exact_table=self.config.use_exact_table,
            min_length=self.min_length
        )
        var_s = mk.var_s_corrected or mk.var_s_raw
        sen = sens_slope(x, t, alpha=self.config.ci_alpha, var_s=var_s)

        diagnostics = {
            'S': mk.S,
            'Z': mk.Z,
            'var_s': mk.var_s_raw,
            'var_s_corrected': mk.var_s_corrected,
            'correction_factor': mk.correction_factor,
            'direction': mk.direction,
            'method': mk.method,
            'intercept': sen.intercept,
            'conf_interval': sen.conf_interval,
            'n_slopes': sen.n_slopes,
        }
        return TrendResult(
            key=key, slope=sen.slope, p_value=mk.p_value,
            estimator_kind=self.kind, n=mk.n, diagnostics=diagnostics
        )


ESTIMATORS = {
    OLSTrend.kind: OLSTrend,
    MannKendallSen.kind: MannKendallSen,
}


def make_estimator(config: EstimatorConfig) -> TrendEstimator:
    """Build the estimator named by config.kind."""
    return ESTIMATORS[config.kind](config)
