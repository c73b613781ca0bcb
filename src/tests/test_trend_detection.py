"""
Tests for trend detection module.
"""

import numpy as np
import pandas as pd
import pytest

from wq_trends.config import EstimatorConfig
from wq_trends.errors import (
    InsufficientData,
    InsufficientVariance,
    NonFiniteInput,
    UnorderedSeries
)
from wq_trends.trend_detection import (
    mann_kendall_test,
    compute_s_statistic,
    compute_variance_with_ties,
    hr98_variance_correction,
    sens_slope,
    compute_sens_slope,
    compute_all_slopes,
    ols_trend_test,
    to_time_ordinal,
    make_estimator,
    MannKendallSen,
    OLSTrend
)
from wq_trends.trend_detection.sens_slope import (
    sens_slope_confidence_interval,
    _confidence_interval_normal
)
from wq_trends.utils import generate_trend_data


class TestMannKendall:
    """Tests for Mann-Kendall test."""

    def test_increasing_trend(self):
        """Test detection of increasing trend."""
        np.random.seed(42)
        n = 30
        data = np.arange(n) * 0.5 + np.random.normal(0, 0.5, n)

        result = mann_kendall_test(data)

        assert result.direction == 'increasing'
        assert result.p_value < 0.05
        assert result.S > 0
        assert result.Z > 0

    def test_decreasing_trend(self):
        """Test detection of decreasing trend."""
        np.random.seed(42)
        n = 30
        data = -np.arange(n) * 0.5 + np.random.normal(0, 0.5, n)

        result = mann_kendall_test(data)

        assert result.direction == 'decreasing'
        assert result.p_value < 0.05
        assert result.Z < 0

    def test_no_trend(self):
        """An alternating series has S near zero and no significant trend."""
        data = np.tile([1.0, -1.0], 15)

        result = mann_kendall_test(data)

        assert result.S == -15
        assert result.p_value > 0.05
        assert result.direction == 'decreasing'

    def test_constant_series(self):
        """A constant series has S = 0 and p = 1."""
        result = mann_kendall_test(np.full(24, 10.0))

        assert result.S == 0
        assert result.p_value == 1.0
        assert result.direction is None

    def test_small_sample_exact(self):
        """Exact table gives the two-sided p-value for small samples."""
        data = np.array([1, 2, 3, 4, 5])

        result = mann_kendall_test(data)

        assert result.method == 'exact_table'
        assert result.direction == 'increasing'
        # Right tail for n=5, S=10 is 0.0083
        assert np.isclose(result.p_value, 2 * 0.0083)

    def test_exact_table_disabled(self):
        data = np.array([1, 2, 3, 4, 5])

        result = mann_kendall_test(data, use_exact_table=False)

        assert result.method == 'normal'

    def test_insufficient_data(self):
        """Fewer than four points is a named error, not a result."""
        with pytest.raises(InsufficientData):
            mann_kendall_test(np.array([1, 2, 3]))

    def test_non_finite_input(self):
        with pytest.raises(NonFiniteInput):
            mann_kendall_test(np.array([1.0, 2.0, np.nan, 4.0, 5.0]))

    def test_unordered_times(self):
        with pytest.raises(UnorderedSeries):
            mann_kendall_test(np.arange(5.0), times=np.array([0, 1, 3, 2, 4]))

    def test_identical_times(self):
        with pytest.raises(InsufficientVariance):
            mann_kendall_test(np.arange(5.0), times=np.full(5, 2001.0))

    def test_s_statistic_computation(self):
        """Test S statistic computation."""
        # For [1, 2, 3, 4, 5], all pairs are concordant
        data = np.array([1, 2, 3, 4, 5])
        assert compute_s_statistic(data) == 10

        data_rev = np.array([5, 4, 3, 2, 1])
        assert compute_s_statistic(data_rev) == -10

    def test_s_statistic_time_ties(self):
        """Pairs sharing a time contribute nothing."""
        x = np.array([1.0, 2.0, 3.0, 4.0])
        t = np.array([0.0, 0.0, 1.0, 1.0])

        assert compute_s_statistic(x, t) == 4

    def test_variance_without_ties(self):
        var, has_ties = compute_variance_with_ties(np.arange(10.0))

        assert np.isclose(var, 10 * 9 * 25 / 18.0)
        assert not has_ties

    def test_variance_with_value_ties(self):
        x = np.array([1.0, 1.0, 2.0, 3.0, 4.0])
        var, has_ties = compute_variance_with_ties(x)

        # n=5: 5*4*15 = 300; one pair of ties: 2*1*9 = 18
        assert np.isclose(var, (300 - 18) / 18.0)
        assert has_ties

    def test_hr98_correction_never_shrinks_variance(self):
        data = generate_trend_data(n=100, slope=0.05, ar_coef=0.8, seed=7)

        result = mann_kendall_test(data, use_hr98=True)

        assert result.method == 'normal_hr98'
        assert result.correction_factor >= 1.0
        assert result.var_s_corrected >= result.var_s_raw

    def test_hr98_skips_small_samples(self):
        var, factor, used = hr98_variance_correction(np.arange(8.0), 50.0)

        assert var == 50.0
        assert factor == 1.0
        assert used == []


class TestSensSlope:
    """Tests for Sen's slope estimator."""

    def test_known_slope(self):
        """Test slope estimation with known slope."""
        n = 20
        true_slope = 0.5
        t = np.arange(n)
        data = 2.0 + true_slope * t

        result = sens_slope(data)

        assert np.isclose(result.slope, true_slope, atol=1e-10)
        assert np.isclose(result.intercept, 2.0, atol=1e-10)

    def test_irregular_times(self):
        """Slopes are taken over actual time differences."""
        t = np.array([0.0, 1.0, 3.0, 7.0])
        data = 2.0 * t

        assert np.isclose(compute_sens_slope(data, t), 2.0)

    def test_time_tied_pairs_skipped(self):
        t = np.array([0.0, 0.0, 1.0])
        data = np.array([0.0, 5.0, 1.0])

        # Remaining slopes are 1 and -4
        assert np.isclose(compute_sens_slope(data, t), -1.5)

    def test_robust_to_outlier(self):
        t = np.arange(25, dtype=float)
        data = 1.0 + 0.2 * t
        data[12] = 100.0

        result = sens_slope(data, t)

        assert np.isclose(result.slope, 0.2, atol=1e-10)

    def test_confidence_interval(self):
        """Confidence interval brackets the estimate."""
        np.random.seed(42)
        n = 30
        true_slope = 0.3
        t = np.arange(n)
        data = 1.0 + true_slope * t + np.random.normal(0, 0.3, n)

        result = sens_slope(data, alpha=0.05)

        assert result.conf_interval is not None
        ci_low, ci_high = result.conf_interval
        assert ci_low <= result.slope <= ci_high
        assert result.n_slopes == n * (n - 1) // 2

    def test_confidence_interval_with_ties_uses_normal(self):
        """Tied small samples use the tie-adjusted variance, not the exact table."""
        x = np.array([1.0, 1.0, 2.0, 3.0, 4.0, 5.0])
        t = np.arange(6.0)
        var_s, has_ties = compute_variance_with_ties(x, t)

        result = sens_slope(x, t, alpha=0.05, var_s=var_s)

        expected = sens_slope_confidence_interval(
            compute_all_slopes(x, t), _confidence_interval_normal(var_s, 0.05)
        )
        assert has_ties
        assert result.conf_interval == expected

    def test_no_pairs(self):
        result = sens_slope(np.array([3.0]))

        assert np.isnan(result.slope)
        assert result.conf_interval is None


class TestOLS:
    """Tests for OLS trend test."""

    def test_known_slope(self):
        """Test slope estimation with known slope."""
        n = 30
        true_slope = 0.4
        t = np.arange(n)
        data = 3.0 + true_slope * t

        result = ols_trend_test(data)

        assert np.isclose(result.slope, true_slope, atol=1e-10)
        assert result.p_value < 1e-6
        assert np.isclose(result.r_squared, 1.0)

    def test_constant_series(self):
        """Zero slope with zero residuals gives p = 1."""
        result = ols_trend_test(np.full(40, 10.0))

        assert result.slope == 0.0
        assert result.p_value == 1.0

    def test_two_points_flagged(self):
        """A line through two points has no residual degrees of freedom."""
        with pytest.raises(InsufficientData):
            ols_trend_test(np.array([1.0, 2.0]))

    def test_identical_times(self):
        with pytest.raises(InsufficientVariance):
            ols_trend_test(np.array([1.0, 2.0, 3.0]), x=np.array([5.0, 5.0, 5.0]))

    def test_hac_se(self):
        """HAC standard errors on autocorrelated data."""
        data = generate_trend_data(n=50, slope=0.1, intercept=5.0, ar_coef=0.7, seed=42)

        result_std = ols_trend_test(data, use_hac=False)
        result_hac = ols_trend_test(data, use_hac=True)

        assert result_std.method == 'ols_standard'
        assert result_hac.method.startswith('ols_hac_lag')
        assert result_hac.slope_se > 0
        assert result_std.slope_se > 0
        assert np.isclose(result_hac.slope, result_std.slope)


class TestTimeOrdinal:
    """Tests for date -> numeric time conversion."""

    def test_decimal_years(self):
        dates = pd.to_datetime(['2000-01-01', '2001-01-01', '2001-07-02'])

        t = to_time_ordinal(dates, unit='years')

        assert t[0] == 2000.0
        assert t[1] == 2001.0
        assert np.isclose(t[2], 2001.0 + 182 / 365)

    def test_days(self):
        dates = pd.to_datetime(['1970-01-01', '1970-01-11'])

        t = to_time_ordinal(dates, unit='days')

        assert list(t) == [0.0, 10.0]


class TestEstimators:
    """Tests for the estimator interface."""

    def test_make_estimator(self):
        assert isinstance(make_estimator(EstimatorConfig(kind='ols')), OLSTrend)
        assert isinstance(make_estimator(EstimatorConfig()), MannKendallSen)

    def test_mismatched_config(self):
        with pytest.raises(ValueError):
            OLSTrend(EstimatorConfig(kind='mann_kendall'))

    def test_result_fields(self):
        t = np.arange(2000.0, 2020.0)
        x = t - 1990.0

        result = MannKendallSen().estimate_series(t, x, key=('A', 'Ca'))

        assert result.key == ('A', 'Ca')
        assert result.estimator_kind == 'mann_kendall'
        assert result.n == 20
        assert np.isclose(result.slope, 1.0)
        assert result.diagnostics['S'] == 190
        assert result.diagnostics['direction'] == 'increasing'

    def test_ols_and_mk_agree_on_linear_series(self):
        t = np.arange(2000.0, 2020.0)
        x = 3.0 + 1.0 * (t - 2000.0)

        mk = MannKendallSen().estimate_series(t, x)
        ols = OLSTrend().estimate_series(t, x)

        assert np.isclose(mk.slope, 1.0)
        assert np.isclose(ols.slope, 1.0)
        assert mk.p_value < 1e-6
        assert ols.p_value < 1e-6

    def test_configured_min_length(self):
        estimator = make_estimator(EstimatorConfig(min_length=10))

        with pytest.raises(InsufficientData):
            estimator.estimate_series(np.arange(8.0), np.arange(8.0))

    def test_result_is_immutable(self):
        result = OLSTrend().estimate_series(np.arange(5.0), np.arange(5.0))

        with pytest.raises(Exception):
            result.slope = 2.0


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
