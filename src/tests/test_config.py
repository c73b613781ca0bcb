"""
Tests for configuration and error taxonomy.
"""

import json

import pytest

from wq_trends.config import AnalysisConfig, EstimatorConfig, load_config, DEFAULT_ALPHA
from wq_trends.errors import (
    TrendError,
    InsufficientData,
    InsufficientVariance,
    NonFiniteInput,
    InvalidGroupKey,
    SchemaError,
    RECOVERABLE_ERRORS
)


class TestEstimatorConfig:
    """Tests for EstimatorConfig validation."""

    def test_defaults(self):
        config = EstimatorConfig()

        assert config.kind == 'mann_kendall'
        assert config.time_unit == 'years'
        assert config.use_hr98 is False

    @pytest.mark.parametrize('kwargs', [
        {'kind': 'lowess'},
        {'time_unit': 'weeks'},
        {'min_length': 2},
        {'ci_alpha': 0.0},
        {'hac_lag': -1},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            EstimatorConfig(**kwargs)

    def test_frozen(self):
        config = EstimatorConfig()

        with pytest.raises(Exception):
            config.kind = 'ols'


class TestAnalysisConfig:
    """Tests for AnalysisConfig."""

    def test_default_alpha(self):
        assert AnalysisConfig().alpha == DEFAULT_ALPHA == 0.05

    def test_from_dict(self):
        config = AnalysisConfig.from_dict({
            'group_keys': ['basin', 'parameter'],
            'alpha': 0.01,
            'estimator': {'kind': 'ols', 'use_hac': True},
            'low_flow_months': [8, 9],
        })

        assert config.group_keys == ('basin', 'parameter')
        assert config.alpha == 0.01
        assert config.estimator == EstimatorConfig(kind='ols', use_hac=True)
        assert config.low_flow_months == (8, 9)

    def test_round_trip(self):
        config = AnalysisConfig(alpha=0.01, low_flow_months=(7, 8))

        assert AnalysisConfig.from_dict(config.to_dict()) == config

    def test_unknown_key(self):
        with pytest.raises(ValueError):
            AnalysisConfig.from_dict({'threshold': 0.05})

    @pytest.mark.parametrize('kwargs', [
        {'alpha': 1.0},
        {'group_keys': ()},
        {'n_jobs': 0},
        {'low_flow_months': (0,)},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            AnalysisConfig(**kwargs)

    def test_load_config(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({'alpha': 0.1, 'estimator': {'time_unit': 'days'}}))

        config = load_config(str(path))

        assert config.alpha == 0.1
        assert config.estimator.time_unit == 'days'


class TestErrors:
    """Tests for the error taxonomy."""

    def test_kinds(self):
        assert InsufficientData('x').kind == 'insufficient_data'
        assert InsufficientVariance('x').kind == 'insufficient_variance'
        assert NonFiniteInput('x').kind == 'non_finite_input'

    def test_hierarchy(self):
        assert issubclass(InvalidGroupKey, TrendError)
        assert issubclass(SchemaError, ValueError)
        assert InvalidGroupKey not in RECOVERABLE_ERRORS

    def test_carries_length(self):
        err = InsufficientData('too short', n=1)

        assert err.n == 1
        assert str(err) == 'too short'
