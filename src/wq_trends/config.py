"""
Configuration

Estimator and analysis settings as explicit dataclass values. An estimator
is always built from the EstimatorConfig handed to it; there is no shared
module-level default object.
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

# Single documented significance threshold
DEFAULT_ALPHA = 0.05

ESTIMATOR_KINDS = ('mann_kendall', 'ols')
TIME_UNITS = ('years', 'days')


def _check_probability(name: str, value: float) -> None:
    if not 0.0 < float(value) < 1.0:
        raise ValueError(f"{name} must be in (0, 1), got {value}")


@dataclass(frozen=True)
class EstimatorConfig:
    """
    Settings for a single trend estimator.

    Args:
        kind: 'mann_kendall' (Mann-Kendall test + Sen's slope) or 'ols'
        time_unit: 'years' (decimal year) or 'days' (days since 1970-01-01)
        min_length: Minimum series length (None uses the estimator default)
        use_exact_table: Exact small-sample p-values for Mann-Kendall (n <= 10)
        use_hr98: Hamed & Rao (1998) variance correction for autocorrelation
        alpha_acf: Significance level of the autocorrelation screen in HR98
        hr98_max_lag: Maximum lag for HR98 (None for automatic)
        use_hac: Newey-West HAC standard errors for OLS
        hac_lag: Lag for the HAC estimator (None for automatic)
        ci_alpha: Significance level for slope confidence intervals
    """
    kind: str = 'mann_kendall'
    time_unit: str = 'years'
    min_length: Optional[int] = None
    use_exact_table: bool = True
    use_hr98: bool = False
    alpha_acf: float = 0.05
    hr98_max_lag: Optional[int] = None
    use_hac: bool = False
    hac_lag: Optional[int] = None
    ci_alpha: float = 0.05

    def __post_init__(self):
        if self.kind not in ESTIMATOR_KINDS:
            raise ValueError(f"Unknown estimator kind '{self.kind}'. Expected one of {ESTIMATOR_KINDS}")
        if self.time_unit not in TIME_UNITS:
            raise ValueError(f"Unknown time unit '{self.time_unit}'. Expected one of {TIME_UNITS}")
        if self.min_length is not None and self.min_length < 3:
            raise ValueError(f"min_length must be >= 3, got {self.min_length}")
        if self.hac_lag is not None and self.hac_lag < 0:
            raise ValueError(f"hac_lag must be >= 0, got {self.hac_lag}")
        _check_probability('alpha_acf', self.alpha_acf)
        _check_probability('ci_alpha', self.ci_alpha)


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Settings for a full grouped trend analysis.

    Args:
        group_keys: Columns defining the partitions, e.g. ('basin', 'parameter')
        alpha: Significance threshold for labelling a trend as present
        estimator: Estimator settings
        daily_mean: Collapse same-day duplicates before partitioning
        low_flow_months: Keep only these calendar months (None keeps all)
        n_jobs: Worker processes for per-partition estimation
    """
    group_keys: Tuple[str, ...] = ('basin', 'parameter')
    alpha: float = DEFAULT_ALPHA
    estimator: EstimatorConfig = field(default_factory=EstimatorConfig)
    daily_mean: bool = True
    low_flow_months: Optional[Tuple[int, ...]] = None
    n_jobs: int = 1

    def __post_init__(self):
        # Accept lists from JSON while keeping the dataclass hashable
        object.__setattr__(self, 'group_keys', tuple(self.group_keys))
        if self.low_flow_months is not None:
            object.__setattr__(self, 'low_flow_months', tuple(int(m) for m in self.low_flow_months))
            bad = [m for m in self.low_flow_months if not 1 <= m <= 12]
            if bad or not self.low_flow_months:
                raise ValueError(f"low_flow_months must be non-empty calendar months, got {self.low_flow_months}")
        if not self.group_keys:
            raise ValueError("group_keys must name at least one column")
        _check_probability('alpha', self.alpha)
        if self.n_jobs < 1:
            raise ValueError(f"n_jobs must be >= 1, got {self.n_jobs}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnalysisConfig':
        data = dict(data)
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        estimator = data.pop('estimator', None)
        if isinstance(estimator, dict):
            estimator = EstimatorConfig(**estimator)
        if estimator is not None:
            data['estimator'] = estimator
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out['group_keys'] = list(self.group_keys)
        if self.low_flow_months is not None:
            out['low_flow_months'] = list(self.low_flow_months)
        return out


def load_config(config_path: str) -> AnalysisConfig:
    """Read an AnalysisConfig from a JSON file."""
    logger.info("Loading configuration from %s", config_path)
    with open(config_path, 'r') as f:
        data = json.load(f)
    return AnalysisConfig.from_dict(data)
