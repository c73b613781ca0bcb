"""
wq-trends

Grouped trend analysis for water-quality observations: split a tidy table by
basin and parameter, fit a trend estimator to each group, and assemble one
summary table.

Modules:
    - trend_detection: Mann-Kendall, Sen's slope, OLS on time
    - pipeline: tidy table, partitioning, assembly, classification
    - config: estimator and analysis settings
    - errors: error taxonomy
"""

from . import errors
from . import trend_detection
from . import pipeline
from .config import AnalysisConfig, EstimatorConfig, load_config, DEFAULT_ALPHA
from .pipeline import TidyTable, partition, assemble, classify, run_trend_analysis
from .trend_detection import make_estimator

__version__ = '0.1.0'
