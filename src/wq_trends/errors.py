"""
Error Taxonomy

Partition-level failures (InsufficientData, InsufficientVariance,
NonFiniteInput) are recoverable: the result assembler records them as
"not computed" rows and keeps going. InvalidGroupKey and SchemaError are
configuration mistakes and abort the run before any partitioning happens.
"""

from typing import Optional


class TrendError(Exception):
    """Base class for errors raised while estimating a trend."""
    kind = 'trend_error'

    def __init__(self, message: str, n: Optional[int] = None):
        super().__init__(message)
        self.n = n


class InsufficientData(TrendError):
    """Series is shorter than the estimator's minimum length."""
    kind = 'insufficient_data'


class InsufficientVariance(TrendError):
    """All time values are identical, so a slope is undefined."""
    kind = 'insufficient_variance'


class NonFiniteInput(TrendError):
    """NaN or Inf present in the time or value arrays."""
    kind = 'non_finite_input'


class UnorderedSeries(TrendError):
    """Time values handed to an estimator are not non-decreasing."""
    kind = 'unordered_series'


class InvalidGroupKey(TrendError):
    """Requested grouping column is absent from the table."""
    kind = 'invalid_group_key'


class SchemaError(ValueError):
    """Input frame does not conform to the observation schema."""


# Failures the assembler turns into sentinel rows
RECOVERABLE_ERRORS = (InsufficientData, InsufficientVariance, NonFiniteInput)
