"""
Time Series Preparation

Conversion of calendar dates into numeric time ordinals and the input checks
shared by every trend estimator.
"""

import numpy as np
import pandas as pd
from typing import Tuple

from ..errors import InsufficientData, InsufficientVariance, NonFiniteInput, UnorderedSeries


def to_time_ordinal(dates, unit: str = 'years') -> np.ndarray:
    """
    Convert dates to a numeric time axis.

    'years' gives the decimal year, year + (day_of_year - 1) / days_in_year,
    so one calendar year is exactly one unit. 'days' gives days since
    1970-01-01.

    Args:
        dates: Anything pd.to_datetime accepts (Series, Index, array of dates)
        unit: 'years' or 'days'

    Returns:
        float64 array of time values
    """
    idx = pd.DatetimeIndex(pd.to_datetime(dates))
    if unit == 'years':
        days_in_year = np.where(idx.is_leap_year, 366.0, 365.0)
        frac = (idx.dayofyear.to_numpy(dtype=np.float64) - 1.0) / days_in_year
        return idx.year.to_numpy(dtype=np.float64) + frac
    if unit == 'days':
        epoch = pd.Timestamp('1970-01-01')
        return ((idx - epoch) / pd.Timedelta(days=1)).to_numpy(dtype=np.float64)
    raise ValueError(f"Unknown time unit '{unit}'")


def check_series(
    times: np.ndarray,
    values: np.ndarray,
    min_length: int
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Validate a (time, value) series before estimating a trend.

    Checks run in order: length, finiteness, ordering, spread of time.

    Returns:
        Tuple of (times, values) as float64 arrays

    Raises:
        InsufficientData: fewer than min_length points
        NonFiniteInput: NaN or Inf in times or values
        UnorderedSeries: times not non-decreasing
        InsufficientVariance: all times identical
    """
    t = np.asarray(times, dtype=np.float64)
    x = np.asarray(values, dtype=np.float64)
    n = x.size

    if t.shape != x.shape or t.ndim != 1:
        raise ValueError(f"times and values must be 1-D arrays of equal length, got {t.shape} and {x.shape}")

    if n < min_length:
        raise InsufficientData(f"Series has {n} observations; at least {min_length} required.", n=n)

    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(t))):
        bad = int(np.sum(~np.isfinite(x)) + np.sum(~np.isfinite(t)))
        raise NonFiniteInput(f"Series contains {bad} non-finite time or value entries.", n=n)

    if np.any(np.diff(t) < 0):
        raise UnorderedSeries("Time values must be sorted in ascending order.", n=n)

    if t[-1] == t[0]:
        raise InsufficientVariance("All time values are identical; slope is undefined.", n=n)

    return t, x
