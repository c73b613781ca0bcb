"""
Utility functions for wq-trends.
"""

import logging
import numpy as np
import pandas as pd
from typing import Optional, Sequence

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def format_p_value(p: Optional[float], decimals: int = 4, tiny: float = 1e-4) -> str:
    """Format p-value for display."""
    if p is None or not np.isfinite(p):
        return "N/A"
    return f"<{tiny:.{decimals}f}" if p < tiny else f"{p:.{decimals}f}"


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach console (and optionally file) handlers to the package logger.

    Calling it again replaces the handlers it installed earlier.
    """
    logger = logging.getLogger('wq_trends')
    logger.setLevel(level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file is not None:
        fh = logging.FileHandler(log_file, mode='w')
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    return logger


def generate_trend_data(
    n: int = 30,
    slope: float = 0.1,
    intercept: float = 0.0,
    noise_std: float = 1.0,
    ar_coef: float = 0.0,
    seed: Optional[int] = None
) -> np.ndarray:
    """
    Generate synthetic time series data with trend.

    Args:
        n: Number of observations
        slope: True slope of trend per step
        intercept: Intercept
        noise_std: Standard deviation of noise
        ar_coef: AR(1) coefficient for autocorrelated errors
        seed: Random seed

    Returns:
        Time series array
    """
    rng = np.random.default_rng(seed)

    t = np.arange(n, dtype=float)
    trend = intercept + slope * t

    if ar_coef == 0:
        errors = rng.normal(0, noise_std, n)
    else:
        errors = np.zeros(n)
        errors[0] = rng.normal(0, noise_std)
        for i in range(1, n):
            errors[i] = ar_coef * errors[i-1] + rng.normal(0, noise_std * np.sqrt(1 - ar_coef**2))

    return trend + errors


def generate_observations(
    basins: Sequence[str],
    parameters: Sequence[str],
    start: str = '1980-01-01',
    periods: int = 120,
    freq: str = 'MS',
    slope_per_year: float = 0.0,
    base: float = 10.0,
    noise_std: float = 0.0,
    seed: Optional[int] = None
) -> pd.DataFrame:
    """
    Build a tidy observation frame with one site per basin.

    Concentrations follow base + slope_per_year * elapsed_years + noise.
    """
    rng = np.random.default_rng(seed)
    dates = pd.date_range(start, periods=periods, freq=freq)
    years = (dates - dates[0]) / pd.Timedelta(days=365.25)

    frames = []
    for basin in basins:
        for param in parameters:
            values = base + slope_per_year * np.asarray(years, dtype=float)
            if noise_std > 0:
                values = values + rng.normal(0, noise_std, len(dates))
            frames.append(pd.DataFrame({
                'site_id': f"{basin}-01",
                'parameter': param,
                'basin': basin,
                'date': dates,
                'concentration': values,
            }))
    return pd.concat(frames, ignore_index=True)
