"""
Group Partitioner

Splits a TidyTable into disjoint partitions keyed by one or more grouping
columns. Every partition is sorted ascending by date when it is built, so any
estimator downstream sees a time-ordered series.
"""

import logging
from typing import Any, Dict, Sequence, Tuple

import numpy as np
import pandas as pd

from ..errors import InvalidGroupKey
from ..trend_detection.series import to_time_ordinal
from .tidy import TidyTable, DATE, CONCENTRATION

logger = logging.getLogger(__name__)


class Partition:
    """
    Date-sorted rows sharing one partition key.

    Built only through Partition.build, which performs the sort.
    """

    __slots__ = ('key', 'key_names', 'frame', 'times', 'values', 'time_unit')

    def __init__(self, key, key_names, frame, times, values, time_unit):
        self.key = key
        self.key_names = key_names
        self.frame = frame
        self.times = times
        self.values = values
        self.time_unit = time_unit

    @classmethod
    def build(
        cls,
        key: Tuple[Any, ...],
        key_names: Tuple[str, ...],
        rows: pd.DataFrame,
        time_unit: str = 'years'
    ) -> 'Partition':
        frame = rows.sort_values(DATE, kind='mergesort').reset_index(drop=True)
        times = to_time_ordinal(frame[DATE], unit=time_unit)
        values = frame[CONCENTRATION].to_numpy(dtype=np.float64, copy=True)
        times.setflags(write=False)
        values.setflags(write=False)
        return cls(tuple(key), tuple(key_names), frame, times, values, time_unit)

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def is_degenerate(self) -> bool:
        """Fewer than two observations: no trend can be estimated."""
        return len(self) < 2

    @property
    def labels(self) -> Dict[str, Any]:
        return dict(zip(self.key_names, self.key))

    def __repr__(self):
        return f"Partition({self.labels}, n={len(self)})"


def _validate_keys(table: TidyTable, keys: Sequence[str]) -> Tuple[str, ...]:
    if isinstance(keys, str):
        keys = [keys]
    keys = tuple(keys)
    if not keys:
        raise InvalidGroupKey("At least one grouping column is required.")
    if len(set(keys)) != len(keys):
        raise InvalidGroupKey(f"Grouping columns must be unique, got {list(keys)}")
    missing = [k for k in keys if k not in table.columns]
    if missing:
        raise InvalidGroupKey(f"Grouping columns not in table: {missing}. Available: {table.columns}")
    return keys


def partition(
    table: TidyTable,
    keys: Sequence[str],
    time_unit: str = 'years'
) -> Dict[Tuple[Any, ...], Partition]:
    """
    Split a table into date-sorted partitions.

    Args:
        table: Observations to split
        keys: Grouping columns, e.g. ['basin', 'parameter']
        time_unit: Time ordinal handed to estimators ('years' or 'days')

    Returns:
        Dict mapping key tuple -> Partition, in lexicographic key order.
        Only key combinations present in the data appear.

    Raises:
        InvalidGroupKey: keys empty, duplicated, or not columns of the table
    """
    key_names = _validate_keys(table, keys)
    df = table.frame

    partitions = {}
    # sort=True orders groups lexicographically over the key tuple
    for key, rows in df.groupby(list(key_names), sort=True, dropna=False):
        key = key if isinstance(key, tuple) else (key,)
        partitions[key] = Partition.build(key, key_names, rows, time_unit=time_unit)

    degenerate = [k for k, p in partitions.items() if p.is_degenerate]
    logger.info("Partitioned %d observations into %d groups by %s", len(df), len(partitions), list(key_names))
    if degenerate:
        logger.warning("%d partition(s) have fewer than 2 observations: %s", len(degenerate), degenerate)

    return partitions
