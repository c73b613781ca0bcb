"""
Tidy Observation Table

A validated, read-only wrapper around a pandas DataFrame of water-quality
observations. Every row is one sample of one parameter at one site on one
date. Source columns are mapped onto the canonical names explicitly.
"""

import logging
from typing import Dict, Iterable, List, Optional, Union

import numpy as np
import pandas as pd

from ..errors import SchemaError

logger = logging.getLogger(__name__)

SITE_ID = 'site_id'
PARAMETER = 'parameter'
BASIN = 'basin'
DATE = 'date'
CONCENTRATION = 'concentration'
DISCHARGE = 'discharge'

REQUIRED_COLUMNS = (SITE_ID, PARAMETER, BASIN, DATE, CONCENTRATION)
OPTIONAL_COLUMNS = (DISCHARGE,)
OBSERVATION_COLUMNS = REQUIRED_COLUMNS + OPTIONAL_COLUMNS


class TidyTable:
    """
    Observations keyed by (site_id, parameter, date).

    Args:
        frame: DataFrame holding at least the required columns
        columns: Optional mapping {canonical_name: source_column}

    Raises:
        SchemaError: a mapped or required column is missing, or dates fail to parse
    """

    def __init__(self, frame: pd.DataFrame, columns: Optional[Dict[str, str]] = None):
        self._frame = self._validate(frame, columns or {})

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, columns: Optional[Dict[str, str]] = None) -> 'TidyTable':
        return cls(frame, columns)

    @staticmethod
    def _validate(frame: pd.DataFrame, columns: Dict[str, str]) -> pd.DataFrame:
        unknown = set(columns) - set(OBSERVATION_COLUMNS)
        if unknown:
            raise SchemaError(f"Cannot map unknown observation fields: {sorted(unknown)}")

        absent = [src for src in columns.values() if src not in frame.columns]
        if absent:
            raise SchemaError(f"Mapped source columns not found: {absent}. Available: {list(frame.columns)}")

        df = frame.rename(columns={src: dst for dst, src in columns.items()})

        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise SchemaError(f"Missing required columns: {missing}. Available: {list(df.columns)}")

        df = df.copy()
        dates = pd.to_datetime(df[DATE], errors='coerce')
        bad = dates.isna()
        if bad.any():
            examples = df.loc[bad, DATE].head(5).tolist()
            raise SchemaError(f"Date column contains invalid values ({int(bad.sum())} rows). Examples: {examples}")
        df[DATE] = dates.dt.normalize()

        for col in (SITE_ID, PARAMETER, BASIN):
            df[col] = df[col].astype(str)

        df[CONCENTRATION] = pd.to_numeric(df[CONCENTRATION], errors='coerce').astype(np.float64)
        if DISCHARGE in df.columns:
            df[DISCHARGE] = pd.to_numeric(df[DISCHARGE], errors='coerce').astype(np.float64)

        return df.reset_index(drop=True)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def frame(self) -> pd.DataFrame:
        """Copy of the underlying DataFrame."""
        return self._frame.copy()

    @property
    def columns(self) -> List[str]:
        return list(self._frame.columns)

    @property
    def has_discharge(self) -> bool:
        return DISCHARGE in self._frame.columns

    def __len__(self) -> int:
        return len(self._frame)

    def __repr__(self):
        return f"TidyTable(rows={len(self)}, columns={self.columns})"

    def _derive(self, frame: pd.DataFrame) -> 'TidyTable':
        out = object.__new__(TidyTable)
        out._frame = frame.reset_index(drop=True)
        return out

    # ------------------------------------------------------------------
    # Transforms (each returns a new table)
    # ------------------------------------------------------------------

    def daily_mean(self) -> 'TidyTable':
        """
        Collapse same-day duplicates to their mean.

        After this, (site_id, parameter, date) is unique. Basin and any other
        text columns keep their first value; numeric columns are averaged.
        """
        keys = [SITE_ID, PARAMETER, DATE]
        df = self._frame
        numeric = [c for c in df.columns if c not in keys and pd.api.types.is_numeric_dtype(df[c])]
        other = [c for c in df.columns if c not in keys and c not in numeric]

        agg = {c: 'mean' for c in numeric}
        agg.update({c: 'first' for c in other})
        out = df.groupby(keys, sort=True, as_index=False).agg(agg)[list(df.columns)]

        if len(out) < len(df):
            logger.info("Daily aggregation: %d -> %d observations", len(df), len(out))
        return self._derive(out)

    def low_flow(self, months: Iterable[int]) -> 'TidyTable':
        """Keep observations whose calendar month falls in the low-flow period."""
        months = sorted({int(m) for m in months})
        if not months or any(not 1 <= m <= 12 for m in months):
            raise ValueError(f"months must be calendar months 1-12, got {months}")
        df = self._frame
        out = df.loc[df[DATE].dt.month.isin(months)]
        logger.info("Low-flow months %s: kept %d of %d observations", months, len(out), len(df))
        return self._derive(out)

    def low_flow_by_discharge(self, quantile: float = 0.25) -> 'TidyTable':
        """
        Keep observations taken at or below the per-site discharge quantile.

        Rows without a discharge value are dropped.
        """
        if not self.has_discharge:
            raise SchemaError("Table has no discharge column")
        if not 0.0 < quantile <= 1.0:
            raise ValueError(f"quantile must be in (0, 1], got {quantile}")
        df = self._frame
        threshold = df.groupby(SITE_ID)[DISCHARGE].transform(lambda q: q.quantile(quantile))
        out = df.loc[df[DISCHARGE].notna() & (df[DISCHARGE] <= threshold)]
        logger.info("Low-flow discharge <= q%.2f: kept %d of %d observations", quantile, len(out), len(df))
        return self._derive(out)

    def between(
        self,
        start: Optional[Union[str, pd.Timestamp]] = None,
        end: Optional[Union[str, pd.Timestamp]] = None
    ) -> 'TidyTable':
        """Keep observations inside the inclusive date window."""
        if start is not None and end is not None and pd.to_datetime(start) > pd.to_datetime(end):
            raise ValueError(f"Start date ({start}) cannot be after end date ({end}).")
        df = self._frame
        mask = pd.Series(True, index=df.index)
        if start is not None:
            mask &= df[DATE] >= pd.to_datetime(start).normalize()
        if end is not None:
            mask &= df[DATE] <= pd.to_datetime(end).normalize()
        return self._derive(df.loc[mask])
