# outbreak_sentinel/data_processing/pipeline.py
#
# Fluent Data Processing Pipeline
# Chainable preparation steps applied to a pandas DataFrame of raw records
# before aggregation.

import logging
from typing import Collection, Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)


class DataPipeline:
    """
    Wraps a copy of a record frame and returns itself from every step.

    Usage:
        frame = (
            DataPipeline(raw_df)
            .convert_date_columns(['timestamp'])
            .fill_missing_readings({'chlorine_residual': 0.5})
            .add_time_bucket('timestamp', hours=6)
            .get_df()
        )
    """
    def __init__(self, df: pd.DataFrame):
        if not isinstance(df, pd.DataFrame):
            raise TypeError(f"DataPipeline expects a DataFrame, got {type(df).__name__}.")
        self._df = df.copy()

    def get_df(self) -> pd.DataFrame:
        return self._df

    def fill_missing_readings(self, column_defaults: Dict[str, float]) -> 'DataPipeline':
        """Casts reading columns to float and fills gaps with the given defaults."""
        for col, default_val in column_defaults.items():
            if col not in self._df.columns:
                continue
            missing = int(self._df[col].isna().sum())
            self._df[col] = self._df[col].astype(float).fillna(float(default_val))
            if missing:
                logger.debug(f"Filled {missing} missing '{col}' reading(s) with {default_val}.")
        return self

    def convert_date_columns(self, date_columns: List[str], errors: str = 'coerce') -> 'DataPipeline':
        """Parses columns as timezone-aware UTC datetimes; unparseable values become NaT."""
        for col in date_columns:
            if col not in self._df.columns:
                logger.warning(f"Cannot parse dates: column '{col}' is absent.")
                continue
            self._df[col] = pd.to_datetime(self._df[col], errors=errors, utc=True)
        return self

    def add_time_bucket(self, column: str, hours: int, target: str = 'bucket_start') -> 'DataPipeline':
        """
        Truncates a datetime column to the start of its fixed-width bucket.

        Bucket boundaries fall on multiples of `hours` from midnight UTC, which
        requires the width to divide a day evenly.
        """
        if 24 % hours != 0:
            raise ValueError(f"Bucket width must divide 24 hours evenly, got {hours}h.")
        if column not in self._df.columns:
            logger.warning(f"Time bucketing skipped: Column '{column}' not found in DataFrame.")
            return self
        self._df[target] = self._df[column].dt.floor(f"{hours}h")
        return self

    def restrict_to_known(self, column: str, allowed: Optional[Collection[str]] = None) -> 'DataPipeline':
        """
        Blanks labels outside `allowed` so they drop out of breakdowns while
        the row still counts toward totals. No-op when `allowed` is None.
        """
        if allowed is None or column not in self._df.columns:
            return self
        series = self._df[column].astype(object)
        unknown = series.notna() & ~series.isin(set(allowed))
        if unknown.any():
            logger.warning(f"{int(unknown.sum())} record(s) reference an unknown '{column}' and are excluded from its breakdown.")
        self._df[column] = series.where(~unknown, None)
        return self
