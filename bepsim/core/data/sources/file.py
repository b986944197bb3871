"""File-based data source implementation."""

from dataclasses import dataclass
from typing import Literal, Tuple

import pandas as pd

from bepsim.core.data.series import ConditionSeries
from bepsim.core.data.sources.base import BaseDataSourceConfig, DataSource


@dataclass(frozen=True, kw_only=True, slots=True)
class FileDataSourceConfig(BaseDataSourceConfig):
    """Configuration for file-based data sources."""

    file_path: str
    time_column: str = "time"

    type: Literal["file"] = "file"


def to_datetime_index(values: pd.Series) -> pd.DatetimeIndex:
    """
    Parse a time column given as unix seconds or as datetime strings.

    Strings with a UTC offset are converted to UTC; the result is always naive.
    """
    if pd.api.types.is_numeric_dtype(values):
        return pd.DatetimeIndex(pd.to_datetime(values, unit="s"))
    return pd.DatetimeIndex(pd.to_datetime(values, utc=True)).tz_convert(None)


class FileDataSource(DataSource):
    """Data source that reads from CSV or Feather files."""

    def __init__(self, config: FileDataSourceConfig):
        self.config = config

        # Load CSV or Feather
        if config.file_path.endswith(".feather"):
            df = pd.read_feather(config.file_path)
        else:
            df = pd.read_csv(config.file_path)

        if config.time_column not in df.columns:
            raise KeyError(f"Time column '{config.time_column}' not found in file")

        df.index = to_datetime_index(df[config.time_column])
        df = df.drop(columns=[config.time_column]).sort_index()

        self._df = df
        self._columns: Tuple[str, ...] = tuple(df.columns)

    def get_time_range(self) -> Tuple[pd.Timestamp, pd.Timestamp]:
        return self._df.index.min(), self._df.index.max()

    def get_available_columns(self) -> Tuple[str, ...]:
        return self._columns

    def get_series(self, column: str, name: str) -> ConditionSeries:
        if column not in self._df.columns:
            raise KeyError(f"Column '{column}' not found in {self.config.file_path}")
        return ConditionSeries(
            name,
            index=self._df.index,
            values=pd.to_numeric(self._df[column], errors="coerce").to_numpy(),
        )
