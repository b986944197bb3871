"""Data source for regularly spaced values given directly in the configuration."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Literal, Tuple

import pandas as pd

from bepsim.core.data.series import ConditionSeries
from bepsim.core.data.sources.base import BaseDataSourceConfig, DataSource


@dataclass(frozen=True, kw_only=True, slots=True)
class InlineDataSourceConfig(BaseDataSourceConfig):
    """Configuration for inline data sources."""

    start: str
    step_hours: float = 1.0
    columns: Dict[str, List[float]] = field(default_factory=dict)

    type: Literal["inline"] = "inline"

    def __post_init__(self):
        datetime.fromisoformat(self.start)
        if self.step_hours <= 0:
            raise ValueError("step_hours must be positive.")
        lengths = {len(values) for values in self.columns.values()}
        if len(lengths) > 1:
            raise ValueError("All inline columns must have the same length.")


class InlineDataSource(DataSource):
    """Data source backed by lists of values in the configuration document."""

    def __init__(self, config: InlineDataSourceConfig):
        self.config = config
        length = len(next(iter(config.columns.values()), []))
        self._index = pd.date_range(
            start=datetime.fromisoformat(config.start),
            periods=length,
            freq=pd.Timedelta(hours=config.step_hours),
        )

    def get_time_range(self) -> Tuple[pd.Timestamp, pd.Timestamp]:
        return self._index.min(), self._index.max()

    def get_available_columns(self) -> Tuple[str, ...]:
        return tuple(self.config.columns)

    def get_series(self, column: str, name: str) -> ConditionSeries:
        if column not in self.config.columns:
            raise KeyError(f"Column '{column}' not found in inline data")
        return ConditionSeries(name, index=self._index, values=self.config.columns[column])
