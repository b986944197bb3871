"""Base abstractions for condition data sources."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Tuple

import pandas as pd

from bepsim.core.data.series import ConditionSeries


@dataclass(frozen=True, kw_only=True, slots=True)
class BaseDataSourceConfig:
    """Base configuration for data sources."""

    type: str


class DataSource(ABC):
    """Abstract base class for data sources.

    A data source is read once, before the simulation starts; the hot loop only
    ever sees aligned arrays.
    """

    @abstractmethod
    def get_series(self, column: str, name: str) -> ConditionSeries:
        """Return one column as a condition series named `name`."""
        pass

    @abstractmethod
    def get_time_range(self) -> Tuple[pd.Timestamp, pd.Timestamp]:
        """Get the available time range (min_time, max_time)."""
        pass

    @abstractmethod
    def get_available_columns(self) -> Tuple[str, ...]:
        """Get the list of columns available from this data source."""
        pass

    @property
    def columns(self) -> Tuple[str, ...]:
        """Pythonic alias for available columns."""
        return self.get_available_columns()
