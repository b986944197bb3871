from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from bepsim.core.data.sources.file import FileDataSourceConfig
from bepsim.core.data.sources.inline import InlineDataSourceConfig

DataSourceConfig = Union[FileDataSourceConfig, InlineDataSourceConfig]


@dataclass(frozen=True)
class ConditionSeriesConfig:
    """Where one named condition series comes from: a source column or a constant."""

    source: Optional[str] = None
    column: Optional[str] = None
    constant: Optional[float] = None

    def __post_init__(self):
        from_source = self.source is not None or self.column is not None
        if from_source and self.constant is not None:
            raise ValueError("A series is either read from a source or constant, not both.")
        if not from_source and self.constant is None:
            raise ValueError("A series needs a source and column, or a constant.")
        if from_source and (self.source is None or self.column is None):
            raise ValueError("A series read from a source needs both 'source' and 'column'.")


@dataclass(frozen=True)
class ExternalConditionsConfig:
    sources: Dict[str, DataSourceConfig] = field(default_factory=dict)
    series: Dict[str, ConditionSeriesConfig] = field(default_factory=dict)
