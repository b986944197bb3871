from bepsim.core.data.sources.base import BaseDataSourceConfig, DataSource
from bepsim.core.data.sources.file import FileDataSource, FileDataSourceConfig
from bepsim.core.data.sources.inline import InlineDataSource, InlineDataSourceConfig


class DataSourceFactory:
    """Factory to create DataSource instances based on configuration."""

    @staticmethod
    def create(config: BaseDataSourceConfig) -> DataSource:
        """Create a DataSource instance from a DataSourceConfig."""
        if not isinstance(config, BaseDataSourceConfig):
            raise ValueError("config must be an instance of DataSourceConfig")
        if isinstance(config, FileDataSourceConfig):
            return FileDataSource(config)
        elif isinstance(config, InlineDataSourceConfig):
            return InlineDataSource(config)
        else:
            raise ValueError(f"Unsupported DataSourceConfig type: {type(config)}")
