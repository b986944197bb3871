import logging
from typing import Dict

from bepsim.core.data.config import ExternalConditionsConfig
from bepsim.core.data.series import ConditionSeries
from bepsim.core.data.sources.factory import DataSourceFactory
from bepsim.errors import DataAlignmentError

logger = logging.getLogger(__name__)


def build_condition_series(config: ExternalConditionsConfig) -> Dict[str, ConditionSeries]:
    """
    Read every configured series from its source.

    Unknown sources and missing columns are collected and reported together.
    """
    sources = {name: DataSourceFactory.create(cfg) for name, cfg in config.sources.items()}
    problems: list[str] = []
    series: Dict[str, ConditionSeries] = {}

    for name, series_config in config.series.items():
        if series_config.constant is not None:
            series[name] = ConditionSeries.constant_value(name, series_config.constant)
            continue
        source = sources.get(series_config.source)
        if source is None:
            problems.append(f"series '{name}' refers to unknown source '{series_config.source}'")
            continue
        if series_config.column not in source.columns:
            problems.append(
                f"series '{name}' refers to column '{series_config.column}' missing from source '{series_config.source}'"
            )
            continue
        series[name] = source.get_series(series_config.column, name)

    if problems:
        raise DataAlignmentError(problems)

    logger.info("Loaded %d condition series from %d source(s)", len(series), len(sources))
    return series
