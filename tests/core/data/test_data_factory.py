import pytest

from bepsim.core.data.config import ConditionSeriesConfig, ExternalConditionsConfig
from bepsim.core.data.factory import build_condition_series
from bepsim.core.data.sources.inline import InlineDataSourceConfig
from bepsim.errors import DataAlignmentError


def weather_source():
    return InlineDataSourceConfig(
        start="2023-01-01T00:00:00", columns={"temp": [1.0, 2.0], "ghi": [0.0, 100.0]}
    )


def test_build_condition_series_from_sources_and_constants():
    # Arrange
    config = ExternalConditionsConfig(
        sources={"weather": weather_source()},
        series={
            "outdoor_temperature": ConditionSeriesConfig(source="weather", column="temp"),
            "cold_water_temperature": ConditionSeriesConfig(constant=8.0),
        },
    )

    # Act
    series = build_condition_series(config)

    # Assert
    assert series["outdoor_temperature"].values.tolist() == [1.0, 2.0]
    assert series["cold_water_temperature"].is_constant
    assert series["cold_water_temperature"].constant == 8.0


def test_build_condition_series_reports_every_problem():
    # Arrange
    config = ExternalConditionsConfig(
        sources={"weather": weather_source()},
        series={
            "outdoor_temperature": ConditionSeriesConfig(source="weather", column="dry_bulb"),
            "tariff": ConditionSeriesConfig(source="prices", column="rate"),
        },
    )

    # Act
    with pytest.raises(DataAlignmentError) as excinfo:
        build_condition_series(config)

    # Assert
    assert len(excinfo.value.problems) == 2


@pytest.mark.parametrize(
    "kwargs",
    [{}, {"source": "weather"}, {"source": "weather", "column": "temp", "constant": 1.0}],
)
def test_condition_series_config_needs_exactly_one_mode(kwargs):
    with pytest.raises(ValueError):
        ConditionSeriesConfig(**kwargs)
