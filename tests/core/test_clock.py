"""Tests for the simulation clock and condition alignment."""

from datetime import datetime

import numpy as np
import pandas as pd
import pytest

from bepsim.core.clock import ClockConfig, SimulationClock
from bepsim.core.data.series import ConditionSeries
from bepsim.errors import DataAlignmentError


def hourly(name, start, values):
    index = pd.date_range(start=start, periods=len(values), freq="h")
    return ConditionSeries(name, index=index, values=values)


def test_clock_yields_timesteps_with_calendar_fields():
    # Arrange
    clock = SimulationClock(
        ClockConfig(start="2023-12-24T22:00:00", steps=4, holidays=["2023-12-25"])
    )

    # Act
    steps = list(clock)

    # Assert
    assert [ts.index for ts in steps] == [0, 1, 2, 3]
    assert steps[0].start == datetime(2023, 12, 24, 22)
    assert steps[0].end == datetime(2023, 12, 24, 23)
    assert steps[0].is_weekend  # Sunday
    assert not steps[0].is_holiday
    assert steps[2].is_holiday
    assert steps[2].hour_of_day == 0.0
    assert steps[2].day_of_year == 358
    assert steps[2].day_of_week == 0


def test_clock_iteration_is_restartable():
    # Arrange
    clock = SimulationClock(ClockConfig(start="2023-01-01T00:00:00", steps=3))

    # Act
    first = list(clock)
    second = list(clock)

    # Assert
    assert first == second
    assert len(clock) == 3
    assert clock.end == datetime(2023, 1, 1, 3)


def test_clock_index_outside_horizon_raises():
    clock = SimulationClock(ClockConfig(start="2023-01-01T00:00:00", steps=3))
    with pytest.raises(IndexError):
        clock[3]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"start": "not a date", "steps": 3},
        {"start": "2023-01-01T00:00:00", "steps": 0},
        {"start": "2023-01-01T00:00:00", "steps": 3, "step_hours": 0},
        {"start": "2023-01-01T00:00:00", "steps": 3, "holidays": ["25/12/2023"]},
    ],
)
def test_clock_config_rejects_invalid_values(kwargs):
    with pytest.raises(ValueError):
        ClockConfig(**kwargs)


def test_align_uses_nearest_sample_with_ties_to_later():
    # Arrange
    clock = SimulationClock(ClockConfig(start="2023-01-01T00:00:00", steps=3, step_hours=0.5))
    series = {"outdoor_temperature": hourly("outdoor_temperature", "2023-01-01", [1.0, 2.0])}

    # Act
    conditions = clock.align(series)

    # Assert
    np.testing.assert_array_equal(conditions.series("outdoor_temperature"), [1.0, 2.0, 2.0])


def test_start_with_utc_offset_is_converted_to_utc():
    config = ClockConfig(start="2023-01-01T01:00:00+01:00", steps=1)
    assert config.start_time == datetime(2023, 1, 1, 0)


def test_align_accepts_series_with_utc_offsets():
    # Arrange
    clock = SimulationClock(ClockConfig(start="2023-01-01T00:00:00", steps=3))
    index = pd.to_datetime(
        ["2023-01-01T00:00:00Z", "2023-01-01T01:00:00Z", "2023-01-01T03:00:00+01:00"], utc=True
    )
    series = {
        "outdoor_temperature": ConditionSeries("outdoor_temperature", index=index, values=[1.0, 2.0, 3.0])
    }

    # Act
    conditions = clock.align(series)

    # Assert
    np.testing.assert_array_equal(conditions.series("outdoor_temperature"), [1.0, 2.0, 3.0])


def test_align_fills_constants_and_builds_snapshots():
    # Arrange
    clock = SimulationClock(ClockConfig(start="2023-01-01T00:00:00", steps=2))
    series = {
        "outdoor_temperature": ConditionSeries.constant_value("outdoor_temperature", 5.0),
        "tariff": hourly("tariff", "2023-01-01", [0.1, 0.2, 0.3]),
    }

    # Act
    conditions = clock.align(series)
    snapshot = conditions.snapshot(1)

    # Assert
    assert snapshot.outdoor_temperature == 5.0
    assert snapshot["tariff"] == 0.2
    assert snapshot.solar_irradiance == 0.0
    assert snapshot.timestep.index == 1


def test_aligned_arrays_are_read_only():
    clock = SimulationClock(ClockConfig(start="2023-01-01T00:00:00", steps=2))
    conditions = clock.align(
        {"outdoor_temperature": ConditionSeries.constant_value("outdoor_temperature", 5.0)}
    )
    with pytest.raises(ValueError):
        conditions.series("outdoor_temperature")[0] = 1.0


def test_align_reports_every_series_that_does_not_cover_horizon():
    # Arrange
    clock = SimulationClock(ClockConfig(start="2023-01-01T00:00:00", steps=24))
    series = {
        "outdoor_temperature": hourly("outdoor_temperature", "2023-01-01 01:00", [0.0] * 30),
        "solar_irradiance": hourly("solar_irradiance", "2023-01-01", [0.0] * 10),
        "tariff": hourly("tariff", "2023-01-01", [0.1] * 24),
    }

    # Act
    with pytest.raises(DataAlignmentError) as excinfo:
        clock.align(series, required=["outdoor_temperature", "cold_water_temperature"])

    # Assert
    problems = "\n".join(excinfo.value.problems)
    assert len(excinfo.value.problems) == 3
    assert "outdoor_temperature" in problems
    assert "solar_irradiance" in problems
    assert "cold_water_temperature" in problems
    assert "tariff" not in problems


def test_align_reports_missing_values():
    clock = SimulationClock(ClockConfig(start="2023-01-01T00:00:00", steps=3))
    series = {"outdoor_temperature": hourly("outdoor_temperature", "2023-01-01", [1.0, np.nan, 3.0])}
    with pytest.raises(DataAlignmentError, match="missing values at timestep"):
        clock.align(series)
