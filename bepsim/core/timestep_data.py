from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import FrozenSet, Mapping


@dataclass(frozen=True, slots=True)
class Timestep:
    """Descriptor of one simulated interval."""

    index: int
    start: datetime
    duration_s: float
    holidays: FrozenSet[date] = field(default=frozenset(), repr=False, compare=False)

    @property
    def is_holiday(self) -> bool:
        return self.start.date() in self.holidays

    def is_holiday_at(self, when: datetime) -> bool:
        """Holiday flag for another instant, such as a look-ahead past midnight."""
        return when.date() in self.holidays

    @property
    def end(self) -> datetime:
        return self.start + timedelta(seconds=self.duration_s)

    @property
    def duration_h(self) -> float:
        return self.duration_s / 3600.0

    @property
    def hour_of_day(self) -> float:
        return self.start.hour + self.start.minute / 60.0 + self.start.second / 3600.0

    @property
    def day_of_week(self) -> int:
        """Monday is 0."""
        return self.start.weekday()

    @property
    def day_of_year(self) -> int:
        """Zero-based day of the year."""
        return self.start.timetuple().tm_yday - 1

    @property
    def is_weekend(self) -> bool:
        return self.day_of_week >= 5


@dataclass(frozen=True, slots=True)
class ConditionSnapshot:
    """
    Holds all exogenous data for a single timestep.

    This is the read-only container that flows from the aligned external
    conditions into every collaborator model during a step.
    """

    timestep: Timestep
    outdoor_temperature: float  # °C
    solar_irradiance: float = 0.0  # W/m²
    cold_water_temperature: float = 10.0  # °C
    features: Mapping[str, float] = field(default_factory=dict)

    def __getitem__(self, key: str) -> float:
        return self.features[key]

    def get(self, key: str, default: float = 0.0) -> float:
        return self.features.get(key, default)
