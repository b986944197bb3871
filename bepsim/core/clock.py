"""Simulation clock: timestep sequence and alignment of external condition series."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Mapping, Sequence

import numpy as np
import pandas as pd

from bepsim.core.data.series import ConditionSeries, ExternalConditions
from bepsim.core.timestep_data import Timestep
from bepsim.errors import DataAlignmentError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class ClockConfig:
    """Horizon and calendar configuration."""

    start: str  # ISO 8601, e.g. "2023-01-01T00:00:00"
    steps: int
    step_hours: float = 1.0
    holidays: list[str] = field(default_factory=list)  # ISO dates

    def __post_init__(self):
        try:
            datetime.fromisoformat(self.start)
        except ValueError:
            raise ValueError(f"start '{self.start}' is not an ISO 8601 datetime.")
        if self.steps <= 0:
            raise ValueError("steps must be positive.")
        if self.step_hours <= 0:
            raise ValueError("step_hours must be positive.")
        for day in self.holidays:
            try:
                date.fromisoformat(day)
            except ValueError:
                raise ValueError(f"holiday '{day}' is not an ISO 8601 date.")

    @property
    def start_time(self) -> datetime:
        """Start instant, naive; a start with a UTC offset is converted to UTC."""
        start = datetime.fromisoformat(self.start)
        if start.tzinfo is not None:
            start = start.astimezone(timezone.utc).replace(tzinfo=None)
        return start

    @property
    def step_seconds(self) -> float:
        return self.step_hours * 3600.0


class SimulationClock:
    """
    Finite, restartable sequence of timesteps.

    Iterating the clock yields fresh `Timestep` descriptors each time, so the
    same clock can drive several passes over the horizon.
    """

    def __init__(self, config: ClockConfig):
        self.config = config
        self._holidays = frozenset(date.fromisoformat(d) for d in config.holidays)

    def __len__(self) -> int:
        return self.config.steps

    def __iter__(self) -> Iterator[Timestep]:
        for index in range(self.config.steps):
            yield self[index]

    def __getitem__(self, index: int) -> Timestep:
        if not 0 <= index < self.config.steps:
            raise IndexError(f"Timestep index {index} outside horizon of {self.config.steps} steps.")
        start = self.config.start_time + timedelta(seconds=index * self.config.step_seconds)
        return Timestep(
            index=index,
            start=start,
            duration_s=self.config.step_seconds,
            holidays=self._holidays,
        )

    @property
    def start(self) -> datetime:
        return self.config.start_time

    @property
    def end(self) -> datetime:
        return self[len(self) - 1].end

    def step_starts(self) -> pd.DatetimeIndex:
        return pd.DatetimeIndex([ts.start for ts in self])

    def align(
        self,
        series: Mapping[str, ConditionSeries],
        required: Sequence[str] = (),
    ) -> ExternalConditions:
        """
        Align every series to the horizon by nearest-boundary lookup.

        Each timestep takes the sample whose timestamp is nearest to its start
        instant (ties go to the later sample). A series must have samples at or
        before the first step start and at or after the last step start.

        Raises:
            DataAlignmentError: listing every series that fails to cover the
                horizon, every required series that is missing, and every
                series with missing values inside the horizon.
        """
        starts = self.step_starts()
        problems: list[str] = []
        aligned: dict[str, np.ndarray] = {}

        for name in required:
            if name not in series:
                problems.append(f"required series '{name}' is not configured")

        for name, s in series.items():
            if s.is_constant:
                aligned[name] = np.full(len(starts), float(s.constant), dtype=np.float64)
                continue
            if len(s.index) == 0:
                problems.append(f"series '{name}' has no samples")
                continue
            first, last = s.index[0], s.index[-1]
            if first > starts[0] or last < starts[-1]:
                problems.append(
                    f"series '{name}' covers {first.isoformat()} to {last.isoformat()} "
                    f"but the horizon needs {starts[0].isoformat()} to {starts[-1].isoformat()}"
                )
                continue
            positions = s.index.get_indexer(starts, method="nearest")
            values = s.values[positions].astype(np.float64)
            missing = np.flatnonzero(np.isnan(values))
            if missing.size:
                problems.append(
                    f"series '{name}' has missing values at timestep(s) "
                    f"{', '.join(str(i) for i in missing[:5])}"
                    + (" ..." if missing.size > 5 else "")
                )
                continue
            aligned[name] = values

        if problems:
            raise DataAlignmentError(problems)

        logger.debug("Aligned %d condition series to %d timesteps", len(aligned), len(starts))
        return ExternalConditions(timesteps=tuple(self), values=aligned)
