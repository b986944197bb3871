from typing import Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from bepsim.core.timestep_data import ConditionSnapshot, Timestep

OUTDOOR_TEMPERATURE = "outdoor_temperature"
SOLAR_IRRADIANCE = "solar_irradiance"
COLD_WATER_TEMPERATURE = "cold_water_temperature"

DEFAULT_SOLAR_IRRADIANCE = 0.0
DEFAULT_COLD_WATER_TEMPERATURE = 10.0


class ConditionSeries:
    """A named, time-indexed sequence of values, or a constant."""

    def __init__(
        self,
        name: str,
        index: Optional[pd.DatetimeIndex] = None,
        values: Optional[Sequence[float]] = None,
        constant: Optional[float] = None,
    ):
        self.name = name
        self.constant = constant
        if constant is not None:
            self.index = pd.DatetimeIndex([])
            self.values = np.array([], dtype=np.float64)
            return
        if index is None or values is None:
            raise ValueError(f"Series '{name}' needs either an index and values or a constant.")
        values = np.asarray(values, dtype=np.float64)
        if len(index) != len(values):
            raise ValueError(
                f"Series '{name}' has {len(index)} timestamps but {len(values)} values."
            )
        index = pd.DatetimeIndex(index)
        if index.tz is not None:
            # Clock instants are naive; offsets are resolved to UTC.
            index = index.tz_convert(None)
        frame = pd.Series(values, index=index)
        frame = frame[~frame.index.duplicated(keep="first")].sort_index()
        self.index = frame.index
        self.values = frame.to_numpy(dtype=np.float64)

    @classmethod
    def constant_value(cls, name: str, value: float) -> "ConditionSeries":
        return cls(name, constant=float(value))

    @property
    def is_constant(self) -> bool:
        return self.constant is not None

    def __len__(self) -> int:
        return len(self.values)

    def __repr__(self) -> str:
        if self.is_constant:
            return f"ConditionSeries({self.name!r}, constant={self.constant})"
        return f"ConditionSeries({self.name!r}, samples={len(self)})"


class ExternalConditions:
    """
    External condition series materialized onto the simulation horizon.

    Built once by the clock before the run starts; read-only afterwards.
    """

    def __init__(self, timesteps: Sequence[Timestep], values: Mapping[str, np.ndarray]):
        self.timesteps = tuple(timesteps)
        self._values = {}
        for name, array in values.items():
            array = np.array(array, dtype=np.float64)
            if array.shape != (len(self.timesteps),):
                raise ValueError(
                    f"Series '{name}' has shape {array.shape}, expected ({len(self.timesteps)},)."
                )
            array.setflags(write=False)
            self._values[name] = array

    def __len__(self) -> int:
        return len(self.timesteps)

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def series(self, name: str) -> np.ndarray:
        return self._values[name]

    def snapshot(self, index: int) -> ConditionSnapshot:
        timestep = self.timesteps[index]
        features = {name: float(array[index]) for name, array in self._values.items()}
        return ConditionSnapshot(
            timestep=timestep,
            outdoor_temperature=features[OUTDOOR_TEMPERATURE],
            solar_irradiance=features.get(SOLAR_IRRADIANCE, DEFAULT_SOLAR_IRRADIANCE),
            cold_water_temperature=features.get(
                COLD_WATER_TEMPERATURE, DEFAULT_COLD_WATER_TEMPERATURE
            ),
            features=features,
        )
