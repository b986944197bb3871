from dataclasses import dataclass
from typing import ClassVar, Literal

from bepsim.core.components.config_base import BaseComponentConfig
from bepsim.core.components.handles import ComponentKind, Reference
from bepsim.core.data.series import SOLAR_IRRADIANCE


@dataclass(frozen=True, slots=True, kw_only=True)
class PhotovoltaicConfig(BaseComponentConfig):
    """PV array whose output is proportional to plane irradiance (1 kW/m² is peak)."""

    kind: ClassVar[ComponentKind] = ComponentKind.GENERATOR

    peak_power_kw: float
    inverter_efficiency: float = 0.96
    energy_supply: str
    type: Literal["photovoltaic"] = "photovoltaic"

    def references(self) -> list[Reference]:
        return [Reference("energy_supply", self.energy_supply, ComponentKind.ENERGY_SUPPLY)]

    def validate(self) -> list[str]:
        problems = []
        if self.peak_power_kw < 0:
            problems.append(f"peak_power_kw must be non-negative, got {self.peak_power_kw}")
        if not 0 < self.inverter_efficiency <= 1:
            problems.append(f"inverter_efficiency must be in (0, 1], got {self.inverter_efficiency}")
        return problems

    def required_series(self) -> list[str]:
        return [SOLAR_IRRADIANCE]
