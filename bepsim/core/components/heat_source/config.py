from dataclasses import dataclass
from typing import ClassVar, Literal, Optional

from bepsim.core.components.config_base import BaseComponentConfig
from bepsim.core.components.handles import ComponentKind, Reference
from bepsim.core.data.series import OUTDOOR_TEMPERATURE


@dataclass(frozen=True, slots=True, kw_only=True)
class EmitterConfig:
    """Radiator output `coefficient * (flow_temperature - zone_temperature) ** exponent` in W."""

    coefficient_w: float
    exponent: float = 1.3
    flow_temperature: float = 55.0  # °C

    def problems(self) -> list[str]:
        problems = []
        if self.coefficient_w <= 0:
            problems.append(f"emitter coefficient_w must be positive, got {self.coefficient_w}")
        if self.exponent <= 0:
            problems.append(f"emitter exponent must be positive, got {self.exponent}")
        return problems


@dataclass(frozen=True, slots=True, kw_only=True)
class HeatSourceConfigBase(BaseComponentConfig):
    kind: ClassVar[ComponentKind] = ComponentKind.HEAT_SOURCE

    capacity_kw: float
    energy_supply: str
    control: Optional[str] = None
    emitter: Optional[EmitterConfig] = None

    def references(self) -> list[Reference]:
        refs = [Reference("energy_supply", self.energy_supply, ComponentKind.ENERGY_SUPPLY)]
        if self.control is not None:
            refs.append(Reference("control", self.control, ComponentKind.CONTROL))
        return refs

    def validate(self) -> list[str]:
        problems = []
        if self.capacity_kw <= 0:
            problems.append(f"capacity_kw must be positive, got {self.capacity_kw}")
        if self.emitter is not None:
            problems.extend(self.emitter.problems())
        return problems


@dataclass(frozen=True, slots=True, kw_only=True)
class BoilerConfig(HeatSourceConfigBase):
    efficiency: float = 0.9
    type: Literal["boiler"] = "boiler"

    def validate(self) -> list[str]:
        problems = HeatSourceConfigBase.validate(self)
        if not 0 < self.efficiency <= 1:
            problems.append(f"efficiency must be in (0, 1], got {self.efficiency}")
        return problems


@dataclass(frozen=True, slots=True, kw_only=True)
class HeatPumpConfig(HeatSourceConfigBase):
    """Air source heat pump; COP varies linearly with outdoor temperature around 7 °C."""

    cop_nominal: float = 3.0
    cop_slope_per_k: float = 0.08
    type: Literal["heat_pump"] = "heat_pump"

    def validate(self) -> list[str]:
        problems = HeatSourceConfigBase.validate(self)
        if self.cop_nominal < 1:
            problems.append(f"cop_nominal must be at least 1, got {self.cop_nominal}")
        return problems

    def required_series(self) -> list[str]:
        return [OUTDOOR_TEMPERATURE]


@dataclass(frozen=True, slots=True, kw_only=True)
class InstantElectricConfig(HeatSourceConfigBase):
    type: Literal["instant_electric"] = "instant_electric"
