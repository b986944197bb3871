from dataclasses import dataclass
from enum import Enum
from typing import Optional

from bepsim.core.components.handles import ComponentHandle

J_PER_KWH = 3_600_000.0


class Fuel(str, Enum):
    ELECTRICITY = "electricity"
    MAINS_GAS = "mains_gas"
    LPG = "lpg"
    OIL = "oil"
    DISTRICT_HEAT = "district_heat"
    UNMET_DEMAND = "unmet_demand"


class EndUse(str, Enum):
    SPACE_HEATING = "space_heating"
    WATER_HEATING = "water_heating"
    GENERATION = "generation"
    UNMET_SPACE_HEATING = "unmet_space_heating"


# ------------------------
# Control signals
# ------------------------
@dataclass(frozen=True, slots=True, kw_only=True)
class ControlOutput:
    on: bool = True
    setpoint: Optional[float] = None  # °C


# ------------------------
# Energy accounting
# ------------------------
@dataclass(frozen=True, slots=True, kw_only=True)
class EnergyBalance:
    """
    Declared energy balance of one collaborator model for one timestep.

    input_j == output_j + losses_j + stored_delta_j must hold within tolerance.
    """

    input_j: float = 0.0
    output_j: float = 0.0
    losses_j: float = 0.0
    stored_delta_j: float = 0.0

    @property
    def residual_j(self) -> float:
        return self.input_j - self.output_j - self.losses_j - self.stored_delta_j

    @property
    def scale_j(self) -> float:
        return max(abs(self.input_j), abs(self.output_j), abs(self.losses_j), abs(self.stored_delta_j))


@dataclass(frozen=True, slots=True, kw_only=True)
class FuelFlow:
    """Energy drawn from (demand) or fed into (generation) one energy supply."""

    supply: ComponentHandle
    end_use: EndUse
    demand_j: float = 0.0
    generation_j: float = 0.0
