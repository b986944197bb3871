from dataclasses import dataclass
from typing import ClassVar, Literal, Optional

from bepsim.core.components.config_base import BaseComponentConfig
from bepsim.core.components.handles import ComponentKind, Reference
from bepsim.core.schedule import DailyScheduleConfig


@dataclass(frozen=True, slots=True, kw_only=True)
class StorageCylinderConfig(BaseComponentConfig):
    """
    Hot water cylinder with an immersed heater.

    `draw_off` gives litres drawn per hour for each slot of the day; the drawn
    volume is replaced by mains cold water.
    """

    kind: ClassVar[ComponentKind] = ComponentKind.HOT_WATER_SOURCE

    volume_litres: float
    setpoint: float = 55.0  # °C
    heater_power_kw: float = 3.0
    efficiency: float = 1.0
    heat_loss_w_per_k: float = 1.5
    ambient_temperature: float = 20.0  # °C, surroundings of the cylinder
    initial_temperature: Optional[float] = None  # defaults to setpoint
    draw_off: DailyScheduleConfig

    energy_supply: str
    control: Optional[str] = None

    type: Literal["storage_cylinder"] = "storage_cylinder"

    def references(self) -> list[Reference]:
        refs = [Reference("energy_supply", self.energy_supply, ComponentKind.ENERGY_SUPPLY)]
        if self.control is not None:
            refs.append(Reference("control", self.control, ComponentKind.CONTROL))
        return refs

    def validate(self) -> list[str]:
        problems = self.draw_off.problems()
        if self.volume_litres <= 0:
            problems.append(f"volume_litres must be positive, got {self.volume_litres}")
        if self.heater_power_kw < 0:
            problems.append(f"heater_power_kw must be non-negative, got {self.heater_power_kw}")
        if not 0 < self.efficiency <= 1:
            problems.append(f"efficiency must be in (0, 1], got {self.efficiency}")
        if self.heat_loss_w_per_k < 0:
            problems.append("heat_loss_w_per_k must be non-negative")
        profiles = [self.draw_off.weekday] + ([self.draw_off.weekend] if self.draw_off.weekend else [])
        if any(v is not None and v < 0 for profile in profiles for v in profile):
            problems.append("draw_off litres must be non-negative")
        return problems
