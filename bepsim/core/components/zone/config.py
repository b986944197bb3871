from dataclasses import dataclass
from typing import ClassVar, Literal, Optional

from bepsim.core.components.config_base import BaseComponentConfig
from bepsim.core.components.handles import ComponentKind, Reference
from bepsim.core.data.series import OUTDOOR_TEMPERATURE, SOLAR_IRRADIANCE


@dataclass(frozen=True, slots=True, kw_only=True)
class ZoneConfig(BaseComponentConfig):
    """Single-node thermal zone (one resistance, one capacitance)."""

    kind: ClassVar[ComponentKind] = ComponentKind.ZONE

    floor_area_m2: float
    heat_loss_coefficient_w_per_k: float
    heat_capacity_kj_per_k: float
    internal_gains_w_per_m2: float = 0.0
    solar_aperture_m2: float = 0.0
    initial_temperature: float = 20.0
    comfort_band_k: float = 1.0

    setpoint_control: str
    thermostat: Optional[str] = None
    heat_source: Optional[str] = None

    type: Literal["zone"] = "zone"

    def references(self) -> list[Reference]:
        refs = [Reference("setpoint_control", self.setpoint_control, ComponentKind.CONTROL)]
        if self.thermostat is not None:
            refs.append(Reference("thermostat", self.thermostat, ComponentKind.CONTROL))
        if self.heat_source is not None:
            refs.append(Reference("heat_source", self.heat_source, ComponentKind.HEAT_SOURCE))
        return refs

    def validate(self) -> list[str]:
        problems = []
        if self.floor_area_m2 <= 0:
            problems.append(f"floor_area_m2 must be positive, got {self.floor_area_m2}")
        if self.heat_loss_coefficient_w_per_k <= 0:
            problems.append(
                f"heat_loss_coefficient_w_per_k must be positive, got {self.heat_loss_coefficient_w_per_k}"
            )
        if self.heat_capacity_kj_per_k <= 0:
            problems.append(
                f"heat_capacity_kj_per_k must be positive, got {self.heat_capacity_kj_per_k}"
            )
        if self.internal_gains_w_per_m2 < 0:
            problems.append("internal_gains_w_per_m2 must be non-negative")
        if self.solar_aperture_m2 < 0:
            problems.append("solar_aperture_m2 must be non-negative")
        if self.comfort_band_k < 0:
            problems.append("comfort_band_k must be non-negative")
        return problems

    def required_series(self) -> list[str]:
        if self.solar_aperture_m2 > 0:
            return [OUTDOOR_TEMPERATURE, SOLAR_IRRADIANCE]
        return [OUTDOOR_TEMPERATURE]
