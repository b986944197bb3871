from dataclasses import dataclass
from typing import Mapping, Tuple

from bepsim.core.components.hot_water.config import StorageCylinderConfig
from bepsim.core.components.model_base import HotWaterSourceModel
from bepsim.core.components.outputs import ControlOutput, EnergyBalance
from bepsim.core.components.registry import register_model
from bepsim.core.timestep_data import ConditionSnapshot

WATER_HEAT_CAPACITY_J_PER_LITRE_K = 4184.0


@dataclass(frozen=True, slots=True)
class CylinderState:
    temperature: float  # °C, fully mixed


@dataclass(frozen=True, slots=True, kw_only=True)
class HotWaterDemand:
    volume_litres: float
    energy_j: float  # heat carried away by the draw-off at the start-of-step temperature


@dataclass(frozen=True, slots=True, kw_only=True)
class CylinderResult:
    volume_litres: float
    delivered_j: float
    heater_output_j: float
    fuel_j: float
    temperature: float
    balance: EnergyBalance


@register_model(StorageCylinderConfig)
class StorageCylinderModel(HotWaterSourceModel):
    """Fully mixed cylinder: draw-off, standing loss, then reheat towards the setpoint."""

    def __init__(self, config: StorageCylinderConfig):
        self._config = config
        self._capacity_j_per_k = config.volume_litres * WATER_HEAT_CAPACITY_J_PER_LITRE_K

    def initialize(self) -> CylinderState:
        cfg = self._config
        initial = cfg.setpoint if cfg.initial_temperature is None else cfg.initial_temperature
        return CylinderState(temperature=initial)

    def demand(
        self,
        state_in: CylinderState,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[str, ControlOutput],
    ) -> HotWaterDemand:
        ts = conditions.timestep
        litres_per_hour = self._config.draw_off.value_at(ts.start, ts.is_holiday) or 0.0
        volume = min(litres_per_hour * ts.duration_h, self._config.volume_litres)
        rise = max(state_in.temperature - conditions.cold_water_temperature, 0.0)
        return HotWaterDemand(
            volume_litres=volume,
            energy_j=volume * WATER_HEAT_CAPACITY_J_PER_LITRE_K * rise,
        )

    def compute(
        self,
        state_in: CylinderState,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[str, ControlOutput],
    ) -> Tuple[CylinderResult, CylinderState]:
        cfg = self._config
        dt = conditions.timestep.duration_s
        draw = self.demand(state_in, conditions, control_outputs)

        temperature = state_in.temperature - draw.energy_j / self._capacity_j_per_k
        standing_loss_j = max(temperature - cfg.ambient_temperature, 0.0) * cfg.heat_loss_w_per_k * dt
        temperature -= standing_loss_j / self._capacity_j_per_k

        heater_output_j = 0.0
        control = control_outputs.get("control")
        if control is None or control.on:
            needed = max(cfg.setpoint - temperature, 0.0) * self._capacity_j_per_k
            heater_output_j = min(needed, cfg.heater_power_kw * 1000.0 * dt)
        temperature += heater_output_j / self._capacity_j_per_k

        fuel_j = heater_output_j / cfg.efficiency
        balance = EnergyBalance(
            input_j=fuel_j,
            output_j=draw.energy_j,
            losses_j=standing_loss_j + (fuel_j - heater_output_j),
            stored_delta_j=(temperature - state_in.temperature) * self._capacity_j_per_k,
        )
        result = CylinderResult(
            volume_litres=draw.volume_litres,
            delivered_j=draw.energy_j,
            heater_output_j=heater_output_j,
            fuel_j=fuel_j,
            temperature=temperature,
            balance=balance,
        )
        return result, CylinderState(temperature=temperature)
