from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from bepsim.core.components.model_base import ZoneModel
from bepsim.core.components.outputs import ControlOutput, EnergyBalance
from bepsim.core.components.registry import register_model
from bepsim.core.components.zone.config import ZoneConfig
from bepsim.core.timestep_data import ConditionSnapshot


@dataclass(frozen=True, slots=True)
class ZoneState:
    temperature: float  # °C


@dataclass(frozen=True, slots=True, kw_only=True)
class ZoneDemand:
    """Heat needed to bring the zone to its setpoint by the end of the step."""

    demand_j: float
    target_temperature: float  # °C reached if demand is met
    setpoint: Optional[float]  # None when heating is not required


@dataclass(frozen=True, slots=True, kw_only=True)
class ZoneResult:
    temperature: float  # °C at the end of the step
    heat_delivered_j: float
    balance: EnergyBalance


@register_model(ZoneConfig)
class RCZoneModel(ZoneModel):
    """
    Single-node zone integrated with implicit Euler:

        C (T - T_prev) / dt = H (T_out - T) + gains + Q / dt

    Solved for T given the delivered heat Q, or for Q given the target T.
    """

    def __init__(self, config: ZoneConfig):
        self._config = config
        self._capacity_j_per_k = config.heat_capacity_kj_per_k * 1000.0

    def initialize(self) -> ZoneState:
        return ZoneState(temperature=self._config.initial_temperature)

    def gains_j(self, conditions: ConditionSnapshot) -> float:
        cfg = self._config
        watts = (
            cfg.internal_gains_w_per_m2 * cfg.floor_area_m2
            + cfg.solar_aperture_m2 * conditions.solar_irradiance
        )
        return watts * conditions.timestep.duration_s

    def end_temperature(
        self, state_in: ZoneState, conditions: ConditionSnapshot, heat_j: float
    ) -> float:
        dt = conditions.timestep.duration_s
        c_dt = self._capacity_j_per_k / dt
        h = self._config.heat_loss_coefficient_w_per_k
        numerator = (
            c_dt * state_in.temperature
            + h * conditions.outdoor_temperature
            + (self.gains_j(conditions) + heat_j) / dt
        )
        return numerator / (c_dt + h)

    def heating_required(self, control_outputs: Mapping[str, ControlOutput]) -> Optional[float]:
        setpoint_output = control_outputs["setpoint_control"]
        if not setpoint_output.on or setpoint_output.setpoint is None:
            return None
        thermostat = control_outputs.get("thermostat")
        if thermostat is not None and not thermostat.on:
            return None
        return setpoint_output.setpoint

    def demand(
        self,
        state_in: ZoneState,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[str, ControlOutput],
    ) -> ZoneDemand:
        setpoint = self.heating_required(control_outputs)
        free_floating = self.end_temperature(state_in, conditions, 0.0)
        if setpoint is None or free_floating >= setpoint:
            return ZoneDemand(demand_j=0.0, target_temperature=free_floating, setpoint=setpoint)

        dt = conditions.timestep.duration_s
        h = self._config.heat_loss_coefficient_w_per_k
        demand_j = (
            self._capacity_j_per_k * (setpoint - state_in.temperature)
            + h * (setpoint - conditions.outdoor_temperature) * dt
            - self.gains_j(conditions)
        )
        return ZoneDemand(demand_j=max(demand_j, 0.0), target_temperature=setpoint, setpoint=setpoint)

    def compute(
        self,
        state_in: ZoneState,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[str, ControlOutput],
        heat_delivered_j: float,
    ) -> Tuple[ZoneResult, ZoneState]:
        temperature = self.end_temperature(state_in, conditions, heat_delivered_j)
        dt = conditions.timestep.duration_s
        h = self._config.heat_loss_coefficient_w_per_k
        balance = EnergyBalance(
            input_j=self.gains_j(conditions) + heat_delivered_j,
            losses_j=h * (temperature - conditions.outdoor_temperature) * dt,
            stored_delta_j=self._capacity_j_per_k * (temperature - state_in.temperature),
        )
        result = ZoneResult(
            temperature=temperature, heat_delivered_j=heat_delivered_j, balance=balance
        )
        return result, ZoneState(temperature=temperature)
