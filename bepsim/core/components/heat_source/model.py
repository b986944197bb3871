from dataclasses import dataclass
from typing import Mapping, Tuple

from bepsim.core.components.heat_source.config import (
    BoilerConfig,
    HeatPumpConfig,
    HeatSourceConfigBase,
    InstantElectricConfig,
)
from bepsim.core.components.model_base import HeatSourceModel
from bepsim.core.components.outputs import ControlOutput, EnergyBalance
from bepsim.core.components.registry import register_model
from bepsim.core.timestep_data import ConditionSnapshot

COP_REFERENCE_TEMPERATURE = 7.0  # °C


@dataclass(frozen=True, slots=True, kw_only=True)
class HeatRequest:
    """Demands and current temperatures of the zones served, in a fixed order."""

    demands_j: tuple[float, ...]
    zone_temperatures: tuple[float, ...]


@dataclass(frozen=True, slots=True, kw_only=True)
class HeatSourceResult:
    delivered_j: tuple[float, ...]  # per served zone, same order as the request
    fuel_j: float
    balance: EnergyBalance


class HeatSourceModelBase(HeatSourceModel):
    """
    Splits capacity across served zones in proportion to their demand; an
    emitter further limits each zone's share by its temperature.
    """

    def __init__(self, config: HeatSourceConfigBase):
        self._config = config

    def initialize(self) -> None:
        return None

    def emitter_limit_j(self, zone_temperature: float, duration_s: float) -> float:
        emitter = self._config.emitter
        if emitter is None:
            return float("inf")
        delta = emitter.flow_temperature - zone_temperature
        if delta <= 0:
            return 0.0
        return emitter.coefficient_w * delta**emitter.exponent * duration_s

    def deliver(
        self,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[str, ControlOutput],
        request: HeatRequest,
    ) -> tuple[float, ...]:
        control = control_outputs.get("control")
        if control is not None and not control.on:
            return tuple(0.0 for _ in request.demands_j)

        duration_s = conditions.timestep.duration_s
        total = sum(request.demands_j)
        capacity_j = self._config.capacity_kw * 1000.0 * duration_s
        share = 1.0 if total <= capacity_j else capacity_j / total
        return tuple(
            min(demand * share, self.emitter_limit_j(temperature, duration_s))
            for demand, temperature in zip(request.demands_j, request.zone_temperatures)
        )

    def fuel_for(self, delivered_j: float, conditions: ConditionSnapshot) -> float:
        raise NotImplementedError

    def compute(
        self,
        state_in: None,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[str, ControlOutput],
        request: HeatRequest,
    ) -> Tuple[HeatSourceResult, None]:
        delivered = self.deliver(conditions, control_outputs, request)
        total = sum(delivered)
        fuel_j = self.fuel_for(total, conditions)
        return HeatSourceResult(
            delivered_j=delivered, fuel_j=fuel_j, balance=self.balance(total, fuel_j, conditions)
        ), None

    def balance(self, delivered_j: float, fuel_j: float, conditions: ConditionSnapshot) -> EnergyBalance:
        return EnergyBalance(input_j=fuel_j, output_j=delivered_j, losses_j=fuel_j - delivered_j)


@register_model(BoilerConfig)
class BoilerModel(HeatSourceModelBase):
    def fuel_for(self, delivered_j: float, conditions: ConditionSnapshot) -> float:
        return delivered_j / self._config.efficiency


@register_model(HeatPumpConfig)
class HeatPumpModel(HeatSourceModelBase):
    def cop(self, outdoor_temperature: float) -> float:
        cfg = self._config
        cop = cfg.cop_nominal + cfg.cop_slope_per_k * (outdoor_temperature - COP_REFERENCE_TEMPERATURE)
        return max(cop, 1.0)

    def fuel_for(self, delivered_j: float, conditions: ConditionSnapshot) -> float:
        return delivered_j / self.cop(conditions.outdoor_temperature)

    def balance(self, delivered_j: float, fuel_j: float, conditions: ConditionSnapshot) -> EnergyBalance:
        # Heat drawn from outside air counts as an input.
        return EnergyBalance(input_j=delivered_j, output_j=delivered_j)


@register_model(InstantElectricConfig)
class InstantElectricModel(HeatSourceModelBase):
    def fuel_for(self, delivered_j: float, conditions: ConditionSnapshot) -> float:
        return delivered_j
