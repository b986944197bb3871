from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Sequence, Tuple

from bepsim.core.components.energy_supply.config import EnergySupplyConfig
from bepsim.core.components.model_base import EnergySupplyModel
from bepsim.core.components.outputs import J_PER_KWH, EndUse, Fuel, FuelFlow
from bepsim.core.components.registry import register_model
from bepsim.core.timestep_data import ConditionSnapshot

SECONDS_PER_DAY = 86400.0


@dataclass(frozen=True, slots=True, kw_only=True)
class MeterState:
    """Cumulative totals since the start of the run."""

    demand_j: float = 0.0
    generation_j: float = 0.0
    import_j: float = 0.0
    export_j: float = 0.0
    cost: float = 0.0


@dataclass(frozen=True, slots=True, kw_only=True)
class MeterReading:
    """What one energy supply metered during one timestep."""

    fuel: Fuel
    demand_by_end_use_j: Mapping[EndUse, float]
    generation_j: float
    import_j: float
    export_j: float
    import_rate: float
    cost: float

    @property
    def demand_j(self) -> float:
        return sum(self.demand_by_end_use_j.values())


@register_model(EnergySupplyConfig)
class EnergySupplyMeter(EnergySupplyModel):
    """
    Nets generation against demand within the timestep; only the remainder is
    imported or exported. Cost is a projection of metered energy and the tariff.
    """

    def __init__(self, config: EnergySupplyConfig):
        self._config = config

    @property
    def fuel(self) -> Fuel:
        return self._config.fuel

    def initialize(self) -> MeterState:
        return MeterState()

    def import_rate(self, conditions: ConditionSnapshot) -> float:
        if self._config.import_rate_series is not None:
            return conditions[self._config.import_rate_series]
        return self._config.import_rate or 0.0

    def compute(
        self,
        state_in: MeterState,
        conditions: ConditionSnapshot,
        flows: Sequence[FuelFlow],
    ) -> Tuple[MeterReading, MeterState]:
        cfg = self._config
        by_end_use: dict[EndUse, float] = {}
        generation_j = 0.0
        for flow in flows:
            if flow.demand_j:
                by_end_use[flow.end_use] = by_end_use.get(flow.end_use, 0.0) + flow.demand_j
            generation_j += flow.generation_j
        demand_j = sum(by_end_use.values())

        import_j = max(demand_j - generation_j, 0.0)
        export_j = max(generation_j - demand_j, 0.0)
        rate = self.import_rate(conditions)
        cost = (
            import_j / J_PER_KWH * rate
            - export_j / J_PER_KWH * cfg.export_rate
            + cfg.standing_charge_per_day * conditions.timestep.duration_s / SECONDS_PER_DAY
        )

        reading = MeterReading(
            fuel=cfg.fuel,
            demand_by_end_use_j=MappingProxyType(by_end_use),
            generation_j=generation_j,
            import_j=import_j,
            export_j=export_j,
            import_rate=rate,
            cost=cost,
        )
        state_out = MeterState(
            demand_j=state_in.demand_j + demand_j,
            generation_j=state_in.generation_j + generation_j,
            import_j=state_in.import_j + import_j,
            export_j=state_in.export_j + export_j,
            cost=state_in.cost + cost,
        )
        return reading, state_out
