from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from bepsim.core.components.control.model import ThermostatState
from bepsim.core.components.energy_supply.model import MeterReading, MeterState
from bepsim.core.components.generator.model import GeneratorResult
from bepsim.core.components.handles import ComponentHandle, ComponentKind
from bepsim.core.components.heat_source.model import HeatSourceResult
from bepsim.core.components.hot_water.model import CylinderResult, CylinderState, HotWaterDemand
from bepsim.core.components.outputs import ControlOutput
from bepsim.core.components.zone.model import ZoneDemand, ZoneResult, ZoneState
from bepsim.core.timestep_data import ConditionSnapshot, Timestep


def _frozen(mapping: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True, slots=True)
class SimulationState:
    """
    Committed state of every stateful component at a timestep boundary.

    `step` is the index of the next timestep to simulate. A run holds exactly
    one live instance, which the orchestrator replaces as a whole on commit.
    """

    step: int
    controls: Mapping[ComponentHandle, Optional[ThermostatState]] = field(default_factory=dict)
    zones: Mapping[ComponentHandle, ZoneState] = field(default_factory=dict)
    hot_water_sources: Mapping[ComponentHandle, CylinderState] = field(default_factory=dict)
    meters: Mapping[ComponentHandle, MeterState] = field(default_factory=dict)
    unmet_demand_j: float = 0.0

    def __post_init__(self):
        for name in ("controls", "zones", "hot_water_sources", "meters"):
            object.__setattr__(self, name, _frozen(getattr(self, name)))

    def component_state(self, handle: ComponentHandle) -> Any:
        if handle.kind == ComponentKind.CONTROL:
            return self.controls.get(handle)
        if handle.kind == ComponentKind.ZONE:
            return self.zones[handle]
        if handle.kind == ComponentKind.HOT_WATER_SOURCE:
            return self.hot_water_sources[handle]
        if handle.kind == ComponentKind.ENERGY_SUPPLY:
            return self.meters[handle]
        return None

    def dump(self) -> Dict[str, Any]:
        """Plain, label-keyed copy for diagnostics."""
        sections = {
            "controls": self.controls,
            "zones": self.zones,
            "hot_water_sources": self.hot_water_sources,
            "meters": self.meters,
        }
        dump: Dict[str, Any] = {"step": self.step, "unmet_demand_j": self.unmet_demand_j}
        for section, states in sections.items():
            dump[section] = {handle.label: repr(state) for handle, state in states.items()}
        return dump


@dataclass(frozen=True, slots=True, kw_only=True)
class TimestepResult:
    """Everything computed for one committed timestep."""

    timestep: Timestep
    conditions: ConditionSnapshot
    control_outputs: Mapping[ComponentHandle, ControlOutput]
    zone_demands: Mapping[ComponentHandle, ZoneDemand]
    zone_results: Mapping[ComponentHandle, ZoneResult]
    unmet_demand_j: Mapping[ComponentHandle, float]
    hot_water_demands: Mapping[ComponentHandle, HotWaterDemand]
    hot_water_results: Mapping[ComponentHandle, CylinderResult]
    heat_source_results: Mapping[ComponentHandle, HeatSourceResult]
    generator_results: Mapping[ComponentHandle, GeneratorResult]
    meter_readings: Mapping[ComponentHandle, MeterReading]
    iterations: int
    residual: float
    converged: bool

    def __post_init__(self):
        for name in (
            "control_outputs",
            "zone_demands",
            "zone_results",
            "unmet_demand_j",
            "hot_water_demands",
            "hot_water_results",
            "heat_source_results",
            "generator_results",
            "meter_readings",
        ):
            object.__setattr__(self, name, _frozen(getattr(self, name)))
