"""Shared builders for small simulated buildings."""

from typing import Optional, Sequence

import pytest

from bepsim.core.clock import ClockConfig, SimulationClock
from bepsim.core.components import build_component_graph, build_models
from bepsim.core.components.control.config import SetpointTimeControlConfig
from bepsim.core.components.energy_supply.config import EnergySupplyConfig
from bepsim.core.components.graph import ComponentDefinition
from bepsim.core.components.heat_source.config import BoilerConfig
from bepsim.core.components.outputs import Fuel
from bepsim.core.components.zone.config import ZoneConfig
from bepsim.core.data.series import ConditionSeries
from bepsim.core.schedule import DailyScheduleConfig
from bepsim.sim.config import SimulationSettings
from bepsim.sim.orchestrator import TimestepOrchestrator


def setpoint_control(setpoint: Optional[float] = 20.0) -> SetpointTimeControlConfig:
    return SetpointTimeControlConfig(schedule=DailyScheduleConfig(weekday=[setpoint]))


def gas_supply(rate: float = 0.06) -> EnergySupplyConfig:
    return EnergySupplyConfig(fuel=Fuel.MAINS_GAS, import_rate=rate)


def boiler(capacity_kw: float = 10.0, efficiency: float = 0.9, **kwargs) -> BoilerConfig:
    params = dict(capacity_kw=capacity_kw, efficiency=efficiency, energy_supply="gas")
    params.update(kwargs)
    return BoilerConfig(**params)


def zone(initial_temperature: float = 20.0, **kwargs) -> ZoneConfig:
    params = dict(
        floor_area_m2=100.0,
        heat_loss_coefficient_w_per_k=200.0,
        heat_capacity_kj_per_k=10_000.0,
        initial_temperature=initial_temperature,
        setpoint_control="heating",
        heat_source="boiler",
    )
    params.update(kwargs)
    return ZoneConfig(**params)


def simple_building(**zone_kwargs) -> list[ComponentDefinition]:
    """One zone heated to 20 °C by a gas boiler."""
    return [
        ComponentDefinition("heating", setpoint_control()),
        ComponentDefinition("living_room", zone(**zone_kwargs)),
        ComponentDefinition("boiler", boiler()),
        ComponentDefinition("gas", gas_supply()),
    ]


def make_orchestrator(
    definitions: Sequence[ComponentDefinition],
    steps: int = 24,
    outdoor: float = 0.0,
    extra_series: Optional[dict] = None,
    settings: Optional[SimulationSettings] = None,
    start: str = "2023-01-02T00:00:00",
) -> TimestepOrchestrator:
    graph = build_component_graph(definitions)
    clock = SimulationClock(ClockConfig(start=start, steps=steps))
    series = {"outdoor_temperature": ConditionSeries.constant_value("outdoor_temperature", outdoor)}
    series.update(extra_series or {})
    conditions = clock.align(series, required=["outdoor_temperature"])
    return TimestepOrchestrator(
        graph=graph,
        models=build_models(graph),
        conditions=conditions,
        clock=clock,
        settings=settings,
    )


@pytest.fixture
def building() -> list[ComponentDefinition]:
    return simple_building()


@pytest.fixture
def orchestrator(building) -> TimestepOrchestrator:
    return make_orchestrator(building)
