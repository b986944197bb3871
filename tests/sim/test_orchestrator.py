"""Tests for the timestep orchestrator."""

import threading
import warnings
from dataclasses import replace

import pytest

from bepsim.core.components import ComponentDefinition, ComponentKind
from bepsim.core.components.control.config import ThermostatControlConfig
from bepsim.core.components.energy_supply.config import EnergySupplyConfig
from bepsim.core.components.generator.config import PhotovoltaicConfig
from bepsim.core.components.heat_source.config import EmitterConfig
from bepsim.core.components.heat_source.model import HeatSourceResult
from bepsim.core.components.hot_water.config import StorageCylinderConfig
from bepsim.core.components.model_base import HeatSourceModel
from bepsim.core.components.outputs import EndUse, EnergyBalance, Fuel
from bepsim.core.data.series import ConditionSeries
from bepsim.core.schedule import DailyScheduleConfig
from bepsim.errors import ConvergenceError, ConvergenceWarning, InternalInvariantError
from bepsim.results.aggregator import ResultsAggregator
from bepsim.sim.config import SimulationSettings
from bepsim.sim.orchestrator import Stage
from bepsim.solver.convergence import ConvergenceConfig
from conftest import boiler, gas_supply, make_orchestrator, setpoint_control, simple_building, zone


class FakeHeatSource(HeatSourceModel):
    """Delivers a fixed multiple of demand with a configurable declared balance."""

    def __init__(self, factor=1.0, declare_fuel=True):
        self.factor = factor
        self.declare_fuel = declare_fuel

    def initialize(self):
        return None

    def compute(self, state_in, conditions, control_outputs, request):
        delivered = tuple(d * self.factor for d in request.demands_j)
        total = sum(delivered)
        fuel = total if self.declare_fuel else 0.0
        balance = EnergyBalance(input_j=fuel, output_j=total)
        return HeatSourceResult(delivered_j=delivered, fuel_j=total, balance=balance), None


def run_all(orchestrator):
    results = []
    while not orchestrator.is_done:
        results.append(orchestrator.step())
    return results


def test_steady_state_demand_and_fuel_are_constant(orchestrator):
    # Act
    results = run_all(orchestrator)

    # Assert
    room = orchestrator.graph.handle("living_room")
    gas = orchestrator.graph.handle("gas")
    demands = [r.zone_demands[room].demand_j for r in results]
    fuel = [r.meter_readings[gas].demand_j for r in results]
    assert len(results) == 24
    assert demands[1:] == pytest.approx([200.0 * 20.0 * 3600.0] * 23)
    assert fuel[1:] == pytest.approx([200.0 * 20.0 * 3600.0 / 0.9] * 23)
    assert all(r.iterations == 1 for r in results)


def test_energy_is_conserved_every_timestep():
    # Arrange: undersized boiler so part of the demand goes unmet
    definitions = [
        ComponentDefinition("heating", setpoint_control()),
        ComponentDefinition("living_room", zone(initial_temperature=15.0)),
        ComponentDefinition("boiler", boiler(capacity_kw=3.0)),
        ComponentDefinition("gas", gas_supply()),
    ]
    orchestrator = make_orchestrator(definitions, outdoor=-5.0)
    room = orchestrator.graph.handle("living_room")

    # Act
    results = run_all(orchestrator)

    # Assert
    for result in results:
        demand = result.zone_demands[room].demand_j
        delivered = result.zone_results[room].heat_delivered_j
        assert demand == pytest.approx(delivered + result.unmet_demand_j[room])
        assert result.zone_results[room].balance.residual_j == pytest.approx(0.0, abs=1e-3)
        assert delivered <= demand
    assert sum(r.unmet_demand_j[room] for r in results) > 0.0
    assert orchestrator.state.unmet_demand_j == pytest.approx(
        sum(r.unmet_demand_j[room] for r in results)
    )


def test_identical_inputs_give_identical_results(building):
    # Arrange
    first, second = make_orchestrator(building), make_orchestrator(building)
    agg_first, agg_second = ResultsAggregator(first.graph), ResultsAggregator(second.graph)

    # Act
    first.run(agg_first)
    second.run(agg_second)

    # Assert
    assert agg_first.intervals == agg_second.intervals
    assert agg_first.zones == agg_second.zones
    assert agg_first.supplies == agg_second.supplies
    assert agg_first.totals == agg_second.totals


def test_state_is_replaced_on_commit(orchestrator):
    # Arrange
    before = orchestrator.state

    # Act
    orchestrator.step()

    # Assert
    assert before.step == 0
    assert orchestrator.state.step == 1
    assert orchestrator.state is not before
    with pytest.raises(TypeError):
        orchestrator.state.zones[orchestrator.graph.handle("living_room")] = None


def test_step_after_end_raises(building):
    orchestrator = make_orchestrator(building, steps=1)
    orchestrator.step()
    with pytest.raises(RuntimeError):
        orchestrator.step()


def test_delivered_exceeding_demand_is_fatal(orchestrator):
    # Arrange
    orchestrator.models[orchestrator.graph.handle("boiler")] = FakeHeatSource(factor=2.0)

    # Act
    with pytest.raises(InternalInvariantError) as excinfo:
        orchestrator.step()

    # Assert
    error = excinfo.value
    assert error.timestep == 0
    assert error.stage == Stage.SUPPLY_RESOLUTION.value
    assert error.component == "living_room"
    assert error.state_dump["step"] == 0
    assert orchestrator.state.step == 0


def test_unbalanced_model_is_fatal(orchestrator):
    orchestrator.models[orchestrator.graph.handle("boiler")] = FakeHeatSource(declare_fuel=False)
    with pytest.raises(InternalInvariantError, match="not conserved") as excinfo:
        orchestrator.step()
    assert excinfo.value.component == "boiler"


def test_cancellation_keeps_committed_prefix(orchestrator):
    # Arrange
    cancel = threading.Event()

    class CancellingAggregator(ResultsAggregator):
        def consume(self, result):
            step = super().consume(result)
            if len(self) == 3:
                cancel.set()
            return step

    aggregator = CancellingAggregator(orchestrator.graph)

    # Act
    outcome = orchestrator.run(aggregator, cancel_event=cancel)

    # Assert
    assert outcome.cancelled
    assert not outcome.completed
    assert outcome.steps_completed == 3
    assert len(aggregator) == 3
    assert orchestrator.state.step == 3


def test_run_completes_without_cancellation(orchestrator):
    outcome = orchestrator.run(cancel_event=threading.Event())
    assert outcome.completed
    assert not outcome.cancelled
    assert outcome.final_state is orchestrator.state


def emitter_building():
    emitter = EmitterConfig(coefficient_w=100.0, exponent=1.0, flow_temperature=50.0)
    return [
        ComponentDefinition("heating", setpoint_control()),
        ComponentDefinition("living_room", zone()),
        ComponentDefinition("boiler", boiler(emitter=emitter)),
        ComponentDefinition("gas", gas_supply()),
    ]


def test_temperature_dependent_emitter_is_resolved_iteratively():
    # Arrange
    orchestrator = make_orchestrator(emitter_building(), steps=4)

    # Act
    with warnings.catch_warnings():
        warnings.simplefilter("error", ConvergenceWarning)
        results = run_all(orchestrator)

    # Assert
    assert all(r.converged for r in results)
    assert results[0].iterations > 1
    room = orchestrator.graph.handle("living_room")
    assert results[0].unmet_demand_j[room] > 0.0


def test_non_convergence_warns_and_run_continues():
    # Arrange
    settings = SimulationSettings(solver=ConvergenceConfig(max_iterations=1))
    orchestrator = make_orchestrator(emitter_building(), steps=4, settings=settings)
    aggregator = ResultsAggregator(orchestrator.graph)

    # Act
    with pytest.warns(ConvergenceWarning):
        outcome = orchestrator.run(aggregator)

    # Assert
    assert outcome.completed
    assert aggregator.totals.convergence_warnings == 4


def test_non_convergence_is_fatal_in_strict_mode():
    settings = SimulationSettings(solver=ConvergenceConfig(max_iterations=1, strict=True))
    orchestrator = make_orchestrator(emitter_building(), steps=4, settings=settings)
    with pytest.raises(ConvergenceError):
        orchestrator.run()


def test_thermostat_senses_previous_zone_temperature():
    # Arrange: zone starts below the band so the thermostat switches on
    definitions = simple_building(initial_temperature=19.0, thermostat="stat") + [
        ComponentDefinition(
            "stat",
            ThermostatControlConfig(
                setpoint_control="heating", zone="living_room", initially_on=False
            ),
        ),
    ]
    orchestrator = make_orchestrator(definitions, steps=3)
    stat = orchestrator.graph.handle("stat")
    room = orchestrator.graph.handle("living_room")

    # Act
    results = run_all(orchestrator)

    # Assert
    assert results[0].control_outputs[stat].on
    assert results[0].zone_results[room].temperature == pytest.approx(20.0)
    assert results[1].control_outputs[stat].on  # 20 °C sits inside the hysteresis band
    assert orchestrator.state.controls[stat].on


class OverdrawingCylinder:
    """Wraps a cylinder model and reports a draw larger than the tank."""

    def __init__(self, model):
        self.model = model

    def initialize(self):
        return self.model.initialize()

    def demand(self, state_in, conditions, control_outputs):
        return self.model.demand(state_in, conditions, control_outputs)

    def compute(self, state_in, conditions, control_outputs):
        result, state_out = self.model.compute(state_in, conditions, control_outputs)
        return replace(result, volume_litres=result.volume_litres + 1000.0), state_out


def test_draw_beyond_cylinder_volume_is_fatal():
    # Arrange
    definitions = [
        ComponentDefinition("grid", EnergySupplyConfig(fuel=Fuel.ELECTRICITY, import_rate=0.3)),
        ComponentDefinition(
            "cylinder",
            StorageCylinderConfig(
                volume_litres=200.0,
                draw_off=DailyScheduleConfig(weekday=[10.0]),
                energy_supply="grid",
            ),
        ),
    ]
    orchestrator = make_orchestrator(definitions, steps=2)
    handle = orchestrator.graph.handle("cylinder")
    orchestrator.models[handle] = OverdrawingCylinder(orchestrator.models[handle])

    # Act
    with pytest.raises(InternalInvariantError, match="cylinder volume") as excinfo:
        orchestrator.step()

    # Assert
    assert excinfo.value.component == "cylinder"
    assert excinfo.value.stage == Stage.SUPPLY_RESOLUTION.value


def test_hot_water_and_generation_are_metered_on_one_supply():
    # Arrange
    definitions = [
        ComponentDefinition("grid", EnergySupplyConfig(fuel=Fuel.ELECTRICITY, import_rate=0.3, export_rate=0.05)),
        ComponentDefinition(
            "cylinder",
            StorageCylinderConfig(
                volume_litres=200.0,
                draw_off=DailyScheduleConfig(weekday=[10.0]),
                energy_supply="grid",
            ),
        ),
        ComponentDefinition("pv", PhotovoltaicConfig(peak_power_kw=4.0, energy_supply="grid")),
    ]
    solar = {"solar_irradiance": ConditionSeries.constant_value("solar_irradiance", 800.0)}
    orchestrator = make_orchestrator(definitions, steps=2, extra_series=solar)
    grid = orchestrator.graph.handle("grid")

    # Act
    results = run_all(orchestrator)

    # Assert
    reading = results[1].meter_readings[grid]
    cylinder = results[1].hot_water_results[orchestrator.graph.handle("cylinder")]
    assert reading.demand_by_end_use_j[EndUse.WATER_HEATING] == pytest.approx(cylinder.fuel_j)
    assert reading.generation_j == pytest.approx(3200.0 * 0.96 * 3600.0)
    assert reading.import_j - reading.export_j == pytest.approx(
        reading.demand_j - reading.generation_j
    )
    assert orchestrator.graph.of_kind(ComponentKind.ZONE) == ()
    assert results[1].iterations == 0
