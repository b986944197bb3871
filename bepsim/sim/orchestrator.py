"""Drives the simulation one timestep at a time through a fixed sequence of stages."""

import logging
import math
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from bepsim.core.clock import SimulationClock
from bepsim.core.components.graph import ComponentGraph
from bepsim.core.components.handles import ComponentHandle, ComponentKind
from bepsim.core.components.heat_source.model import HeatRequest, HeatSourceResult
from bepsim.core.components.model_base import ModelBase
from bepsim.core.components.outputs import ControlOutput, EndUse, EnergyBalance, FuelFlow
from bepsim.core.components.zone.model import ZoneResult
from bepsim.core.data.series import ExternalConditions
from bepsim.core.state import SimulationState, TimestepResult
from bepsim.core.timestep_data import ConditionSnapshot
from bepsim.errors import InternalInvariantError
from bepsim.sim.config import SimulationSettings
from bepsim.solver.convergence import FixedPointSolver

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    CONDITION_SNAPSHOT = "condition_snapshot"
    CONTROL_EVALUATION = "control_evaluation"
    DEMAND_COMPUTATION = "demand_computation"
    SUPPLY_RESOLUTION = "supply_resolution"
    METERING = "metering"
    COMMIT = "commit"


class ResultConsumer(Protocol):
    def consume(self, result: TimestepResult) -> None: ...


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """How a run ended. `steps_completed` counts committed timesteps."""

    steps_completed: int
    total_steps: int
    cancelled: bool
    final_state: SimulationState

    @property
    def completed(self) -> bool:
        return self.steps_completed == self.total_steps


class TimestepOrchestrator:
    """
    Runs the stage pipeline for every timestep of the horizon.

    Each step reads only the committed state of the previous step and
    produces a complete new state, which replaces the old one at commit. Any
    failure before commit leaves the committed state untouched.
    """

    def __init__(
        self,
        graph: ComponentGraph,
        models: Mapping[ComponentHandle, ModelBase],
        conditions: ExternalConditions,
        clock: SimulationClock,
        settings: Optional[SimulationSettings] = None,
    ):
        if len(conditions) != len(clock):
            raise ValueError(
                f"Conditions cover {len(conditions)} timesteps but the clock has {len(clock)}."
            )
        self.graph = graph
        self.models = models
        self.conditions = conditions
        self.clock = clock
        self.settings = settings or SimulationSettings()
        self.solver = FixedPointSolver(self.settings.solver)

        self._controls = graph.of_kind(ComponentKind.CONTROL)
        self._zones = graph.of_kind(ComponentKind.ZONE)
        self._hot_water = graph.of_kind(ComponentKind.HOT_WATER_SOURCE)
        self._heat_sources = graph.of_kind(ComponentKind.HEAT_SOURCE)
        self._generators = graph.of_kind(ComponentKind.GENERATOR)
        self._supplies = graph.of_kind(ComponentKind.ENERGY_SUPPLY)
        self._served = {
            h: graph.referrers(h, ComponentKind.ZONE, "heat_source") for h in self._heat_sources
        }

        self._state = self.initial_state()

    # ------------------------
    # State
    # ------------------------
    def initial_state(self) -> SimulationState:
        return SimulationState(
            step=0,
            controls={h: self.models[h].initialize() for h in self._controls},
            zones={h: self.models[h].initialize() for h in self._zones},
            hot_water_sources={h: self.models[h].initialize() for h in self._hot_water},
            meters={h: self.models[h].initialize() for h in self._supplies},
        )

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def is_done(self) -> bool:
        return self._state.step >= len(self.clock)

    def reset(self) -> SimulationState:
        self._state = self.initial_state()
        return self._state

    # ------------------------
    # Running
    # ------------------------
    def run(
        self,
        aggregator: Optional[ResultConsumer] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> RunOutcome:
        """
        Step through the remaining horizon.

        The cancel event is checked between timesteps only; a cancelled run
        keeps every timestep committed so far.
        """
        total = len(self.clock)
        logger.info("Starting run of %d timesteps from step %d", total, self._state.step)
        while not self.is_done:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Run cancelled after %d of %d timesteps", self._state.step, total)
                return RunOutcome(self._state.step, total, True, self._state)
            result = self.step()
            if aggregator is not None:
                aggregator.consume(result)
        logger.info("Run finished after %d timesteps", total)
        return RunOutcome(self._state.step, total, False, self._state)

    def step(self) -> TimestepResult:
        """Simulate and commit the next timestep."""
        if self.is_done:
            raise RuntimeError("Simulation is finished. Call reset() to start a new run.")
        state = self._state
        index = state.step

        # CONDITION_SNAPSHOT
        conditions = self.conditions.snapshot(index)

        # CONTROL_EVALUATION
        control_outputs: Dict[ComponentHandle, ControlOutput] = {}
        control_states: Dict[ComponentHandle, Any] = {}
        for handle in self._controls:
            sensed = {
                field: state.component_state(target).temperature
                for field, target in self.graph.sensing_refs(handle).items()
            }
            output, control_states[handle] = self.models[handle].compute(
                state.controls[handle],
                conditions,
                self._controls_for(handle, control_outputs),
                sensed,
            )
            control_outputs[handle] = output

        # DEMAND_COMPUTATION
        zone_demands = {
            h: self.models[h].demand(state.zones[h], conditions, self._controls_for(h, control_outputs))
            for h in self._zones
        }
        hot_water_demands = {
            h: self.models[h].demand(
                state.hot_water_sources[h], conditions, self._controls_for(h, control_outputs)
            )
            for h in self._hot_water
        }
        for h, demand in zone_demands.items():
            if demand.demand_j < 0:
                self._fail(
                    "Negative space heating demand", index, Stage.DEMAND_COMPUTATION, h,
                    demand_j=demand.demand_j,
                )

        # SUPPLY_RESOLUTION
        stage = Stage.SUPPLY_RESOLUTION
        temperatures, iterations, residual, converged = self._resolve_zone_temperatures(
            state, conditions, control_outputs, zone_demands
        )
        source_results = self._dispatch_heat(
            conditions, control_outputs, zone_demands, dict(zip(self._zones, temperatures))
        )
        delivered = self._delivered_by_zone(source_results)

        zone_results: Dict[ComponentHandle, ZoneResult] = {}
        zone_states = {}
        unmet: Dict[ComponentHandle, float] = {}
        for h in self._zones:
            demand_j = zone_demands[h].demand_j
            delivered_j = delivered.get(h, 0.0)
            tol = self._tolerance(demand_j)
            if delivered_j < -tol:
                self._fail("Negative delivered energy", index, stage, h, delivered_j=delivered_j)
            if delivered_j > demand_j + tol:
                self._fail(
                    "Delivered energy exceeds demand", index, stage, h,
                    delivered_j=delivered_j, demand_j=demand_j,
                )
            delivered_j = min(max(delivered_j, 0.0), demand_j)
            unmet[h] = demand_j - delivered_j
            zone_results[h], zone_states[h] = self.models[h].compute(
                state.zones[h], conditions, self._controls_for(h, control_outputs), delivered_j
            )
            self._check_balance(zone_results[h].balance, index, stage, h)

        for h, result in source_results.items():
            if any(d < -self._tolerance(0.0) for d in result.delivered_j):
                self._fail("Negative delivered energy", index, stage, h)
            self._check_balance(result.balance, index, stage, h)

        hot_water_results = {}
        hot_water_states = {}
        for h in self._hot_water:
            hot_water_results[h], hot_water_states[h] = self.models[h].compute(
                state.hot_water_sources[h], conditions, self._controls_for(h, control_outputs)
            )
            result = hot_water_results[h]
            cylinder = self.graph.config(h)
            if not 0.0 <= result.volume_litres <= cylinder.volume_litres:
                self._fail(
                    "Drawn hot water volume outside the cylinder volume", index, stage, h,
                    volume_litres=result.volume_litres, cylinder_litres=cylinder.volume_litres,
                )
            heater_limit_j = cylinder.heater_power_kw * 1000.0 * conditions.timestep.duration_s
            tol = self._tolerance(heater_limit_j)
            if not -tol <= result.heater_output_j <= heater_limit_j + tol:
                self._fail(
                    "Cylinder heater output outside its rated power", index, stage, h,
                    heater_output_j=result.heater_output_j, heater_limit_j=heater_limit_j,
                )
            self._check_balance(result.balance, index, stage, h)

        generator_results = {
            h: self.models[h].compute(None, conditions, self._controls_for(h, control_outputs))[0]
            for h in self._generators
        }

        # METERING
        flows = self._fuel_flows(source_results, hot_water_results, generator_results)
        meter_readings = {}
        meter_states = {}
        for h in self._supplies:
            meter_readings[h], meter_states[h] = self.models[h].compute(
                state.meters[h], conditions, flows.get(h, [])
            )
            reading = meter_readings[h]
            net = reading.import_j - reading.export_j
            expected = reading.demand_j - reading.generation_j
            if not math.isclose(net, expected, rel_tol=1e-9, abs_tol=self.settings.invariants.abs_tol_j):
                self._fail(
                    "Metered import and export do not match demand and generation",
                    index, Stage.METERING, h, net_j=net, expected_j=expected,
                )

        # COMMIT
        result = TimestepResult(
            timestep=conditions.timestep,
            conditions=conditions,
            control_outputs=control_outputs,
            zone_demands=zone_demands,
            zone_results=zone_results,
            unmet_demand_j=unmet,
            hot_water_demands=hot_water_demands,
            hot_water_results=hot_water_results,
            heat_source_results=source_results,
            generator_results=generator_results,
            meter_readings=meter_readings,
            iterations=iterations,
            residual=residual,
            converged=converged,
        )
        self._state = SimulationState(
            step=index + 1,
            controls=control_states,
            zones=zone_states,
            hot_water_sources=hot_water_states,
            meters=meter_states,
            unmet_demand_j=state.unmet_demand_j + sum(unmet.values()),
        )
        logger.debug(
            "Committed timestep %d (%s): %d iteration(s), unmet %.1f J",
            index, conditions.timestep.start.isoformat(), iterations, sum(unmet.values()),
        )
        return result

    # ------------------------
    # Stage helpers
    # ------------------------
    def _controls_for(
        self, handle: ComponentHandle, outputs: Mapping[ComponentHandle, ControlOutput]
    ) -> Dict[str, ControlOutput]:
        return {field: outputs[target] for field, target in self.graph.control_refs(handle).items()}

    def _dispatch_heat(
        self,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[ComponentHandle, ControlOutput],
        zone_demands: Mapping[ComponentHandle, Any],
        temperatures: Mapping[ComponentHandle, float],
    ) -> Dict[ComponentHandle, HeatSourceResult]:
        results = {}
        for h in self._heat_sources:
            served = self._served[h]
            request = HeatRequest(
                demands_j=tuple(zone_demands[z].demand_j for z in served),
                zone_temperatures=tuple(temperatures[z] for z in served),
            )
            results[h], _ = self.models[h].compute(
                None, conditions, self._controls_for(h, control_outputs), request
            )
        return results

    def _delivered_by_zone(
        self, source_results: Mapping[ComponentHandle, HeatSourceResult]
    ) -> Dict[ComponentHandle, float]:
        delivered = {}
        for h, result in source_results.items():
            for zone, amount in zip(self._served[h], result.delivered_j):
                delivered[zone] = amount
        return delivered

    def _resolve_zone_temperatures(
        self,
        state: SimulationState,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[ComponentHandle, ControlOutput],
        zone_demands: Mapping[ComponentHandle, Any],
    ) -> Tuple[Tuple[float, ...], int, float, bool]:
        """
        Find end-of-step zone temperatures consistent with the heat the
        sources deliver at those temperatures.
        """
        if not self._zones:
            return (), 0, 0.0, True

        def update(temperatures: Tuple[float, ...]) -> Tuple[float, ...]:
            results = self._dispatch_heat(
                conditions, control_outputs, zone_demands, dict(zip(self._zones, temperatures))
            )
            delivered = self._delivered_by_zone(results)
            return tuple(
                self.models[z].end_temperature(state.zones[z], conditions, delivered.get(z, 0.0))
                for z in self._zones
            )

        initial = tuple(zone_demands[z].target_temperature for z in self._zones)
        solved = self.solver.solve(update, initial, timestep=state.step)
        return solved.value, solved.iterations, solved.residual, solved.converged

    def _fuel_flows(
        self, source_results, hot_water_results, generator_results
    ) -> Dict[ComponentHandle, List[FuelFlow]]:
        flows: Dict[ComponentHandle, List[FuelFlow]] = {}

        def add(handle: ComponentHandle, end_use: EndUse, demand_j=0.0, generation_j=0.0):
            supply = self.graph.ref(handle, "energy_supply")
            flows.setdefault(supply, []).append(
                FuelFlow(supply=supply, end_use=end_use, demand_j=demand_j, generation_j=generation_j)
            )

        for h, result in source_results.items():
            add(h, EndUse.SPACE_HEATING, demand_j=result.fuel_j)
        for h, result in hot_water_results.items():
            add(h, EndUse.WATER_HEATING, demand_j=result.fuel_j)
        for h, result in generator_results.items():
            add(h, EndUse.GENERATION, generation_j=result.generation_j)
        return flows

    # ------------------------
    # Invariants
    # ------------------------
    def _tolerance(self, scale_j: float) -> float:
        inv = self.settings.invariants
        return max(inv.rel_tol * abs(scale_j), inv.abs_tol_j)

    def _check_balance(
        self, balance: EnergyBalance, index: int, stage: Stage, handle: ComponentHandle
    ) -> None:
        if abs(balance.residual_j) > self._tolerance(balance.scale_j):
            self._fail(
                "Energy balance not conserved", index, stage, handle,
                input_j=balance.input_j,
                output_j=balance.output_j,
                losses_j=balance.losses_j,
                stored_delta_j=balance.stored_delta_j,
                residual_j=balance.residual_j,
            )

    def _fail(
        self, message: str, index: int, stage: Stage, handle: ComponentHandle, **details: float
    ) -> None:
        dump = self._state.dump()
        dump["details"] = details
        logger.error("%s at timestep %d, stage %s, component %r", message, index, stage.value, handle)
        raise InternalInvariantError(
            message, timestep=index, stage=stage.value, component=handle.label, state_dump=dump
        )
