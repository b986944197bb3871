import logging
import math
from typing import Dict, List, Optional, Sequence

from bepsim.core.components.graph import ComponentGraph
from bepsim.core.components.handles import ComponentKind
from bepsim.core.components.outputs import J_PER_KWH, EndUse, Fuel
from bepsim.core.state import TimestepResult
from bepsim.results.records import (
    IntervalRecord,
    RunSummary,
    StepRecords,
    SupplyIntervalRecord,
    ZoneIntervalRecord,
)

logger = logging.getLogger(__name__)

UNMET_THRESHOLD_J = 1.0


class _Totals:
    """Left fold of step records into summary quantities."""

    def __init__(self, zone_names: Sequence[str]):
        self.steps = 0
        self.hours = 0.0
        self.first_index = -1
        self.last_index = -1
        self.energy_j: Dict[Fuel, Dict[EndUse, float]] = {}
        self.import_j: Dict[Fuel, float] = {}
        self.export_j: Dict[Fuel, float] = {}
        self.cost_by_supply: Dict[str, float] = {}
        self.total_cost = 0.0
        self.demand_j = 0.0
        self.delivered_j = 0.0
        self.unmet_j = 0.0
        self.water_heating_j = 0.0
        self.generation_j = 0.0
        self.peak_demand_w = 0.0
        self.peak_import_w: Dict[Fuel, float] = {}
        self.hours_outside_comfort = {name: 0.0 for name in zone_names}
        self.unmet_hours = 0.0
        self.convergence_warnings = 0
        self.max_iterations = 0

    def _add_energy(self, fuel: Fuel, end_use: EndUse, amount_j: float) -> None:
        by_end_use = self.energy_j.setdefault(fuel, {})
        by_end_use[end_use] = by_end_use.get(end_use, 0.0) + amount_j

    def add(self, step: StepRecords) -> None:
        interval = step.interval
        duration_s = interval.duration_h * 3600.0
        if self.steps == 0:
            self.first_index = interval.index
        self.last_index = interval.index
        self.steps += 1
        self.hours += interval.duration_h

        self.demand_j += interval.space_heating_demand_j
        self.delivered_j += interval.space_heating_delivered_j
        self.unmet_j += interval.unmet_demand_j
        self.water_heating_j += interval.water_heating_delivered_j
        self.generation_j += interval.generation_j
        self.total_cost += interval.cost
        self.peak_demand_w = max(self.peak_demand_w, interval.space_heating_demand_j / duration_s)
        self._add_energy(Fuel.UNMET_DEMAND, EndUse.UNMET_SPACE_HEATING, interval.unmet_demand_j)
        if interval.unmet_demand_j > UNMET_THRESHOLD_J:
            self.unmet_hours += interval.duration_h
        if not interval.converged:
            self.convergence_warnings += 1
        self.max_iterations = max(self.max_iterations, interval.iterations)

        import_this_step: Dict[Fuel, float] = {}
        for record in step.supplies:
            self._add_energy(record.fuel, EndUse.SPACE_HEATING, record.space_heating_j)
            self._add_energy(record.fuel, EndUse.WATER_HEATING, record.water_heating_j)
            self._add_energy(record.fuel, EndUse.GENERATION, record.generation_j)
            self.import_j[record.fuel] = self.import_j.get(record.fuel, 0.0) + record.import_j
            self.export_j[record.fuel] = self.export_j.get(record.fuel, 0.0) + record.export_j
            self.cost_by_supply[record.supply] = self.cost_by_supply.get(record.supply, 0.0) + record.cost
            import_this_step[record.fuel] = import_this_step.get(record.fuel, 0.0) + record.import_j
        for fuel, amount_j in import_this_step.items():
            self.peak_import_w[fuel] = max(self.peak_import_w.get(fuel, 0.0), amount_j / duration_s)

        for record in step.zones:
            if record.outside_comfort:
                self.hours_outside_comfort[record.zone] += record.duration_h

    def summary(self) -> RunSummary:
        return RunSummary(
            steps=self.steps,
            hours=self.hours,
            first_index=self.first_index,
            last_index=self.last_index,
            energy_kwh={
                fuel.value: {use.value: j / J_PER_KWH for use, j in by_end_use.items()}
                for fuel, by_end_use in self.energy_j.items()
            },
            import_kwh={fuel.value: j / J_PER_KWH for fuel, j in self.import_j.items()},
            export_kwh={fuel.value: j / J_PER_KWH for fuel, j in self.export_j.items()},
            cost_by_supply=dict(self.cost_by_supply),
            total_cost=self.total_cost,
            space_heating_demand_kwh=self.demand_j / J_PER_KWH,
            space_heating_delivered_kwh=self.delivered_j / J_PER_KWH,
            unmet_demand_kwh=self.unmet_j / J_PER_KWH,
            water_heating_delivered_kwh=self.water_heating_j / J_PER_KWH,
            generation_kwh=self.generation_j / J_PER_KWH,
            peak_demand_w=self.peak_demand_w,
            peak_import_w={fuel.value: w for fuel, w in self.peak_import_w.items()},
            hours_outside_comfort=dict(self.hours_outside_comfort),
            unmet_hours=self.unmet_hours,
            convergence_warnings=self.convergence_warnings,
            max_iterations=self.max_iterations,
        )


class ResultsAggregator:
    """
    Turns committed timestep results into typed records and running totals.

    Records are kept so any sub-range of the horizon can be summarized later;
    `summarize()` over the whole range folds the same records in the same
    order as the running totals and so returns identical values.
    """

    def __init__(self, graph: ComponentGraph):
        self.graph = graph
        self._zones = graph.of_kind(ComponentKind.ZONE)
        self._supplies = graph.of_kind(ComponentKind.ENERGY_SUPPLY)
        self._zone_names = [h.label for h in self._zones]
        self._steps: List[StepRecords] = []
        self._running = _Totals(self._zone_names)

    def __len__(self) -> int:
        return len(self._steps)

    def consume(self, result: TimestepResult) -> StepRecords:
        ts = result.timestep
        zone_records = tuple(self._zone_record(result, h) for h in self._zones)
        supply_records = tuple(self._supply_record(result, h) for h in self._supplies)
        readings = result.meter_readings.values()

        interval = IntervalRecord(
            index=ts.index,
            start=ts.start,
            duration_h=ts.duration_h,
            outdoor_temperature=result.conditions.outdoor_temperature,
            solar_irradiance=result.conditions.solar_irradiance,
            space_heating_demand_j=sum(r.demand_j for r in zone_records),
            space_heating_delivered_j=sum(r.delivered_j for r in zone_records),
            unmet_demand_j=sum(r.unmet_j for r in zone_records),
            water_heating_delivered_j=sum(r.delivered_j for r in result.hot_water_results.values()),
            fuel_demand_j=sum(r.demand_j for r in readings),
            generation_j=sum(r.generation_j for r in readings),
            import_j=sum(r.import_j for r in readings),
            export_j=sum(r.export_j for r in readings),
            cost=sum(r.cost for r in readings),
            iterations=result.iterations,
            converged=result.converged,
        )
        step = StepRecords(interval=interval, zones=zone_records, supplies=supply_records)
        self._steps.append(step)
        self._running.add(step)
        if not result.converged:
            logger.debug("Timestep %d committed without convergence", ts.index)
        return step

    def _zone_record(self, result: TimestepResult, handle) -> ZoneIntervalRecord:
        ts = result.timestep
        demand = result.zone_demands[handle]
        zone = result.zone_results[handle]
        required = demand.setpoint is not None
        band = self.graph.config(handle).comfort_band_k
        return ZoneIntervalRecord(
            index=ts.index,
            start=ts.start,
            duration_h=ts.duration_h,
            zone=handle.label,
            setpoint=demand.setpoint if required else math.nan,
            temperature=zone.temperature,
            demand_j=demand.demand_j,
            delivered_j=zone.heat_delivered_j,
            unmet_j=result.unmet_demand_j[handle],
            heating_required=required,
            outside_comfort=required and zone.temperature < demand.setpoint - band,
        )

    def _supply_record(self, result: TimestepResult, handle) -> SupplyIntervalRecord:
        ts = result.timestep
        reading = result.meter_readings[handle]
        by_end_use = reading.demand_by_end_use_j
        return SupplyIntervalRecord(
            index=ts.index,
            start=ts.start,
            duration_h=ts.duration_h,
            supply=handle.label,
            fuel=reading.fuel,
            space_heating_j=by_end_use.get(EndUse.SPACE_HEATING, 0.0),
            water_heating_j=by_end_use.get(EndUse.WATER_HEATING, 0.0),
            generation_j=reading.generation_j,
            import_j=reading.import_j,
            export_j=reading.export_j,
            import_rate=reading.import_rate,
            cost=reading.cost,
        )

    # ------------------------
    # Access
    # ------------------------
    @property
    def intervals(self) -> List[IntervalRecord]:
        return [s.interval for s in self._steps]

    @property
    def zones(self) -> List[ZoneIntervalRecord]:
        return [r for s in self._steps for r in s.zones]

    @property
    def supplies(self) -> List[SupplyIntervalRecord]:
        return [r for s in self._steps for r in s.supplies]

    @property
    def totals(self) -> RunSummary:
        """Running totals over everything consumed so far."""
        return self._running.summary()

    def summarize(self, start: int = 0, stop: Optional[int] = None) -> RunSummary:
        """Fold the records of consumed timesteps `start <= index < stop`."""
        totals = _Totals(self._zone_names)
        for step in self._steps:
            index = step.interval.index
            if index >= start and (stop is None or index < stop):
                totals.add(step)
        return totals.summary()
