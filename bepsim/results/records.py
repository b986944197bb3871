"""Typed, flat output records. Every field has exactly one declared type."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict

from bepsim.core.components.outputs import Fuel


@dataclass(frozen=True, slots=True, kw_only=True)
class IntervalRecord:
    """Building-level totals for one timestep."""

    index: int
    start: datetime
    duration_h: float
    outdoor_temperature: float
    solar_irradiance: float
    space_heating_demand_j: float
    space_heating_delivered_j: float
    unmet_demand_j: float
    water_heating_delivered_j: float
    fuel_demand_j: float
    generation_j: float
    import_j: float
    export_j: float
    cost: float
    iterations: int
    converged: bool


@dataclass(frozen=True, slots=True, kw_only=True)
class ZoneIntervalRecord:
    index: int
    start: datetime
    duration_h: float
    zone: str
    setpoint: float  # NaN when heating is not required
    temperature: float
    demand_j: float
    delivered_j: float
    unmet_j: float
    heating_required: bool
    outside_comfort: bool


@dataclass(frozen=True, slots=True, kw_only=True)
class SupplyIntervalRecord:
    index: int
    start: datetime
    duration_h: float
    supply: str
    fuel: Fuel
    space_heating_j: float
    water_heating_j: float
    generation_j: float
    import_j: float
    export_j: float
    import_rate: float
    cost: float


@dataclass(frozen=True, slots=True, kw_only=True)
class StepRecords:
    interval: IntervalRecord
    zones: tuple[ZoneIntervalRecord, ...]
    supplies: tuple[SupplyIntervalRecord, ...]


@dataclass(frozen=True, kw_only=True)
class RunSummary:
    """
    Totals over a range of committed timesteps.

    Energies are in kWh, keyed by fuel and then end use; costs are in the
    tariff currency.
    """

    steps: int
    hours: float
    first_index: int
    last_index: int
    energy_kwh: Dict[str, Dict[str, float]] = field(default_factory=dict)
    import_kwh: Dict[str, float] = field(default_factory=dict)
    export_kwh: Dict[str, float] = field(default_factory=dict)
    cost_by_supply: Dict[str, float] = field(default_factory=dict)
    total_cost: float = 0.0
    space_heating_demand_kwh: float = 0.0
    space_heating_delivered_kwh: float = 0.0
    unmet_demand_kwh: float = 0.0
    water_heating_delivered_kwh: float = 0.0
    generation_kwh: float = 0.0
    peak_demand_w: float = 0.0
    peak_import_w: Dict[str, float] = field(default_factory=dict)
    hours_outside_comfort: Dict[str, float] = field(default_factory=dict)
    unmet_hours: float = 0.0
    convergence_warnings: int = 0
    max_iterations: int = 0
