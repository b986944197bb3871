from dataclasses import dataclass, field
from typing import List, Tuple

from bepsim.core.clock import ClockConfig
from bepsim.core.components.graph import ComponentDefinition
from bepsim.core.data.config import ExternalConditionsConfig
from bepsim.solver.convergence import ConvergenceConfig


@dataclass(frozen=True)
class InvariantConfig:
    """Tolerances for the per-timestep energy conservation checks."""

    rel_tol: float = 1e-6
    abs_tol_j: float = 1e-3

    def __post_init__(self):
        if self.rel_tol < 0 or self.abs_tol_j < 0:
            raise ValueError("Invariant tolerances must be non-negative.")


@dataclass(frozen=True)
class SimulationSettings:
    solver: ConvergenceConfig = field(default_factory=ConvergenceConfig)
    invariants: InvariantConfig = field(default_factory=InvariantConfig)


@dataclass(frozen=True)
class OutputConfig:
    directory: str = "results"
    formats: List[str] = field(default_factory=lambda: ["csv"])


@dataclass(frozen=True)
class SimulationConfig:
    simulation: ClockConfig
    external_conditions: ExternalConditionsConfig
    components: Tuple[ComponentDefinition, ...]
    solver: ConvergenceConfig = field(default_factory=ConvergenceConfig)
    invariants: InvariantConfig = field(default_factory=InvariantConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @property
    def settings(self) -> SimulationSettings:
        return SimulationSettings(solver=self.solver, invariants=self.invariants)
