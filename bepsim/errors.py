"""Exception and warning types raised by the simulation core."""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence


class SimulationError(Exception):
    """Base class for all errors raised by bepsim."""


@dataclass(frozen=True, slots=True)
class Violation:
    """A single configuration problem found during validation."""

    component: Optional[str]
    message: str
    code: str = "invalid"

    def __str__(self) -> str:
        if self.component is None:
            return f"[{self.code}] {self.message}"
        return f"[{self.code}] {self.component}: {self.message}"


class ValidationError(SimulationError):
    """Raised before a run when the configuration has one or more violations.

    All violations are collected and reported together.
    """

    def __init__(self, violations: Sequence[Violation]):
        self.violations = list(violations)
        lines = "\n".join(f"  - {v}" for v in self.violations)
        super().__init__(
            f"Configuration has {len(self.violations)} violation(s):\n{lines}"
        )

    @property
    def components(self) -> list[str]:
        return sorted({v.component for v in self.violations if v.component})


class DataAlignmentError(SimulationError):
    """Raised when external condition series do not cover the simulated horizon."""

    def __init__(self, problems: Sequence[str]):
        self.problems = list(problems)
        lines = "\n".join(f"  - {p}" for p in self.problems)
        super().__init__(f"External conditions do not cover the horizon:\n{lines}")


class InternalInvariantError(SimulationError):
    """Fatal inconsistency detected while stepping the simulation.

    Indicates a defect in a collaborator model or in the orchestration itself.
    """

    def __init__(
        self,
        message: str,
        *,
        timestep: int,
        stage: str,
        component: Optional[str] = None,
        state_dump: Optional[Mapping[str, Any]] = None,
    ):
        self.timestep = timestep
        self.stage = stage
        self.component = component
        self.state_dump = dict(state_dump or {})
        where = f"timestep {timestep}, stage {stage}"
        if component is not None:
            where += f", component '{component}'"
        super().__init__(f"{message} ({where})")


class ConvergenceError(SimulationError):
    """Raised in strict mode when supply resolution does not converge."""

    def __init__(self, timestep: Optional[int], residual: float, iterations: int):
        self.timestep = timestep
        self.residual = residual
        self.iterations = iterations
        super().__init__(
            f"Supply resolution did not converge at timestep {timestep}: "
            f"residual {residual:.4g} after {iterations} iterations"
        )


class ConvergenceWarning(RuntimeWarning):
    """Emitted when supply resolution stops at the iteration cap.

    The run continues with the last iterate.
    """

    def __init__(self, timestep: Optional[int], residual: float, iterations: int):
        self.timestep = timestep
        self.residual = residual
        self.iterations = iterations
        super().__init__(
            f"Supply resolution did not converge at timestep {timestep}: "
            f"residual {residual:.4g} after {iterations} iterations; "
            "continuing with last iterate"
        )
