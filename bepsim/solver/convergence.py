"""
Generic fixed-point solver used to resolve mutually dependent quantities
within one timestep.
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from bepsim.errors import ConvergenceError, ConvergenceWarning

logger = logging.getLogger(__name__)

Vector = Tuple[float, ...]
UpdateFunction = Callable[[Vector], Vector]
DistanceMetric = Callable[[Vector, Vector], float]


def max_abs_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Largest absolute component-wise difference (0.0 for empty vectors)."""
    if len(a) != len(b):
        raise ValueError(f"Cannot compare vectors of length {len(a)} and {len(b)}.")
    return max((abs(x - y) for x, y in zip(a, b)), default=0.0)


@dataclass(frozen=True)
class ConvergenceConfig:
    """Immutable configuration for the fixed-point solver."""

    tolerance: float = 1e-2  # in the tracked quantity's unit (°C for zone temperatures)
    max_iterations: int = 30
    damping: float = 0.0  # weight kept from the previous iterate, in [0, 1)
    strict: bool = False

    def __post_init__(self) -> None:
        if self.tolerance <= 0:
            raise ValueError("tolerance must be positive")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if not (0.0 <= self.damping < 1.0):
            raise ValueError("damping must be in [0, 1)")


@dataclass(frozen=True, slots=True)
class SolverResult:
    value: Vector
    iterations: int
    residual: float
    converged: bool


class FixedPointSolver:
    """
    Successive substitution with optional damping.

    Starting from `initial`, repeatedly applies `update` until the distance
    between consecutive iterates drops below the tolerance or the iteration
    cap is reached. Each evaluation of `update` counts as one iteration, so a
    fixed point supplied as the initial guess converges in one iteration.

    The solver holds no state between calls and introduces no randomness:
    identical inputs always give identical trajectories.
    """

    def __init__(
        self,
        config: Optional[ConvergenceConfig] = None,
        distance: DistanceMetric = max_abs_distance,
    ):
        self.config = config or ConvergenceConfig()
        self.distance = distance

    def solve(
        self,
        update: UpdateFunction,
        initial: Sequence[float],
        timestep: Optional[int] = None,
    ) -> SolverResult:
        current: Vector = tuple(float(x) for x in initial)
        damping = self.config.damping
        residual = float("inf")

        for iteration in range(1, self.config.max_iterations + 1):
            proposed = tuple(float(x) for x in update(current))
            if len(proposed) != len(current):
                raise ValueError(
                    f"Update function changed the vector length from {len(current)} to {len(proposed)}."
                )
            if damping > 0.0:
                proposed = tuple(
                    (1.0 - damping) * new + damping * old
                    for new, old in zip(proposed, current)
                )
            residual = self.distance(proposed, current)
            current = proposed
            if residual < self.config.tolerance:
                logger.debug(
                    "Converged at timestep %s after %d iteration(s), residual %.3g",
                    timestep, iteration, residual,
                )
                return SolverResult(current, iteration, residual, True)

        iterations = self.config.max_iterations
        if self.config.strict:
            logger.error(
                "No convergence at timestep %s: residual %.3g after %d iterations",
                timestep, residual, iterations,
            )
            raise ConvergenceError(timestep, residual, iterations)

        logger.warning(
            "No convergence at timestep %s: residual %.3g after %d iterations, using last iterate",
            timestep, residual, iterations,
        )
        warnings.warn(ConvergenceWarning(timestep, residual, iterations), stacklevel=2)
        return SolverResult(current, iterations, residual, False)
