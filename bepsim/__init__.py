from bepsim.config_loader import load_config, parse_config
from bepsim.results.aggregator import ResultsAggregator
from bepsim.sim.factory import SimulatorFactory
from bepsim.sim.orchestrator import RunOutcome, TimestepOrchestrator

__all__ = [
    "ResultsAggregator",
    "RunOutcome",
    "SimulatorFactory",
    "TimestepOrchestrator",
    "load_config",
    "parse_config",
]
