import logging

from bepsim.core.clock import SimulationClock
from bepsim.core.components.factory import build_models
from bepsim.core.components.graph import ComponentGraph, build_component_graph
from bepsim.core.data.factory import build_condition_series
from bepsim.core.data.series import (
    COLD_WATER_TEMPERATURE,
    DEFAULT_COLD_WATER_TEMPERATURE,
    DEFAULT_SOLAR_IRRADIANCE,
    OUTDOOR_TEMPERATURE,
    SOLAR_IRRADIANCE,
    ConditionSeries,
)
from bepsim.sim.config import SimulationConfig
from bepsim.sim.orchestrator import TimestepOrchestrator

logger = logging.getLogger(__name__)

DEFAULT_SERIES = {
    SOLAR_IRRADIANCE: DEFAULT_SOLAR_IRRADIANCE,
    COLD_WATER_TEMPERATURE: DEFAULT_COLD_WATER_TEMPERATURE,
}


def required_series(graph: ComponentGraph) -> list[str]:
    """Series the components read, outdoor temperature first, without duplicates."""
    names = [OUTDOOR_TEMPERATURE]
    for handle in graph.order:
        for name in graph.config(handle).required_series():
            if name not in names:
                names.append(name)
    return names


class SimulatorFactory:
    @staticmethod
    def create_simulator(config: SimulationConfig) -> TimestepOrchestrator:
        """
        Resolve components, load and align external conditions and build the
        orchestrator. Every load-time failure is raised here, before the first
        timestep.
        """
        graph = build_component_graph(config.components)
        models = build_models(graph)
        clock = SimulationClock(config.simulation)

        series = build_condition_series(config.external_conditions)
        for name, value in DEFAULT_SERIES.items():
            if name not in series:
                logger.info("Series '%s' not configured, using constant %s", name, value)
                series[name] = ConditionSeries.constant_value(name, value)
        conditions = clock.align(series, required=required_series(graph))

        return TimestepOrchestrator(
            graph=graph,
            models=models,
            conditions=conditions,
            clock=clock,
            settings=config.settings,
        )
