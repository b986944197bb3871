from bepsim.core.components.control import model as _control  # noqa: F401 # register models
from bepsim.core.components.energy_supply import model as _energy_supply  # noqa: F401
from bepsim.core.components.generator import model as _generator  # noqa: F401
from bepsim.core.components.heat_source import model as _heat_source  # noqa: F401
from bepsim.core.components.hot_water import model as _hot_water  # noqa: F401
from bepsim.core.components.zone import model as _zone  # noqa: F401
from bepsim.core.components.factory import build_model, build_models
from bepsim.core.components.graph import (
    ComponentDefinition,
    ComponentGraph,
    build_component_graph,
)
from bepsim.core.components.handles import ComponentHandle, ComponentKind

__all__ = [
    "ComponentDefinition",
    "ComponentGraph",
    "ComponentHandle",
    "ComponentKind",
    "build_component_graph",
    "build_model",
    "build_models",
]
