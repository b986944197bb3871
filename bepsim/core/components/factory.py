from bepsim.core.components.config_base import BaseComponentConfig
from bepsim.core.components.graph import ComponentGraph
from bepsim.core.components.handles import ComponentHandle
from bepsim.core.components.model_base import ModelBase
from bepsim.core.components.registry import registry


def build_model(config: BaseComponentConfig) -> ModelBase:
    """Builds the model registered for a component config."""
    if config.__class__.__name__ not in registry.models:
        raise ValueError(f"Component config '{config.__class__.__name__}' not found in registry.")
    model_cls = registry.models[config.__class__.__name__]
    return model_cls(config)


def build_models(graph: ComponentGraph) -> dict[ComponentHandle, ModelBase]:
    """Builds one model per component, in evaluation order."""
    return {handle: build_model(graph.config(handle)) for handle in graph.order}
