from dataclasses import dataclass, field


@dataclass
class Registry:
    """A central registry of component config types and their models."""

    configs: dict = field(default_factory=dict)
    models: dict = field(default_factory=dict)


registry = Registry()


def register_model(config_cls):
    """Decorator to register a model class with its config class."""
    def decorator(cls):
        registry.configs[config_cls.__name__] = config_cls
        registry.models[config_cls.__name__] = cls
        return cls
    return decorator
