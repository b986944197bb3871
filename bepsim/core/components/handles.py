from dataclasses import dataclass, field
from enum import Enum


class ComponentKind(str, Enum):
    CONTROL = "control"
    ZONE = "zone"
    HOT_WATER_SOURCE = "hot_water_source"
    HEAT_SOURCE = "heat_source"
    GENERATOR = "generator"
    ENERGY_SUPPLY = "energy_supply"


class Phase(int, Enum):
    """Pipeline phase a component kind is evaluated in."""

    CONTROLS = 0
    DEMAND = 1
    SUPPLY = 2
    METERING = 3


PHASE_OF_KIND = {
    ComponentKind.CONTROL: Phase.CONTROLS,
    ComponentKind.ZONE: Phase.DEMAND,
    ComponentKind.HOT_WATER_SOURCE: Phase.DEMAND,
    ComponentKind.HEAT_SOURCE: Phase.SUPPLY,
    ComponentKind.GENERATOR: Phase.SUPPLY,
    ComponentKind.ENERGY_SUPPLY: Phase.METERING,
}


@dataclass(frozen=True, slots=True)
class ComponentHandle:
    """
    Opaque, stable reference to a resolved component.

    Equality and hashing use only the kind and id; the label is kept for
    diagnostics and output and is never used for lookups at runtime.
    """

    kind: ComponentKind
    id: int
    label: str = field(default="", compare=False)

    @property
    def phase(self) -> Phase:
        return PHASE_OF_KIND[self.kind]

    def __repr__(self) -> str:
        return f"<{self.kind.value}#{self.id} {self.label!r}>"


@dataclass(frozen=True, slots=True)
class Reference:
    """A named cross-reference from one component definition to another.

    Sensing references (e.g. a thermostat reading its zone's temperature) may
    point back at a component that refers to the source; they are not treated
    as definition cycles.
    """

    field: str
    target: str
    kind: ComponentKind
    sensing: bool = False
