from dataclasses import dataclass
from typing import ClassVar

from bepsim.core.components.handles import ComponentKind, Reference


@dataclass(frozen=True, slots=True, kw_only=True)
class BaseComponentConfig:
    """
    Immutable description of one physical element.

    Component configs do not raise on bad parameters; `validate` returns every
    problem so the registry can report them all at once.
    """

    kind: ClassVar[ComponentKind]

    type: str

    def references(self) -> list[Reference]:
        """Cross-references to other components, by user-chosen name."""
        return []

    def validate(self) -> list[str]:
        """Return a message for every out-of-range parameter."""
        return []

    def required_series(self) -> list[str]:
        """Names of external condition series this component reads."""
        return []
