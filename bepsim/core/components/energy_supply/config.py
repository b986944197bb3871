from dataclasses import dataclass
from typing import ClassVar, Literal, Optional

from bepsim.core.components.config_base import BaseComponentConfig
from bepsim.core.components.handles import ComponentKind
from bepsim.core.components.outputs import Fuel


@dataclass(frozen=True, slots=True, kw_only=True)
class EnergySupplyConfig(BaseComponentConfig):
    """
    Metered connection for one fuel.

    The import tariff is either a fixed `import_rate` or the name of an
    external condition series (`import_rate_series`), in currency per kWh.
    """

    kind: ClassVar[ComponentKind] = ComponentKind.ENERGY_SUPPLY

    fuel: Fuel
    import_rate: Optional[float] = None
    import_rate_series: Optional[str] = None
    export_rate: float = 0.0
    standing_charge_per_day: float = 0.0
    type: Literal["energy_supply"] = "energy_supply"

    def validate(self) -> list[str]:
        problems = []
        if self.fuel == Fuel.UNMET_DEMAND:
            problems.append("fuel 'unmet_demand' is reserved for unmet demand accounting")
        if self.import_rate is not None and self.import_rate_series is not None:
            problems.append("set either import_rate or import_rate_series, not both")
        if self.import_rate is not None and self.import_rate < 0:
            problems.append(f"import_rate must be non-negative, got {self.import_rate}")
        if self.export_rate < 0:
            problems.append(f"export_rate must be non-negative, got {self.export_rate}")
        if self.standing_charge_per_day < 0:
            problems.append("standing_charge_per_day must be non-negative")
        return problems

    def required_series(self) -> list[str]:
        return [self.import_rate_series] if self.import_rate_series else []
