"""Config unions per configuration section. This is necessary to make dacite able to infer the correct types."""

from typing import Union

from bepsim.core.components.control.config import (
    OnOffTimeControlConfig,
    SetpointTimeControlConfig,
    ThermostatControlConfig,
)
from bepsim.core.components.energy_supply.config import EnergySupplyConfig
from bepsim.core.components.generator.config import PhotovoltaicConfig
from bepsim.core.components.heat_source.config import (
    BoilerConfig,
    HeatPumpConfig,
    InstantElectricConfig,
)
from bepsim.core.components.hot_water.config import StorageCylinderConfig
from bepsim.core.components.zone.config import ZoneConfig

ControlConfig = Union[OnOffTimeControlConfig, SetpointTimeControlConfig, ThermostatControlConfig]
HeatSourceConfig = Union[BoilerConfig, HeatPumpConfig, InstantElectricConfig]
HotWaterSourceConfig = Union[StorageCylinderConfig]
GeneratorConfig = Union[PhotovoltaicConfig]

SECTION_TYPES = {
    "controls": ControlConfig,
    "zones": ZoneConfig,
    "heat_sources": HeatSourceConfig,
    "hot_water_sources": HotWaterSourceConfig,
    "generators": GeneratorConfig,
    "energy_supplies": EnergySupplyConfig,
}
"""Component sections of the configuration document, in definition order."""
