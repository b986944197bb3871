from dataclasses import dataclass

from bepsim.core.components.generator.config import PhotovoltaicConfig
from bepsim.core.components.model_base import GeneratorModel
from bepsim.core.components.registry import register_model

STANDARD_IRRADIANCE_W_PER_M2 = 1000.0


@dataclass(frozen=True, slots=True, kw_only=True)
class GeneratorResult:
    generation_j: float


@register_model(PhotovoltaicConfig)
class PhotovoltaicModel(GeneratorModel):
    def __init__(self, config: PhotovoltaicConfig):
        self._config = config

    def compute(self, state_in, conditions, control_outputs):
        cfg = self._config
        irradiance = max(conditions.solar_irradiance, 0.0)
        power_w = cfg.peak_power_kw * 1000.0 * irradiance / STANDARD_IRRADIANCE_W_PER_M2
        generation_j = power_w * cfg.inverter_efficiency * conditions.timestep.duration_s
        return GeneratorResult(generation_j=generation_j), None
