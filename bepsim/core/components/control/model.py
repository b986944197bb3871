import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional, Tuple

from bepsim.core.components.control.config import (
    OnOffTimeControlConfig,
    SetpointTimeControlConfig,
    ThermostatControlConfig,
)
from bepsim.core.components.model_base import ControlModel
from bepsim.core.components.outputs import ControlOutput
from bepsim.core.components.registry import register_model
from bepsim.core.timestep_data import ConditionSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ThermostatState:
    on: bool


@register_model(OnOffTimeControlConfig)
class OnOffTimeControl(ControlModel):
    def __init__(self, config: OnOffTimeControlConfig):
        self._config = config

    def initialize(self) -> None:
        return None

    def compute(self, state_in, conditions, control_outputs, sensed):
        ts = conditions.timestep
        on = self._config.schedule.value_at(ts.start, ts.is_holiday)
        return ControlOutput(on=on), None


@register_model(SetpointTimeControlConfig)
class SetpointTimeControl(ControlModel):
    def __init__(self, config: SetpointTimeControlConfig):
        self._config = config

    def initialize(self) -> None:
        return None

    def setpoint(self, conditions: ConditionSnapshot) -> Optional[float]:
        cfg = self._config
        ts = conditions.timestep
        value = cfg.schedule.value_at(ts.start, ts.is_holiday)

        if value is None and cfg.advanced_start > 0:
            # Look ahead one step at a time for the next scheduled setpoint.
            ahead = ts.duration_h
            while value is None and ahead <= cfg.advanced_start:
                later = ts.start + timedelta(hours=ahead)
                value = cfg.schedule.value_at(later, ts.is_holiday_at(later))
                ahead += ts.duration_h

        if value is None:
            return cfg.setpoint_max if cfg.default_to_max else None
        if cfg.setpoint_max is not None:
            value = min(value, cfg.setpoint_max)
        if cfg.setpoint_min is not None:
            value = max(value, cfg.setpoint_min)
        return value

    def compute(self, state_in, conditions, control_outputs, sensed):
        setpoint = self.setpoint(conditions)
        return ControlOutput(on=setpoint is not None, setpoint=setpoint), None


@register_model(ThermostatControlConfig)
class ThermostatControl(ControlModel):
    """
    On when the sensed temperature falls to `setpoint - hysteresis/2`, off when
    it reaches `setpoint + hysteresis/2`, unchanged in between.
    """

    def __init__(self, config: ThermostatControlConfig):
        self._config = config

    def initialize(self) -> ThermostatState:
        return ThermostatState(on=self._config.initially_on)

    def compute(
        self,
        state_in: ThermostatState,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[str, ControlOutput],
        sensed: Mapping[str, float],
    ) -> Tuple[ControlOutput, ThermostatState]:
        upstream = control_outputs["setpoint_control"]
        if upstream.setpoint is None or not upstream.on:
            return ControlOutput(on=False, setpoint=None), ThermostatState(on=False)

        temperature = sensed["zone"]
        half_band = self._config.hysteresis_k / 2.0
        on = state_in.on
        if temperature <= upstream.setpoint - half_band:
            on = True
        elif temperature >= upstream.setpoint + half_band:
            on = False
        if on != state_in.on:
            logger.debug(
                "Thermostat switched %s at %.2f °C (setpoint %.2f °C)",
                "on" if on else "off",
                temperature,
                upstream.setpoint,
            )
        return ControlOutput(on=on, setpoint=upstream.setpoint), ThermostatState(on=on)
