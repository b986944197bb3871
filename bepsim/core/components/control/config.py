from dataclasses import dataclass
from typing import ClassVar, Literal, Optional

from bepsim.core.components.config_base import BaseComponentConfig
from bepsim.core.components.handles import ComponentKind, Reference
from bepsim.core.schedule import DailyScheduleConfig, OnOffScheduleConfig


@dataclass(frozen=True, slots=True, kw_only=True)
class OnOffTimeControlConfig(BaseComponentConfig):
    """Switches equipment on and off from a daily schedule."""

    kind: ClassVar[ComponentKind] = ComponentKind.CONTROL

    schedule: OnOffScheduleConfig
    type: Literal["on_off_time"] = "on_off_time"

    def validate(self) -> list[str]:
        return self.schedule.problems()


@dataclass(frozen=True, slots=True, kw_only=True)
class SetpointTimeControlConfig(BaseComponentConfig):
    """
    Setpoint taken from a daily schedule.

    A `None` slot means heating is not required. `setpoint_min` and
    `setpoint_max` clamp scheduled values; with `default_to_max` the control
    falls back to `setpoint_max` outside scheduled periods. `advanced_start`
    (hours) brings the next scheduled setpoint forward.
    """

    kind: ClassVar[ComponentKind] = ComponentKind.CONTROL

    schedule: DailyScheduleConfig
    setpoint_min: Optional[float] = None
    setpoint_max: Optional[float] = None
    default_to_max: bool = False
    advanced_start: float = 0.0
    type: Literal["setpoint_time"] = "setpoint_time"

    def validate(self) -> list[str]:
        problems = self.schedule.problems()
        if (
            self.setpoint_min is not None
            and self.setpoint_max is not None
            and self.setpoint_min > self.setpoint_max
        ):
            problems.append(
                f"setpoint_min {self.setpoint_min} is above setpoint_max {self.setpoint_max}"
            )
        if self.default_to_max and self.setpoint_max is None:
            problems.append("default_to_max requires setpoint_max")
        if not 0.0 <= self.advanced_start < 24.0:
            problems.append(f"advanced_start must be in [0, 24) hours, got {self.advanced_start}")
        return problems


@dataclass(frozen=True, slots=True, kw_only=True)
class ThermostatControlConfig(BaseComponentConfig):
    """
    Hysteresis control around the setpoint of another control.

    Senses the temperature of `zone` as committed at the end of the previous
    timestep.
    """

    kind: ClassVar[ComponentKind] = ComponentKind.CONTROL

    setpoint_control: str
    zone: str
    hysteresis_k: float = 1.0
    initially_on: bool = True
    type: Literal["thermostat"] = "thermostat"

    def references(self) -> list[Reference]:
        return [
            Reference("setpoint_control", self.setpoint_control, ComponentKind.CONTROL),
            Reference("zone", self.zone, ComponentKind.ZONE, sensing=True),
        ]

    def validate(self) -> list[str]:
        if self.hysteresis_k < 0:
            return [f"hysteresis_k must be non-negative, got {self.hysteresis_k}"]
        return []
