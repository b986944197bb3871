"""Daily profiles looked up by time of day, day type and holiday flag."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


def _slot_value(profile: Sequence[T], when: datetime) -> T:
    hour = when.hour + when.minute / 60.0 + when.second / 3600.0
    slot = int(hour * len(profile) / 24.0)
    return profile[min(slot, len(profile) - 1)]


def _profile_problems(name: str, profile: Optional[Sequence]) -> list[str]:
    if profile is None:
        return []
    if len(profile) == 0:
        return [f"schedule '{name}' profile must not be empty"]
    if 24 % len(profile) and len(profile) % 24:
        return [f"schedule '{name}' profile length {len(profile)} does not divide a day evenly"]
    return []


@dataclass(frozen=True, slots=True, kw_only=True)
class DailyScheduleConfig:
    """
    Numeric daily profile, spread evenly over 24 hours.

    `None` entries mean "no value" (e.g. heating off). The weekend profile is
    also used on holidays; when absent the weekday profile applies every day.
    """

    weekday: List[Optional[float]]
    weekend: Optional[List[Optional[float]]] = None

    def problems(self) -> list[str]:
        return _profile_problems("weekday", self.weekday) + _profile_problems("weekend", self.weekend)

    def value_at(self, when: datetime, is_holiday: bool = False) -> Optional[float]:
        profile = self.weekday
        if self.weekend is not None and (when.weekday() >= 5 or is_holiday):
            profile = self.weekend
        return _slot_value(profile, when)


@dataclass(frozen=True, slots=True, kw_only=True)
class OnOffScheduleConfig:
    """Boolean daily profile, spread evenly over 24 hours."""

    weekday: List[bool]
    weekend: Optional[List[bool]] = None

    def problems(self) -> list[str]:
        return _profile_problems("weekday", self.weekday) + _profile_problems("weekend", self.weekend)

    def value_at(self, when: datetime, is_holiday: bool = False) -> bool:
        profile = self.weekday
        if self.weekend is not None and (when.weekday() >= 5 or is_holiday):
            profile = self.weekend
        return bool(_slot_value(profile, when))
