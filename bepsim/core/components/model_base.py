from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Tuple

from bepsim.core.components.outputs import ControlOutput
from bepsim.core.timestep_data import ConditionSnapshot


class ModelBase(ABC):
    """
    Abstract base class for all collaborator models.

    Every model is a pure function of its inputs: `compute` takes the
    component's state at the start of the step and returns a result together
    with the new state, without mutating anything it was given and without
    performing I/O. Models receive control outputs keyed by the config field
    that references the control.
    """

    @abstractmethod
    def initialize(self) -> Any:
        """Return the state at the start of the run."""
        pass


class ControlModel(ModelBase):
    @abstractmethod
    def compute(
        self,
        state_in: Any,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[str, ControlOutput],
        sensed: Mapping[str, float],
    ) -> Tuple[ControlOutput, Any]:
        """Evaluate the control for this timestep.

        Args:
            state_in: the control's committed state from the previous step.
            conditions: this step's external conditions (including the time).
            control_outputs: outputs of upstream controls already evaluated
                this step.
            sensed: values sensed from the previous committed state, keyed by
                the sensing reference field.
        """
        pass


class ZoneModel(ModelBase):
    @abstractmethod
    def demand(
        self,
        state_in: Any,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[str, ControlOutput],
    ) -> Any:
        """Heat required to reach the setpoint this timestep."""
        pass

    @abstractmethod
    def compute(
        self,
        state_in: Any,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[str, ControlOutput],
        heat_delivered_j: float,
    ) -> Tuple[Any, Any]:
        """Resulting temperatures and heat balance given the delivered heat."""
        pass


class HeatSourceModel(ModelBase):
    @abstractmethod
    def compute(
        self,
        state_in: Any,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[str, ControlOutput],
        request: Any,
    ) -> Tuple[Any, Any]:
        """Heat delivered to each served zone and the fuel it takes."""
        pass


class HotWaterSourceModel(ModelBase):
    @abstractmethod
    def demand(
        self,
        state_in: Any,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[str, ControlOutput],
    ) -> Any:
        """Hot water drawn off this timestep."""
        pass

    @abstractmethod
    def compute(
        self,
        state_in: Any,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[str, ControlOutput],
    ) -> Tuple[Any, Any]:
        pass


class GeneratorModel(ModelBase):
    def initialize(self) -> Optional[Any]:
        return None

    @abstractmethod
    def compute(
        self,
        state_in: Any,
        conditions: ConditionSnapshot,
        control_outputs: Mapping[str, ControlOutput],
    ) -> Tuple[Any, Any]:
        pass


class EnergySupplyModel(ModelBase):
    @abstractmethod
    def compute(
        self,
        state_in: Any,
        conditions: ConditionSnapshot,
        flows: Any,
    ) -> Tuple[Any, Any]:
        """Meter this step's fuel flows and price them at this step's tariff."""
        pass
