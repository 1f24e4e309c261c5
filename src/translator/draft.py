"""Draft: the rule-under-construction threaded through flow traversal.

A Draft is created empty at a source node, cloned at every branch point,
mutated in place along one linear path and handed over once a sink node
completes it. Afterwards only the finalization gate touches it, to record
broker subscription ids.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from .enums import DraftState, PatternSlot
from .ir import Action, Condition


@dataclass
class InputDevice:
    """Entity that triggers the rule and the attributes to watch."""

    type: str = ""
    id: str = ""
    attributes: list[str] = field(default_factory=list)

    def add_attribute(self, name: str) -> None:
        if name not in self.attributes:
            self.attributes.append(name)

    def clone(self) -> InputDevice:
        return InputDevice(type=self.type, id=self.id, attributes=list(self.attributes))


@dataclass
class FixedPattern:
    """Rule fired by a single matching event."""

    conditions: list[Condition] = field(default_factory=list)
    subscription_id: str = ""

    def clone(self) -> FixedPattern:
        return FixedPattern(conditions=list(self.conditions), subscription_id=self.subscription_id)


@dataclass
class CorrelatedPattern:
    """Rule fired by a first event followed by a second one."""

    first_conditions: list[Condition] = field(default_factory=list)
    second_conditions: list[Condition] = field(default_factory=list)
    first_subscription_id: str = ""
    second_subscription_id: str = ""

    def clone(self) -> CorrelatedPattern:
        return CorrelatedPattern(
            first_conditions=list(self.first_conditions),
            second_conditions=list(self.second_conditions),
            first_subscription_id=self.first_subscription_id,
            second_subscription_id=self.second_subscription_id,
        )


Pattern = FixedPattern | CorrelatedPattern


@dataclass
class Draft:
    """Accumulator for one path through the flow graph."""

    # Ordered, duplicate-free; projected by the rule's select clause
    variables: list[str] = field(default_factory=list)
    # Nested by dotted path; values are literals or unresolved templates
    internal_variables: dict[str, Any] = field(default_factory=dict)
    pattern: Pattern | None = None
    input_device: InputDevice = field(default_factory=InputDevice)
    action: Action | None = None
    name: str = ""
    emitted: bool = False

    # -------------------------------------------------------------------------
    # Accumulation
    # -------------------------------------------------------------------------

    def add_variable(self, name: str) -> None:
        if name not in self.variables:
            self.variables.append(name)

    def add_condition(self, condition: Condition, slot: PatternSlot) -> None:
        """Append a condition to a pattern slot.

        The first condition commits the draft to a pattern shape. Conditions
        already fixed when a correlated condition arrives are carried into
        both events; fixed conditions added to a correlated pattern go to
        both events as well.
        """
        if slot == PatternSlot.FIXED:
            if self.pattern is None:
                self.pattern = FixedPattern()
            if isinstance(self.pattern, FixedPattern):
                self.pattern.conditions.append(condition)
            else:
                self.pattern.first_conditions.append(condition)
                self.pattern.second_conditions.append(condition)
            return

        if not isinstance(self.pattern, CorrelatedPattern):
            shared = self.pattern.conditions if self.pattern else []
            self.pattern = CorrelatedPattern(
                first_conditions=list(shared),
                second_conditions=list(shared),
            )
        if slot == PatternSlot.FIRST:
            self.pattern.first_conditions.append(condition)
        else:
            self.pattern.second_conditions.append(condition)

    def set_internal_variable(self, path: str, value: Any) -> None:
        """Store a value at a dotted path, creating intermediate objects."""
        keys = path.split(".")
        target = self.internal_variables
        for key in keys[:-1]:
            if not isinstance(target.get(key), dict):
                target[key] = {}
            target = target[key]
        target[keys[-1]] = value

    def get_internal_variable(self, path: str) -> Any:
        """Value stored at a dotted path, or None if any segment is missing."""
        value: Any = self.internal_variables
        for key in path.split("."):
            if not isinstance(value, dict) or key not in value:
                return None
            value = value[key]
        return value

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    @property
    def is_correlated(self) -> bool:
        return isinstance(self.pattern, CorrelatedPattern)

    @property
    def fixed_conditions(self) -> list[Condition]:
        if isinstance(self.pattern, FixedPattern):
            return list(self.pattern.conditions)
        return []

    @property
    def first_conditions(self) -> list[Condition]:
        if isinstance(self.pattern, CorrelatedPattern):
            return list(self.pattern.first_conditions)
        return []

    @property
    def second_conditions(self) -> list[Condition]:
        if isinstance(self.pattern, CorrelatedPattern):
            return list(self.pattern.second_conditions)
        return []

    @property
    def state(self) -> DraftState:
        if self.emitted:
            return DraftState.EMITTED
        if isinstance(self.pattern, CorrelatedPattern):
            assigned = sum(
                1
                for sub_id in (
                    self.pattern.first_subscription_id,
                    self.pattern.second_subscription_id,
                )
                if sub_id
            )
            return (DraftState.PENDING, DraftState.PARTIAL, DraftState.READY)[assigned]
        if self.pattern is not None and self.pattern.subscription_id:
            return DraftState.READY
        return DraftState.PENDING

    def clone(self) -> Draft:
        """Structural deep copy; the clone shares no mutable state with self."""
        return Draft(
            variables=list(self.variables),
            internal_variables=copy.deepcopy(self.internal_variables),
            pattern=self.pattern.clone() if self.pattern is not None else None,
            input_device=self.input_device.clone(),
            action=self.action.model_copy(deep=True) if self.action is not None else None,
            name=self.name,
            emitted=self.emitted,
        )
