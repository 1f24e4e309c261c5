"""Intermediate Representation (IR) for flow translation.

Typed records produced by the translator and consumed by the dispatch layer:
conditions accumulated while walking a flow, the action a sink node asks
for, and the two output artifacts (broker subscriptions and CEP rules).
Uses Pydantic for serialization and discriminated unions for polymorphism.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .enums import ActionType, LogicalOperator, PatternSlot, SpatialRelation

# =============================================================================
# Conditions
# =============================================================================


class ComparisonCondition(BaseModel):
    """Attribute comparison, rendered as a simple query fragment."""

    model_config = ConfigDict(frozen=True)

    type: Literal["comparison"] = "comparison"
    property: str
    operator: LogicalOperator
    value: str

    @property
    def query(self) -> str:
        return f"{self.property} {self.operator.symbol} {self.value}"

    def to_expression(self) -> dict[str, str]:
        return {"q": self.query}


class SpatialCondition(BaseModel):
    """Geo-query against a closed polygon."""

    model_config = ConfigDict(frozen=True)

    type: Literal["spatial"] = "spatial"
    relation: SpatialRelation
    geometry: Literal["polygon"] = "polygon"
    coords: str

    def to_expression(self) -> dict[str, str]:
        return {
            "georel": self.relation.value,
            "geometry": self.geometry,
            "coords": self.coords,
        }


# Discriminated union of all condition types
Condition = Annotated[
    ComparisonCondition | SpatialCondition,
    Field(discriminator="type"),
]


# =============================================================================
# Actions (what a sink node asks the rule engine to do)
# =============================================================================


class UpdateAction(BaseModel):
    """Update attributes of a device entity."""

    type: Literal[ActionType.UPDATE] = ActionType.UPDATE
    notification_endpoint: str
    entity_id: str
    entity_type: str
    # Name of the internal variable holding the attribute object
    attributes_var: str


class PostAction(BaseModel):
    """POST a templated body to an HTTP endpoint."""

    type: Literal[ActionType.POST] = ActionType.POST
    notification_endpoint: str
    url: str
    method: str
    body_var: str


class EmailAction(BaseModel):
    """Send a templated e-mail."""

    type: Literal[ActionType.EMAIL] = ActionType.EMAIL
    notification_endpoint: str
    to: str
    sender: str
    subject: str
    smtp: str
    body_var: str


class HistoryAction(BaseModel):
    """Forward matching notifications straight to the history store."""

    type: Literal[ActionType.HISTORY] = ActionType.HISTORY
    notification_endpoint: str


# Discriminated union of all action types
Action = Annotated[
    UpdateAction | PostAction | EmailAction | HistoryAction,
    Field(discriminator="type"),
]


# =============================================================================
# Output artifacts
# =============================================================================


class Subscription(BaseModel):
    """Broker subscription derived from a draft."""

    description: str
    entity_type: str
    entity_id: str
    attributes: list[str] = Field(default_factory=list)
    condition_expression: dict[str, str] | None = None
    notify_url: str
    slot: PatternSlot = PatternSlot.FIXED

    def to_payload(self) -> dict[str, Any]:
        """Render the NGSIv2 request body.

        'condition' is only present when there is something to test.
        """
        subject: dict[str, Any] = {
            "entities": [{"type": self.entity_type, "id": self.entity_id}],
        }
        if self.condition_expression:
            subject["condition"] = {
                "attrs": list(self.attributes),
                "expression": dict(self.condition_expression),
            }
        return {
            "description": self.description,
            "subject": subject,
            "notification": {"http": {"url": self.notify_url}},
        }


class RuleAction(BaseModel):
    """Action section of a rule engine request."""

    type: ActionType
    template: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)


class RuleText(BaseModel):
    """Complete CEP rule, ready to be POSTed to the rule engine."""

    name: str
    pattern_text: str = Field(serialization_alias="text")
    action: RuleAction

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
