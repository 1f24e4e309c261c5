"""Condition builder for switch, edge detection and geofence rules.

Turns a single flow rule into a typed IR Condition and records it on a
Draft. Invalid rule configuration is reported through ConditionResult,
never raised, so one badly configured branch cannot abort the translation
of its siblings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from src.translator.enums import GeofenceShape, LogicalOperator, PatternSlot, SpatialRelation
from src.translator.ir import ComparisonCondition, SpatialCondition

if TYPE_CHECKING:
    from src.translator.draft import Draft
    from src.translator.flow import GeoPoint, SwitchNode


NO_NEGATED_FORM = "operator has no negated form"


class ConditionErrorKind(str, Enum):
    INVALID_OPERATOR = "InvalidOperator"
    INVALID_PARAMETER = "InvalidParameter"
    INVALID_GEOFENCE_MODE = "InvalidGeofenceMode"
    EMPTY_GEOFENCE_NODE = "EmptyGeofenceNode"


@dataclass(frozen=True)
class ConditionResult:
    """Outcome of adding a condition: success, failure, or a no-op with a status."""

    error: ConditionErrorKind | None = None
    message: str = ""
    status: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, status: str = "") -> ConditionResult:
        return cls(status=status)

    @classmethod
    def failure(cls, error: ConditionErrorKind, message: str) -> ConditionResult:
        return cls(error=error, message=message)


# =============================================================================
# Helpers
# =============================================================================


def strip_property_prefix(prop: str) -> str:
    """Drop the message prefix: "payload.output.a" -> "output.a"."""
    return prop.split(".", 1)[-1]


def render_value(value: Any) -> str:
    """Render a literal for a query fragment, verbatim apart from booleans."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def polygon_coords(points: list[GeoPoint]) -> str:
    """Close a polyline into a polygon: "lat,lon;" per vertex, then the first vertex."""
    coords = "".join(f"{p.latitude},{p.longitude};" for p in points)
    return coords + f"{points[0].latitude},{points[0].longitude}"


def _parse_operator(operator: str) -> LogicalOperator | SpatialRelation | None:
    for enum_cls in (LogicalOperator, SpatialRelation):
        try:
            return enum_cls(operator)
        except ValueError:
            continue
    return None


# =============================================================================
# Public API
# =============================================================================


def add_condition(
    draft: Draft | None,
    prop: str | None,
    operator: str | LogicalOperator | SpatialRelation | None,
    value: Any,
    value_type: str | None,
    slot: PatternSlot = PatternSlot.FIXED,
) -> ConditionResult:
    """Build one condition and record it on the draft.

    Comparison operators register the (prefix-stripped) property both as a
    rule variable and as a watched input-device attribute. Spatial relations
    expect `value` to be the geofence point list and `value_type` its shape.

    Args:
        draft: Draft receiving the condition.
        prop: Message property tested by a comparison (unused for spatial tests).
        operator: Switch operator ("eq", "lt", ...) or spatial relation.
        value: Comparison literal or geofence points.
        value_type: Editor value type ("num", "str", ...) or geofence shape.
        slot: Pattern slot the condition belongs to.

    Returns:
        ConditionResult describing the outcome.
    """
    if draft is None or operator is None:
        return ConditionResult.failure(
            ConditionErrorKind.INVALID_PARAMETER, "draft and operator are required"
        )

    op = _parse_operator(operator)

    if isinstance(op, LogicalOperator) and op.symbol is not None:
        if prop is None or value is None:
            return ConditionResult.failure(
                ConditionErrorKind.INVALID_PARAMETER,
                f"property and value are required for '{op.value}'",
            )
        name = strip_property_prefix(prop)
        draft.add_variable(name)
        draft.input_device.add_attribute(name)
        draft.add_condition(
            ComparisonCondition(property=name, operator=op, value=render_value(value)),
            slot,
        )
        return ConditionResult.success()

    if isinstance(op, SpatialRelation):
        if value_type is None or not value:
            return ConditionResult.failure(
                ConditionErrorKind.EMPTY_GEOFENCE_NODE, "empty georeference node"
            )
        if value_type != GeofenceShape.POLYLINE.value:
            return ConditionResult.failure(
                ConditionErrorKind.INVALID_GEOFENCE_MODE,
                f"unsupported geofence mode: {value_type}",
            )
        draft.add_condition(SpatialCondition(relation=op, coords=polygon_coords(value)), slot)
        return ConditionResult.success()

    return ConditionResult.failure(
        ConditionErrorKind.INVALID_OPERATOR, f"unsupported operator: {operator}"
    )


def add_negated_conditions(
    draft: Draft,
    node: SwitchNode,
    slot: PatternSlot = PatternSlot.FIXED,
) -> list[ConditionResult]:
    """Add the negation of every rule of a switch node.

    This is what the "otherwise" branch tests: none of the explicit rules
    hold. BETWEEN contributes two bound conditions. Rules without a negated
    form contribute nothing and report NO_NEGATED_FORM.

    Returns:
        One result per rule, in rule order.
    """
    results: list[ConditionResult] = []
    for rule in node.rules:
        try:
            op = LogicalOperator(rule.t)
        except ValueError:
            op = None

        if op == LogicalOperator.BETWEEN:
            lower = add_condition(draft, node.property, LogicalOperator.LT, rule.v, rule.vt, slot)
            if not lower.ok:
                results.append(lower)
                continue
            results.append(
                add_condition(draft, node.property, LogicalOperator.GTE, rule.v2, rule.v2t, slot)
            )
        elif op is not None and op.negated is not None:
            results.append(add_condition(draft, node.property, op.negated, rule.v, rule.vt, slot))
        else:
            results.append(ConditionResult.success(status=NO_NEGATED_FORM))
    return results
