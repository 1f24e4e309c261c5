"""Enumerations shared by the flow model, condition builder and codegen."""

from __future__ import annotations

from enum import Enum


class NodeType(str, Enum):
    """Type tags emitted by the flow editor."""

    SOURCE = "device out"
    SWITCH = "switch"
    EDGE_DETECTION = "edgedetection"
    GEOFENCE = "geofence"
    CHANGE = "change"
    TEMPLATE = "template"
    UPDATE = "device in"
    HTTP_POST = "http request out"
    EMAIL = "e-mail"
    HISTORY = "history"


class LogicalOperator(str, Enum):
    """Switch rule operators."""

    EQ = "eq"
    NEQ = "neq"
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    CONTAINS = "cont"
    BETWEEN = "btwn"
    ELSE = "else"

    @property
    def symbol(self) -> str | None:
        """Query-language symbol, None for operators that are expanded elsewhere."""
        match self:
            case LogicalOperator.EQ:
                return "=="
            case LogicalOperator.NEQ:
                return "!="
            case LogicalOperator.LT:
                return "<"
            case LogicalOperator.LTE:
                return "<="
            case LogicalOperator.GT:
                return ">"
            case LogicalOperator.GTE:
                return ">="
            case LogicalOperator.CONTAINS:
                return "~="
            case LogicalOperator.BETWEEN | LogicalOperator.ELSE:
                return None

    @property
    def negated(self) -> LogicalOperator | None:
        """Single-operator negation, None when there is none.

        BETWEEN negates to two conditions and is handled by the builder.
        """
        match self:
            case LogicalOperator.EQ:
                return LogicalOperator.NEQ
            case LogicalOperator.NEQ:
                return LogicalOperator.EQ
            case LogicalOperator.LT:
                return LogicalOperator.GTE
            case LogicalOperator.LTE:
                return LogicalOperator.GT
            case LogicalOperator.GT:
                return LogicalOperator.LTE
            case LogicalOperator.GTE:
                return LogicalOperator.LT
            case _:
                return None


class SpatialRelation(str, Enum):
    """Broker geo-query relations."""

    NEAR = "near"
    COVERED_BY = "coveredBy"
    INTERSECTS = "intersects"
    EQUALS = "equals"
    DISJOINT = "disjoint"


class GeofenceShape(str, Enum):
    """Shapes a geofence node can draw."""

    POLYLINE = "polyline"


class GeofenceFilter(str, Enum):
    """When a geofence node lets an event through."""

    INSIDE = "inside"
    OUTSIDE = "outside"
    ENTERS = "enters"
    EXITS = "exits"


class EdgeDirection(str, Enum):
    """Edge detection rule types."""

    RISING = "edge-up"
    FALLING = "edge-down"


class PatternSlot(int, Enum):
    """Which event of a rule pattern a condition or subscription belongs to."""

    FIXED = 0
    FIRST = 1
    SECOND = 2


class ActionType(str, Enum):
    """Rule engine action types."""

    UPDATE = "update"
    POST = "post"
    EMAIL = "email"
    HISTORY = "history"


class DraftState(str, Enum):
    """Finalization gate states."""

    PENDING = "pending"
    PARTIAL = "partial"
    READY = "ready"
    EMITTED = "emitted"
