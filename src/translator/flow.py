"""Flow graph model.

A flow arrives as an ordered list of node descriptors exported by the flow
editor. Each descriptor is parsed into the model for its type tag; tags we
do not translate become UnsupportedNode so traversal can skip them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .enums import NodeType
from .errors import DanglingWireError, InvalidFlowError

logger = logging.getLogger(__name__)


class FlowNodeBase(BaseModel):
    """Fields shared by every node descriptor."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str
    type: str
    z: str = ""
    wires: list[list[str]] = Field(default_factory=list)

    def port(self, index: int) -> list[str]:
        """Downstream node ids wired to an output port (empty if unwired)."""
        if index < len(self.wires):
            return list(self.wires[index])
        return []


class NodeRule(BaseModel):
    """A single rule of a switch or edge detection node."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    t: str
    v: Any = None
    vt: str | None = None
    v2: Any = None
    v2t: str | None = None


class GeoPoint(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    latitude: int | float | str
    longitude: int | float | str


class ChangeRule(BaseModel):
    """A change node rule: set `p` to `to`, interpreted according to `tot`."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    t: str = "set"
    p: str
    to: Any = None
    tot: str = "str"


# =============================================================================
# Sources
# =============================================================================


class SourceNode(FlowNodeBase):
    """Device emitting events."""

    type: Literal["device out"] = "device out"
    device_id: str = Field(default="", alias="_device_id")
    device_type: str = Field(default="", alias="_device_type")


# =============================================================================
# Decisions
# =============================================================================


class SwitchNode(FlowNodeBase):
    """Multi-way comparison switch. Rule i is wired to port i."""

    type: Literal["switch"] = "switch"
    property: str = ""
    rules: list[NodeRule] = Field(default_factory=list)


class EdgeDetectionNode(FlowNodeBase):
    """Rising/falling edge detector. Rule i is wired to port i."""

    type: Literal["edgedetection"] = "edgedetection"
    property: str = ""
    rules: list[NodeRule] = Field(default_factory=list)


class GeofenceNode(FlowNodeBase):
    """Spatial test against a drawn shape."""

    type: Literal["geofence"] = "geofence"
    points: list[GeoPoint] | None = None
    mode: str | None = None
    filter: str | None = None


# =============================================================================
# Mutators
# =============================================================================


class ChangeNode(FlowNodeBase):
    type: Literal["change"] = "change"
    rules: list[ChangeRule] = Field(default_factory=list)


class TemplateNode(FlowNodeBase):
    type: Literal["template"] = "template"
    field: str = "payload"
    template: str = ""


# =============================================================================
# Sinks
# =============================================================================


class UpdateNode(FlowNodeBase):
    """Update attributes of an output device."""

    type: Literal["device in"] = "device in"
    device_id: str = Field(default="", alias="_device_id")
    device_type: str = Field(default="", alias="_device_type")
    attrs: str = "payload"


class HttpPostNode(FlowNodeBase):
    """Outbound HTTP request.

    An empty url or the method 'use' means the value is taken from the
    internal variables 'url' / 'method' at codegen time.
    """

    type: Literal["http request out"] = "http request out"
    url: str = ""
    method: str = "POST"
    body: str = "payload"


class EmailNode(FlowNodeBase):
    type: Literal["e-mail"] = "e-mail"
    to: str = ""
    sender: str = Field(default="", alias="from")
    subject: str = ""
    server: str = ""
    body: str = "payload"


class HistoryNode(FlowNodeBase):
    """Forward events to the history store."""

    type: Literal["history"] = "history"


class UnsupportedNode(FlowNodeBase):
    """Any node type the translator does not handle."""

    pass


FlowNode = (
    SourceNode
    | SwitchNode
    | EdgeDetectionNode
    | GeofenceNode
    | ChangeNode
    | TemplateNode
    | UpdateNode
    | HttpPostNode
    | EmailNode
    | HistoryNode
    | UnsupportedNode
)

NODE_MODELS: dict[NodeType, type[FlowNodeBase]] = {
    NodeType.SOURCE: SourceNode,
    NodeType.SWITCH: SwitchNode,
    NodeType.EDGE_DETECTION: EdgeDetectionNode,
    NodeType.GEOFENCE: GeofenceNode,
    NodeType.CHANGE: ChangeNode,
    NodeType.TEMPLATE: TemplateNode,
    NodeType.UPDATE: UpdateNode,
    NodeType.HTTP_POST: HttpPostNode,
    NodeType.EMAIL: EmailNode,
    NodeType.HISTORY: HistoryNode,
}


def parse_node(descriptor: dict[str, Any]) -> FlowNode:
    """Parse one node descriptor into its typed model.

    Raises:
        InvalidFlowError: If the descriptor has no id or does not validate.
    """
    if not isinstance(descriptor, dict) or not descriptor.get("id"):
        raise InvalidFlowError(f"Node descriptor without id: {descriptor!r}")

    tag = descriptor.get("type", "")
    try:
        model = NODE_MODELS[NodeType(tag)]
    except ValueError:
        model = UnsupportedNode

    try:
        return model.model_validate(descriptor)
    except ValidationError as e:
        raise InvalidFlowError(f"Invalid node '{descriptor['id']}' ({tag}): {e}") from e


@dataclass(frozen=True)
class FlowGraph:
    """Read-only mapping from node id to node, in descriptor order.

    Every wire must point at a node of the same flow, whether or not
    traversal would ever follow it.
    """

    nodes: dict[str, FlowNode] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for node in self.nodes.values():
            for port in node.wires:
                for target_id in port:
                    if target_id not in self.nodes:
                        raise DanglingWireError(node.id, target_id)

    @classmethod
    def from_descriptors(cls, descriptors: list[dict[str, Any]]) -> FlowGraph:
        nodes: dict[str, FlowNode] = {}
        for descriptor in descriptors:
            node = parse_node(descriptor)
            if node.id in nodes:
                raise InvalidFlowError(f"Duplicate node id: {node.id}")
            nodes[node.id] = node
        logger.debug(f"Parsed flow graph with {len(nodes)} nodes")
        return cls(nodes=nodes)

    def get(self, node_id: str) -> FlowNode | None:
        return self.nodes.get(node_id)

    def sources(self) -> list[SourceNode]:
        return [node for node in self.nodes.values() if isinstance(node, SourceNode)]
