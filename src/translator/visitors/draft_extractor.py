"""DraftExtractor - walks a flow graph and collects completed drafts.

Starting from a source node, every path that reaches a sink yields one
Draft. Decision nodes fork the walk, one cloned draft per rule; mutators
and geofences extend the current draft in place.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from src.translator.builders import ActionBuilder
from src.translator.compiler.condition_builder import (
    add_condition,
    add_negated_conditions,
    strip_property_prefix,
)
from src.translator.draft import Draft
from src.translator.enums import (
    EdgeDirection,
    GeofenceFilter,
    LogicalOperator,
    PatternSlot,
    SpatialRelation,
)
from src.translator.errors import CyclicGraphError

from .base import FlowNodeVisitor

if TYPE_CHECKING:
    from src.config import Settings
    from src.translator.compiler.condition_builder import ConditionResult
    from src.translator.flow import (
        ChangeNode,
        ChangeRule,
        EdgeDetectionNode,
        EmailNode,
        FlowGraph,
        FlowNode,
        GeofenceNode,
        HistoryNode,
        HttpPostNode,
        SourceNode,
        SwitchNode,
        TemplateNode,
        UpdateNode,
    )

logger = logging.getLogger(__name__)


def geofence_tests(
    geofence_filter: GeofenceFilter,
) -> list[tuple[PatternSlot, SpatialRelation]]:
    """Spatial tests implementing a geofence filter.

    Steady states test a single event; transitions test where the device
    was (first event) and where it is now (second event).
    """
    match geofence_filter:
        case GeofenceFilter.INSIDE:
            return [(PatternSlot.FIXED, SpatialRelation.COVERED_BY)]
        case GeofenceFilter.OUTSIDE:
            return [(PatternSlot.FIXED, SpatialRelation.DISJOINT)]
        case GeofenceFilter.ENTERS:
            return [
                (PatternSlot.FIRST, SpatialRelation.DISJOINT),
                (PatternSlot.SECOND, SpatialRelation.COVERED_BY),
            ]
        case GeofenceFilter.EXITS:
            return [
                (PatternSlot.FIRST, SpatialRelation.COVERED_BY),
                (PatternSlot.SECOND, SpatialRelation.DISJOINT),
            ]


def change_value(rule: ChangeRule) -> Any:
    """Value a change rule stores, interpreted by its value type.

    Message references become unresolved templates; they are resolved at
    codegen time, once every producer on the path has run.
    """
    match rule.tot:
        case "msg":
            return "{{" + str(rule.to) + "}}"
        case "num" if isinstance(rule.to, str):
            try:
                return int(rule.to)
            except ValueError:
                try:
                    return float(rule.to)
                except ValueError:
                    return rule.to
        case "bool" if isinstance(rule.to, str):
            return rule.to.strip().lower() == "true"
        case "json" if isinstance(rule.to, str):
            try:
                return json.loads(rule.to)
            except json.JSONDecodeError:
                logger.warning(f"Change rule for '{rule.p}' holds invalid JSON, kept as text")
                return rule.to
        case _:
            return rule.to


class DraftExtractor(FlowNodeVisitor[list[Draft]]):
    """Collects the drafts reachable from a node.

    The walk is a pure function of (graph, node, draft): sibling branches
    always receive independent clones. Revisiting a node on the current
    path raises CyclicGraphError.

    Example:
        extractor = DraftExtractor(graph, settings)
        drafts = extractor.extract(graph.get("source-1"))
    """

    def __init__(self, graph: FlowGraph, settings: Settings):
        self.graph = graph
        self.settings = settings

    def extract(self, node: FlowNode, draft: Draft | None = None) -> list[Draft]:
        return self.visit(node, draft.clone() if draft is not None else Draft())

    def visit(self, node: FlowNode, draft: Draft, path: tuple[str, ...] = ()) -> list[Draft]:
        if node.id in path:
            raise CyclicGraphError([*path, node.id])
        return super().visit(node, draft, (*path, node.id))

    def visit_default(self, node: FlowNode, draft: Draft, path: tuple[str, ...]) -> list[Draft]:
        logger.debug(f"Skipping unsupported node '{node.id}' ({node.type})")
        return []

    # -------------------------------------------------------------------------
    # Wiring
    # -------------------------------------------------------------------------

    def _follow(
        self,
        node: FlowNode,
        port: int,
        draft: Draft,
        path: tuple[str, ...],
        clone: bool = False,
    ) -> list[Draft]:
        """Descend into every node wired to a port.

        Fan-out gives each wire its own clone. An unwired port ends the
        branch without producing a draft.
        """
        targets = node.port(port)
        if not targets:
            logger.debug(f"Node '{node.id}' port {port} is not wired, branch dropped")
            return []

        drafts: list[Draft] = []
        for target_id in targets:
            target = self.graph.nodes[target_id]
            branch = draft.clone() if clone or len(targets) > 1 else draft
            drafts.extend(self.visit(target, branch, path))
        return drafts

    def _failed(self, node: FlowNode, results: list[ConditionResult]) -> bool:
        failures = [r for r in results if not r.ok]
        for failure in failures:
            logger.warning(
                f"Node '{node.id}': branch dropped, {failure.error.value}: {failure.message}"
            )
        return bool(failures)

    # -------------------------------------------------------------------------
    # Sources
    # -------------------------------------------------------------------------

    def visit_SourceNode(self, node: SourceNode, draft: Draft, path: tuple[str, ...]) -> list[Draft]:
        draft = draft.clone()
        draft.input_device.type = node.device_type
        draft.input_device.id = node.device_id
        return self._follow(node, 0, draft, path, clone=True)

    # -------------------------------------------------------------------------
    # Decisions
    # -------------------------------------------------------------------------

    def visit_SwitchNode(self, node: SwitchNode, draft: Draft, path: tuple[str, ...]) -> list[Draft]:
        drafts: list[Draft] = []
        for index, rule in enumerate(node.rules):
            try:
                op = LogicalOperator(rule.t)
            except ValueError:
                logger.warning(f"Switch '{node.id}': unsupported operator '{rule.t}', no branch")
                continue

            branch = draft.clone()
            match op:
                case LogicalOperator.BETWEEN:
                    bounds = None if rule.v is None or rule.v2 is None else f"{rule.v}..{rule.v2}"
                    results = [
                        add_condition(branch, node.property, LogicalOperator.EQ, bounds, rule.vt)
                    ]
                case LogicalOperator.ELSE:
                    results = add_negated_conditions(branch, node)
                    if node.property:
                        branch.input_device.add_attribute(strip_property_prefix(node.property))
                case _:
                    results = [add_condition(branch, node.property, op, rule.v, rule.vt)]

            if self._failed(node, results):
                continue
            drafts.extend(self._follow(node, index, branch, path))
        return drafts

    def visit_EdgeDetectionNode(
        self, node: EdgeDetectionNode, draft: Draft, path: tuple[str, ...]
    ) -> list[Draft]:
        drafts: list[Draft] = []
        for index, rule in enumerate(node.rules):
            match rule.t:
                case EdgeDirection.RISING:
                    before, after = LogicalOperator.LT, LogicalOperator.GTE
                case EdgeDirection.FALLING:
                    before, after = LogicalOperator.GTE, LogicalOperator.LT
                case _:
                    logger.warning(f"Edge detection '{node.id}': unknown rule '{rule.t}', no branch")
                    continue

            branch = draft.clone()
            results = [
                add_condition(branch, node.property, before, rule.v, rule.vt, PatternSlot.FIRST),
                add_condition(branch, node.property, after, rule.v, rule.vt, PatternSlot.SECOND),
            ]
            if self._failed(node, results):
                continue
            drafts.extend(self._follow(node, index, branch, path))
        return drafts

    def visit_GeofenceNode(
        self, node: GeofenceNode, draft: Draft, path: tuple[str, ...]
    ) -> list[Draft]:
        try:
            geofence_filter = GeofenceFilter(node.filter)
        except ValueError:
            logger.warning(f"Geofence '{node.id}': unsupported filter '{node.filter}', branch dropped")
            return []

        results = [
            add_condition(draft, None, relation, node.points, node.mode, slot)
            for slot, relation in geofence_tests(geofence_filter)
        ]
        if self._failed(node, results):
            return []
        return self._follow(node, 0, draft, path)

    # -------------------------------------------------------------------------
    # Mutators
    # -------------------------------------------------------------------------

    def visit_ChangeNode(self, node: ChangeNode, draft: Draft, path: tuple[str, ...]) -> list[Draft]:
        for rule in node.rules:
            if rule.t != "set":
                logger.debug(f"Change '{node.id}': ignoring '{rule.t}' rule on '{rule.p}'")
                continue
            draft.set_internal_variable(rule.p, change_value(rule))
        return self._follow(node, 0, draft, path)

    def visit_TemplateNode(
        self, node: TemplateNode, draft: Draft, path: tuple[str, ...]
    ) -> list[Draft]:
        draft.set_internal_variable(node.field, node.template)
        return self._follow(node, 0, draft, path)

    # -------------------------------------------------------------------------
    # Sinks
    # -------------------------------------------------------------------------

    def _complete(self, node: FlowNode, draft: Draft) -> list[Draft]:
        draft.action = ActionBuilder.build_action(node, self.settings)
        return [draft]

    def visit_UpdateNode(self, node: UpdateNode, draft: Draft, path: tuple[str, ...]) -> list[Draft]:
        return self._complete(node, draft)

    def visit_HttpPostNode(
        self, node: HttpPostNode, draft: Draft, path: tuple[str, ...]
    ) -> list[Draft]:
        return self._complete(node, draft)

    def visit_EmailNode(self, node: EmailNode, draft: Draft, path: tuple[str, ...]) -> list[Draft]:
        return self._complete(node, draft)

    def visit_HistoryNode(
        self, node: HistoryNode, draft: Draft, path: tuple[str, ...]
    ) -> list[Draft]:
        return self._complete(node, draft)


def extract_drafts(
    graph: FlowGraph, node: FlowNode, draft: Draft, settings: Settings
) -> list[Draft]:
    """Functional entry point: drafts reachable from `node` starting with `draft`."""
    return DraftExtractor(graph, settings).extract(node, draft)
