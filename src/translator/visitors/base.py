"""Base visitor class for flow node traversal."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from src.translator.draft import Draft
    from src.translator.flow import FlowNode

T = TypeVar("T")


class FlowNodeVisitor(ABC, Generic[T]):
    """Abstract visitor over flow nodes.

    Subclasses implement visit methods for the node classes they handle.
    Each visit receives the node, the draft accumulated so far and the ids
    of the nodes already on the current path.

    Type parameter T is the return type of visit methods.

    Usage:
        class MyVisitor(FlowNodeVisitor[int]):
            def visit_default(self, node, draft, path):
                return 0

            def visit_SwitchNode(self, node, draft, path):
                return len(node.rules)
    """

    def visit(self, node: FlowNode, draft: Draft, path: tuple[str, ...] = ()) -> T:
        """Dispatch to the appropriate visit method.

        Looks for visit_{ClassName} method, falls back to visit_default.
        """
        method_name = f"visit_{type(node).__name__}"
        visitor = getattr(self, method_name, self.visit_default)
        return visitor(node, draft, path)

    @abstractmethod
    def visit_default(self, node: FlowNode, draft: Draft, path: tuple[str, ...]) -> T:
        """Handler for node types without a specific visit method."""
        ...
