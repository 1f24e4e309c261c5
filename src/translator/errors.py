"""Fatal translation errors.

Condition-level problems are never raised; they come back as
ConditionResult values (see compiler.condition_builder). Only structural
problems with the flow graph itself abort a translation.
"""


class TranslationError(Exception):
    """Raised when flow translation fails."""

    pass


class InvalidFlowError(TranslationError):
    """A node descriptor could not be parsed."""

    pass


class DanglingWireError(TranslationError):
    """A wire references a node id that is not part of the flow."""

    def __init__(self, source_id: str, target_id: str):
        super().__init__(f"Node '{source_id}' is wired to unknown node '{target_id}'")
        self.source_id = source_id
        self.target_id = target_id


class CyclicGraphError(TranslationError):
    """A node was reached twice along the same traversal path."""

    def __init__(self, path: list[str]):
        super().__init__(f"Cycle detected in flow: {' -> '.join(path)}")
        self.path = path
