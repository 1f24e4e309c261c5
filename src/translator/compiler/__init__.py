"""Compiler package for flow translation.

Phases:
1. condition_builder  - Build typed IR Conditions from switch/edge/geofence rules
2. template_resolver  - Resolve moustache placeholders in action templates

Condition building happens during traversal and records into the Draft;
template resolution is deferred to rule generation.
"""

from src.translator.compiler.condition_builder import (
    NO_NEGATED_FORM,
    ConditionErrorKind,
    ConditionResult,
    add_condition,
    add_negated_conditions,
)
from src.translator.compiler.template_resolver import (
    ResolvedTemplate,
    resolve_template,
    resolve_value,
)

__all__ = [
    "NO_NEGATED_FORM",
    "ConditionErrorKind",
    "ConditionResult",
    "ResolvedTemplate",
    "add_condition",
    "add_negated_conditions",
    "resolve_template",
    "resolve_value",
]
