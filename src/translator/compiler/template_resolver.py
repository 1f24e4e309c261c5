"""Template resolution for rule actions.

Flow editors write placeholders as moustache tags over message paths
("{{payload.temperature}}"). The rule engine expects "${temperature}" and
needs every referenced name projected by the rule's select clause, so
resolution returns both the rewritten text and the variables it found.

Example:
    resolve_template("Attributes {{payload.attr1}} and {{payload.attr2}}")
    -> resolved:  "Attributes ${attr1} and ${attr2}"
       variables: ("attr1", "attr2")
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

OPEN_MARKER = "{{"
CLOSE_MARKER = "}}"


@dataclass(frozen=True)
class ResolvedTemplate:
    """Rewritten template and the variables it references, first-seen order."""

    resolved: str
    variables: tuple[str, ...] = ()


def variable_name(path: str) -> str:
    """Variable referenced by a dotted path: its last segment."""
    return path.strip().rpartition(".")[2]


def resolve_template(template: str) -> ResolvedTemplate:
    """Rewrite every placeholder in a string.

    An opening marker without a matching close leaves the rest of the
    string untouched.
    """
    resolved = template
    variables: list[str] = []

    begin = resolved.find(OPEN_MARKER)
    end = resolved.find(CLOSE_MARKER, begin + len(OPEN_MARKER)) if begin >= 0 else -1
    while begin >= 0 and end >= 0:
        name = variable_name(resolved[begin + len(OPEN_MARKER) : end])
        if name and name not in variables:
            variables.append(name)
        replacement = "${" + name + "}"
        resolved = resolved[:begin] + replacement + resolved[end + len(CLOSE_MARKER) :]

        begin = resolved.find(OPEN_MARKER, begin + len(replacement))
        end = resolved.find(CLOSE_MARKER, begin + len(OPEN_MARKER)) if begin >= 0 else -1

    return ResolvedTemplate(resolved=resolved, variables=tuple(variables))


def resolve_value(value: Any) -> tuple[Any, tuple[str, ...]]:
    """Resolve placeholders inside an arbitrary declared value.

    Objects and lists are serialized to JSON, resolved, and parsed back.
    Strings are resolved as-is. Anything else has nothing to resolve.

    Returns:
        (resolved value, referenced variables)
    """
    if isinstance(value, (dict, list)):
        result = resolve_template(json.dumps(value, ensure_ascii=False))
        return json.loads(result.resolved), result.variables
    if isinstance(value, str):
        result = resolve_template(value)
        return result.resolved, result.variables
    return value, ()
