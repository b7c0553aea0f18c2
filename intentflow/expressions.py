"""Template interpolation and condition evaluation.

Templates reference values with ``{{path}}``. ``steps.<stepId>.<output>``
reads a previous step's output; any other path is looked up in the run's
inputs, first as a direct key and then as a dotted walk through nested
mappings. Unresolved placeholders are left in place verbatim.

Conditions are a deliberately small grammar: ``<left> == <right>``,
``<left> != <right>``, or a single value checked for truthiness. Both sides
are parsed as literals after interpolation.
"""

from __future__ import annotations

import json
import re
from typing import Any

from .contracts import WorkflowContext

__all__ = ["interpolate", "evaluate_condition", "parse_literal", "resolve_path"]

_PLACEHOLDER = re.compile(r"\{\{([^}]+)\}\}")
_EQ = re.compile(r"^(.+?)\s*==\s*(.+)$")
_NEQ = re.compile(r"^(.+?)\s*!=\s*(.+)$")
_NUMBER = re.compile(r"-?\d+(\.\d+)?")

_MISSING = object()


def resolve_path(context: WorkflowContext, path: str) -> Any:
    """Return the value at ``path`` or the module's missing sentinel."""
    if path.startswith("steps."):
        parts = path.split(".")
        step_id = parts[1]
        output_name = ".".join(parts[2:])
        result = context.steps.get(step_id)
        if result is None:
            return _MISSING
        return result.outputs.get(output_name, _MISSING)

    if path in context.inputs:
        return context.inputs[path]

    current: Any = context.inputs
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _render(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(
            _whole_numbers(value), separators=(",", ":"), ensure_ascii=False, default=str
        )
    return str(_whole_numbers(value))


def _whole_numbers(value: Any) -> Any:
    """Turn floats with no fractional part into ints, recursively."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {key: _whole_numbers(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_whole_numbers(item) for item in value]
    return value


def interpolate(template: str, context: WorkflowContext) -> str:
    """Replace every resolvable ``{{path}}`` in ``template``."""

    def _substitute(match: re.Match[str]) -> str:
        value = resolve_path(context, match.group(1).strip())
        if value is _MISSING:
            return match.group(0)
        return _render(value)

    return _PLACEHOLDER.sub(_substitute, template)


def parse_literal(text: str) -> Any:
    """Parse a condition operand into a bool, None, number or string."""
    if text == "true":
        return True
    if text == "false":
        return False
    if text in ("null", "undefined"):
        return None
    if _NUMBER.fullmatch(text):
        return float(text) if "." in text else int(text)
    if (text.startswith('"') and text.endswith('"')) or (
        text.startswith("'") and text.endswith("'")
    ):
        return text[1:-1]
    return text


def _strict_equals(left: Any, right: Any) -> bool:
    # bool is an int subclass; keep true and 1 distinct
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    return type(left) is type(right) and left == right


def evaluate_condition(condition: str, context: WorkflowContext) -> bool:
    """Evaluate ``condition`` against ``context``.

    Examples:
        ``"{{includeTests}} == true"``, ``"{{mode}} != 'draft'"``,
        ``"{{steps.plan.approved}}"``
    """
    interpolated = interpolate(condition, context)

    match = _EQ.match(interpolated)
    if match:
        left = parse_literal(match.group(1).strip())
        right = parse_literal(match.group(2).strip())
        return _strict_equals(left, right)

    match = _NEQ.match(interpolated)
    if match:
        left = parse_literal(match.group(1).strip())
        right = parse_literal(match.group(2).strip())
        return not _strict_equals(left, right)

    return bool(parse_literal(interpolated.strip()))
