"""Formatting and parsing helpers for the CLI."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Optional

from intentflow.contracts import StepResult, WorkflowDefinition

_STATUS_MARKERS = {
    "success": "ok",
    "failed": "FAILED",
    "skipped": "skipped",
}


def _parse_input_pairs(pairs: Iterable[str]) -> Dict[str, Any]:
    """Turn ``key=value`` strings into a dict, decoding JSON values when possible."""
    parsed: Dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Expected key=value, got {pair!r}")
        key, raw = pair.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError(f"Missing input name in {pair!r}")
        try:
            parsed[key] = json.loads(raw)
        except json.JSONDecodeError:
            parsed[key] = raw
    return parsed


def _build_inputs(pairs: Iterable[str], inputs_json: Optional[str]) -> Dict[str, Any]:
    inputs: Dict[str, Any] = {}
    if inputs_json:
        decoded = json.loads(inputs_json)
        if not isinstance(decoded, dict):
            raise ValueError("--inputs-json must be a JSON object")
        inputs.update(decoded)
    inputs.update(_parse_input_pairs(pairs))
    return inputs


def _format_duration(duration_ms: float) -> str:
    return f"{duration_ms / 1000:.1f}s"


def _format_step_line(result: StepResult) -> str:
    line = f"- {result.step_id}: {_STATUS_MARKERS.get(result.status, result.status)}"
    if result.error:
        line += f" ({result.error})"
    return line


def _describe_workflow(definition: WorkflowDefinition) -> list[str]:
    lines = [f"{definition.id}: {definition.name}"]
    if definition.description:
        lines.append(definition.description)
    if definition.version:
        lines.append(f"Version: {definition.version}")
    if definition.inputs:
        lines.append("Inputs:")
        for item in definition.inputs:
            flag = "required" if item.required else "optional"
            lines.append(f"  {item.name} ({item.type}, {flag})")
    lines.append("Steps:")
    for index, step in enumerate(definition.steps, start=1):
        line = f"  {index}. {step.id} - {step.name}"
        if step.condition:
            line += f" [if {step.condition}]"
        if step.continue_on_error:
            line += " [continue on error]"
        if step.retry_count:
            line += f" [retries: {step.retry_count}]"
        lines.append(line)
    if definition.outputs:
        lines.append(f"Outputs: {', '.join(definition.outputs)}")
    return lines
