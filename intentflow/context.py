"""Helpers for building and updating a ``WorkflowContext``."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .contracts import StepResult, WorkflowContext, utcnow


def create_workflow_context(
    workflow_id: str,
    inputs: Dict[str, Any],
    intention_id: Optional[str] = None,
) -> WorkflowContext:
    """Return a fresh context with no step history."""
    now = utcnow()
    return WorkflowContext(
        inputs=dict(inputs),
        workflow_id=workflow_id,
        intention_id=intention_id,
        started_at=now,
        updated_at=now,
    )


def begin_step(context: WorkflowContext, step_id: str) -> None:
    context.current_step = step_id
    context.updated_at = utcnow()


def record_skipped_step(context: WorkflowContext, step_id: str) -> StepResult:
    """Record a condition skip: empty outputs, zero duration."""
    result = StepResult(step_id=step_id, status="skipped", outputs={}, duration=0)
    context.steps[step_id] = result
    context.skipped_steps.append(step_id)
    return result


def record_step_result(context: WorkflowContext, result: StepResult) -> None:
    context.steps[result.step_id] = result
    context.updated_at = utcnow()


def mark_step_completed(context: WorkflowContext, step_id: str) -> None:
    context.completed_steps.append(step_id)


def merge_inputs(context: WorkflowContext, values: Optional[Dict[str, Any]]) -> None:
    """Merge step-collected values into the run's inputs."""
    if values:
        context.inputs.update(values)
