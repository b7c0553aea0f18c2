"""Step executor interface and a dry-run implementation."""

from __future__ import annotations

import abc
import logging
import time
from typing import Any, Dict, Optional

from .contracts import (
    StepResult,
    WorkflowContext,
    WorkflowDefinition,
    WorkflowResult,
    WorkflowStep,
)
from .expressions import interpolate

logger = logging.getLogger(__name__)


class StepExecutor(metaclass=abc.ABCMeta):
    """Host-supplied component that carries out a step's work.

    Only ``execute_step`` is required. The engine looks the lifecycle hooks
    up by name, so duck-typed executors may omit any of them; both coroutine
    functions and plain functions are accepted.
    """

    @abc.abstractmethod
    async def execute_step(
        self,
        step: WorkflowStep,
        context: WorkflowContext,
        definition: WorkflowDefinition,
    ) -> StepResult:
        """Execute ``step`` and return its result."""
        raise NotImplementedError

    async def on_workflow_start(
        self, definition: WorkflowDefinition, context: WorkflowContext
    ) -> None:
        """Called once before the first step."""
        pass

    async def on_step_complete(
        self, step: WorkflowStep, result: StepResult, context: WorkflowContext
    ) -> None:
        """Called after every executed step, failed ones included."""
        pass

    async def on_workflow_complete(
        self, result: WorkflowResult, context: WorkflowContext
    ) -> None:
        pass

    async def on_workflow_error(
        self, error: Exception, context: WorkflowContext
    ) -> None:
        pass

    async def collect_step_inputs(
        self, step: WorkflowStep, context: WorkflowContext
    ) -> Dict[str, Any]:
        """Return answers to ``step.prd_questions``, merged into the inputs."""
        return {}


class DryRunExecutor(StepExecutor):
    """Render each step's prompt instead of sending it anywhere.

    Every declared output receives the rendered prompt, which makes the data
    flow between steps visible without a model behind it.
    """

    def __init__(self, answers: Optional[Dict[str, Any]] = None) -> None:
        self.answers = answers or {}
        self.rendered: Dict[str, str] = {}

    async def execute_step(
        self,
        step: WorkflowStep,
        context: WorkflowContext,
        definition: WorkflowDefinition,
    ) -> StepResult:
        started = time.monotonic()
        prompt = interpolate(step.prompt, context)
        self.rendered[step.id] = prompt
        logger.debug(f"Rendered prompt for {definition.id}/{step.id}: {prompt}")

        outputs: Dict[str, Any] = {"prompt": prompt}
        for output in step.outputs:
            outputs[output.name] = prompt

        return StepResult(
            step_id=step.id,
            status="success",
            outputs=outputs,
            duration=(time.monotonic() - started) * 1000,
        )

    async def collect_step_inputs(
        self, step: WorkflowStep, context: WorkflowContext
    ) -> Dict[str, Any]:
        collected: Dict[str, Any] = {}
        for question in step.prd_questions or []:
            if question.id in self.answers:
                collected[question.id] = self.answers[question.id]
            elif question.default is not None:
                collected[question.id] = question.default
        return collected
