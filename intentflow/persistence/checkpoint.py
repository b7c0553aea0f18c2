"""Executor wrapper that checkpoints execution state around a run."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..contracts import (
    StepResult,
    WorkflowContext,
    WorkflowDefinition,
    WorkflowResult,
    WorkflowStep,
)
from ..executor import StepExecutor
from ..utils.hooks import call_optional, maybe_await
from ..utils.ids import random_suffix, timestamp_base36
from .models import create_execution_state
from .repository import ExecutionStore

logger = logging.getLogger(__name__)


class CheckpointingExecutor(StepExecutor):
    """Delegate to ``inner`` while saving an ``ExecutionState`` after each step.

    ``current_step_index`` is the index of the first step a resume should run.
    It is computed against ``definition`` when given (pass the un-overridden
    definition so indices line up with ``resume_workflow``), otherwise against
    the definition the engine runs, shifted by ``start_index``.
    """

    def __init__(
        self,
        inner: Any,
        store: ExecutionStore,
        definition: Optional[WorkflowDefinition] = None,
        start_index: int = 0,
    ) -> None:
        self.inner = inner
        self.store = store
        self.execution_id: Optional[str] = None
        self._definition = definition
        self._offset = 0 if definition is not None else start_index
        self._step_ids: list[str] = []

    def _position(self, step_id: str) -> int:
        if step_id in self._step_ids:
            return self._offset + self._step_ids.index(step_id)
        return self._offset

    async def on_workflow_start(
        self, definition: WorkflowDefinition, context: WorkflowContext
    ) -> None:
        source = self._definition or definition
        self._step_ids = [step.id for step in source.steps]
        self.execution_id = (
            f"{context.workflow_id}-{timestamp_base36()}-{random_suffix(4)}"
        )

        state = create_execution_state(
            self.execution_id, definition.id, context, context.intention_id
        )
        state.status = "running"
        state.current_step_index = self._offset
        await self.store.save(state)
        logger.info(f"Checkpointing execution {self.execution_id}")

        await call_optional(self.inner, "on_workflow_start", definition, context)

    async def execute_step(
        self,
        step: WorkflowStep,
        context: WorkflowContext,
        definition: WorkflowDefinition,
    ) -> StepResult:
        return await maybe_await(self.inner.execute_step(step, context, definition))

    async def on_step_complete(
        self, step: WorkflowStep, result: StepResult, context: WorkflowContext
    ) -> None:
        if self.execution_id:
            index = self._position(step.id)
            # a fatal failure is retried on resume
            if not (result.status == "failed" and not step.continue_on_error):
                index += 1
            await self.store.update_status(
                self.execution_id,
                "running",
                current_step_index=index,
                context=context,
            )
        await call_optional(self.inner, "on_step_complete", step, result, context)

    async def on_workflow_complete(
        self, result: WorkflowResult, context: WorkflowContext
    ) -> None:
        if self.execution_id:
            await self.store.update_status(
                self.execution_id,
                "completed",
                current_step_index=self._offset + len(self._step_ids),
                context=context,
            )
        await call_optional(self.inner, "on_workflow_complete", result, context)

    async def on_workflow_error(
        self, error: Exception, context: WorkflowContext
    ) -> None:
        if self.execution_id:
            await self.store.update_status(
                self.execution_id, "failed", error=str(error), context=context
            )
            logger.info(f"Execution {self.execution_id} can be resumed")
        await call_optional(self.inner, "on_workflow_error", error, context)

    async def collect_step_inputs(
        self, step: WorkflowStep, context: WorkflowContext
    ) -> Dict[str, Any]:
        return await call_optional(self.inner, "collect_step_inputs", step, context) or {}
