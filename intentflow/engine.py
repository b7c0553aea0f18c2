"""Sequential workflow execution engine."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from pydantic.alias_generators import to_snake

from .context import (
    begin_step,
    create_workflow_context,
    mark_step_completed,
    merge_inputs,
    record_skipped_step,
    record_step_result,
)
from .contracts import (
    StepResult,
    WorkflowContext,
    WorkflowDefinition,
    WorkflowOverrides,
    WorkflowResult,
    WorkflowStep,
)
from .exceptions import StepFailedError, WorkflowNotFoundError
from .executor import StepExecutor
from .expressions import evaluate_condition
from .loader import WorkflowLoader
from .utils.hooks import call_optional, maybe_await
from .utils.ids import generate_execution_id
from .utils.retry import schedule_retry

if TYPE_CHECKING:
    from .persistence.models import ExecutionState

logger = logging.getLogger(__name__)

__all__ = ["WorkflowEngine", "apply_overrides", "generate_execution_id"]

OverridesLike = Union[WorkflowOverrides, Dict[str, Any], None]


def _coerce_overrides(overrides: OverridesLike) -> Optional[WorkflowOverrides]:
    if overrides is None or isinstance(overrides, WorkflowOverrides):
        return overrides
    return WorkflowOverrides.model_validate(overrides)


def apply_overrides(
    definition: WorkflowDefinition, overrides: OverridesLike = None
) -> WorkflowDefinition:
    """Return ``definition`` with skipped steps removed and step fields replaced.

    The input definition is never modified.
    """
    overrides = _coerce_overrides(overrides)
    if overrides is None:
        return definition

    steps = list(definition.steps)
    if overrides.skip_steps:
        steps = [step for step in steps if step.id not in overrides.skip_steps]

    if overrides.step_overrides:
        merged: List[WorkflowStep] = []
        for step in steps:
            override = overrides.step_overrides.get(step.id)
            if override:
                fields = step.model_dump()
                fields.update({to_snake(key): value for key, value in override.items()})
                step = WorkflowStep.model_validate(fields)
            merged.append(step)
        steps = merged

    return definition.model_copy(update={"steps": steps})


def _elapsed_ms(started: float) -> float:
    return (time.monotonic() - started) * 1000


class WorkflowEngine:
    """Runs workflow steps in order against a ``StepExecutor``.

    The engine owns the ``WorkflowContext`` for the duration of one
    ``execute_workflow`` call and never raises to its caller: aborts are
    reported through a failed ``WorkflowResult`` that still carries every
    step result gathered so far.
    """

    def __init__(
        self,
        executor: StepExecutor,
        loader: Optional[WorkflowLoader] = None,
        retry_backoff: float = 0.0,
    ) -> None:
        self._executor = executor
        self._loader = loader
        self._retry_backoff = retry_backoff

    @property
    def executor(self) -> StepExecutor:
        return self._executor

    @property
    def loader(self) -> WorkflowLoader:
        if self._loader is None:
            self._loader = WorkflowLoader.from_config()
        return self._loader

    async def _call_hook(self, name: str, *args: Any) -> Any:
        return await call_optional(self._executor, name, *args)

    async def execute_workflow_by_id(
        self,
        workflow_id: str,
        inputs: Dict[str, Any],
        overrides: OverridesLike = None,
        intention_id: Optional[str] = None,
    ) -> WorkflowResult:
        """Load ``workflow_id`` through the loader and execute it."""
        definition = self.loader.get_workflow(workflow_id)
        if definition is None:
            raise WorkflowNotFoundError(workflow_id)
        return await self.execute_workflow(definition, inputs, overrides, intention_id)

    async def execute_workflow(
        self,
        definition: WorkflowDefinition,
        inputs: Dict[str, Any],
        overrides: OverridesLike = None,
        intention_id: Optional[str] = None,
    ) -> WorkflowResult:
        """Execute ``definition`` and return its terminal result."""
        execution_id = generate_execution_id()
        started = time.monotonic()

        context = create_workflow_context(definition.id, inputs or {}, intention_id)

        step_results: List[StepResult] = []
        created_files: List[str] = []
        modified_files: List[str] = []

        try:
            overrides = _coerce_overrides(overrides)
            effective = apply_overrides(definition, overrides)
            if overrides is not None:
                merge_inputs(context, overrides.additional_context)

            logger.info(
                f"Starting workflow {definition.id} (execution {execution_id}, "
                f"{len(effective.steps)} steps)"
            )
            await self._call_hook("on_workflow_start", effective, context)

            for step in effective.steps:
                begin_step(context, step.id)

                if step.condition and not evaluate_condition(step.condition, context):
                    step_results.append(record_skipped_step(context, step.id))
                    logger.info(f"Skipping step {step.id}: condition not met")
                    continue

                if step.refine_prd and step.prd_questions:
                    collected = await self._call_hook("collect_step_inputs", step, context)
                    merge_inputs(context, collected)

                result = await self._run_step(step, context, effective)

                step_results.append(result)
                record_step_result(context, result)
                created_files.extend(result.created_files or [])
                modified_files.extend(result.modified_files or [])

                await self._call_hook("on_step_complete", step, result, context)

                if result.status == "failed" and not step.continue_on_error:
                    raise StepFailedError(step.id, result.error)
                if result.status == "failed":
                    logger.warning(
                        f"Step {step.id} failed but continueOnError is set: {result.error}"
                    )

                mark_step_completed(context, step.id)
                logger.info(f"Step {step.id} finished with status {result.status}")

            workflow_result = WorkflowResult(
                success=True,
                workflow_id=definition.id,
                execution_id=execution_id,
                outputs=self._collect_outputs(effective, step_results),
                steps=step_results,
                created_files=created_files,
                modified_files=modified_files,
                duration=_elapsed_ms(started),
            )

            await self._call_hook("on_workflow_complete", workflow_result, context)
            logger.info(f"Workflow {definition.id} completed (execution {execution_id})")
            return workflow_result

        except Exception as exc:
            logger.error(f"Workflow {definition.id} failed (execution {execution_id}): {exc}")
            try:
                await self._call_hook("on_workflow_error", exc, context)
            except Exception:
                logger.exception("on_workflow_error hook raised")

            return WorkflowResult(
                success=False,
                workflow_id=definition.id,
                execution_id=execution_id,
                outputs={},
                steps=step_results,
                created_files=created_files,
                modified_files=modified_files,
                duration=_elapsed_ms(started),
                error=str(exc),
            )

    async def _run_step(
        self,
        step: WorkflowStep,
        context: WorkflowContext,
        definition: WorkflowDefinition,
    ) -> StepResult:
        """Run ``step`` with up to ``retry_count`` extra attempts on exceptions."""
        max_retries = step.retry_count or 0
        last_error: Optional[Exception] = None

        for attempt in range(max_retries + 1):
            try:
                result = await maybe_await(
                    self._executor.execute_step(step, context, definition)
                )
                if not isinstance(result, StepResult):
                    result = StepResult.model_validate(result)
                return result
            except Exception as exc:
                last_error = exc
                logger.warning(
                    f"Step {step.id} attempt {attempt + 1}/{max_retries + 1} failed: {exc}"
                )
                if attempt < max_retries and self._retry_backoff > 0:
                    await schedule_retry(attempt + 1, factor=self._retry_backoff)

        return StepResult(
            step_id=step.id,
            status="failed",
            outputs={},
            duration=0,
            error=(str(last_error) if last_error else "") or "Step execution failed",
        )

    @staticmethod
    def _collect_outputs(
        definition: WorkflowDefinition, step_results: List[StepResult]
    ) -> Dict[str, Any]:
        outputs: Dict[str, Any] = {}
        for name in definition.outputs:
            for result in step_results:
                if name in result.outputs:
                    outputs[name] = result.outputs[name]
        return outputs

    async def resume_workflow(
        self, state: ExecutionState, executor: Optional[StepExecutor] = None
    ) -> WorkflowResult:
        """Re-run a saved execution from ``state.current_step_index`` onwards.

        Only the original inputs carry over. Outputs of steps completed before
        the checkpoint are not restored, so ``{{steps.<id>.<name>}}`` references
        to them stay unresolved in the resumed run.
        """
        definition = self.loader.get_workflow(state.workflow_id)
        if definition is None:
            raise WorkflowNotFoundError(state.workflow_id)

        partial = definition.model_copy(
            update={"steps": definition.steps[state.current_step_index :]}
        )
        logger.info(
            f"Resuming execution {state.id} of {state.workflow_id} "
            f"at step {state.current_step_index + 1}"
        )

        engine = self
        if executor is not None:
            engine = WorkflowEngine(
                executor, loader=self._loader, retry_backoff=self._retry_backoff
            )
        return await engine.execute_workflow(
            partial,
            dict(state.context.inputs),
            None,
            state.intention_id,
        )
