"""Command line interface for running and inspecting intentflow workflows."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import List, NoReturn, Optional

import typer

from intentflow import DryRunExecutor, WorkflowEngine, WorkflowLoader, get_store
from intentflow.cli_utils.format import (
    _build_inputs,
    _describe_workflow,
    _format_duration,
    _format_step_line,
)
from intentflow.config import load_config, setup_logging
from intentflow.contracts import WorkflowOverrides, WorkflowResult
from intentflow.exceptions import LoadError, WorkflowNotFoundError
from intentflow.persistence import CheckpointingExecutor, ExecutionStore

app = typer.Typer(help="CLI for intentflow workflows")

# Command groups
workflow_app = typer.Typer(help="Commands for workflow definitions")
execution_app = typer.Typer(help="Commands for persisted executions")

app.add_typer(workflow_app, name="workflow")
app.add_typer(execution_app, name="execution")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (defaults to configuration)"
    ),
) -> None:
    """intentflow CLI entry point."""
    setup_logging(log_level or load_config().log_level)


def _get_loader() -> WorkflowLoader:
    return WorkflowLoader.from_config()


def _get_store() -> ExecutionStore:
    return get_store(config=load_config())


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _echo_result(result: WorkflowResult, execution_id: Optional[str]) -> None:
    for step in result.steps:
        typer.echo(_format_step_line(step))
    if result.outputs:
        typer.echo("Outputs:")
        for name, value in result.outputs.items():
            rendered = value if isinstance(value, str) else json.dumps(value)
            typer.echo(f"  {name}: {rendered}")
    for path in result.created_files:
        typer.echo(f"Created: {path}")
    for path in result.modified_files:
        typer.echo(f"Modified: {path}")
    typer.echo(f"Duration: {_format_duration(result.duration)}")

    if result.success:
        typer.secho("Workflow completed", fg=typer.colors.GREEN)
        return

    typer.secho(f"Workflow failed: {result.error}", fg=typer.colors.RED)
    if execution_id:
        typer.echo(f"Resume with: intentflow execution resume {execution_id}")
    raise typer.Exit(code=1)


@workflow_app.command("list")
def workflow_list() -> None:
    """
    List workflow definitions in the configured workflows directory.

    Files that fail to load are skipped with a warning.

    Example:
        intentflow workflow list
        # Output: feature    Add a feature    3 steps
    """
    loader = _get_loader()
    workflows = loader.load_workflows()
    if not workflows:
        typer.echo("No workflows found")
        return
    for wf in workflows:
        typer.echo(f"{wf.id}\t{wf.name}\t{len(wf.steps)} steps")


@workflow_app.command("show")
def workflow_show(workflow_id: str) -> None:
    """Show inputs, steps and outputs of a workflow."""
    loader = _get_loader()
    try:
        definition = loader.get_workflow(workflow_id)
    except LoadError as exc:
        _fail(str(exc))
    if definition is None:
        _fail("Workflow not found")
    for line in _describe_workflow(definition):
        typer.echo(line)


@workflow_app.command("validate")
def workflow_validate(path: Path) -> None:
    """
    Validate a workflow document without running it.

    Example:
        intentflow workflow validate .context/workflows/feature.yaml
    """
    if not path.exists():
        _fail("Specified path does not exist")
    try:
        definition = _get_loader().load_workflow_file(path)
    except LoadError as exc:
        _fail(str(exc))
    if definition is None:
        _fail("Not a workflow document")
    typer.echo(f"Valid: {definition.id} ({len(definition.steps)} steps)")


@workflow_app.command("run")
def workflow_run(
    workflow_id: str,
    inputs: List[str] = typer.Option(
        [], "--input", "-i", help="Workflow input as key=value (repeatable)"
    ),
    inputs_json: Optional[str] = typer.Option(
        None, "--inputs-json", help="Workflow inputs as a JSON object"
    ),
    skip: List[str] = typer.Option([], "--skip", help="Step id to remove (repeatable)"),
    intention: Optional[str] = typer.Option(None, "--intention", help="Intention id"),
) -> None:
    """
    Run a workflow with the dry-run executor and checkpoint its progress.

    Each step's prompt is rendered against the inputs and earlier outputs.
    The execution is saved so it can be listed and resumed later.

    Example:
        intentflow workflow run feature -i name=login -i includeTests=true
        intentflow workflow run feature --skip docs
    """
    config = load_config()
    loader = WorkflowLoader(config.workflows_dir)
    try:
        definition = loader.get_workflow(workflow_id)
        run_inputs = _build_inputs(inputs, inputs_json)
    except (LoadError, ValueError) as exc:
        _fail(str(exc))
    if definition is None:
        _fail("Workflow not found")

    store = get_store(config=config)
    executor = CheckpointingExecutor(DryRunExecutor(), store, definition=definition)
    engine = WorkflowEngine(executor, loader=loader, retry_backoff=config.retry_backoff)
    overrides = WorkflowOverrides(skip_steps=skip) if skip else None

    typer.echo(f"Running workflow: {definition.name}")
    result = asyncio.run(
        engine.execute_workflow(definition, run_inputs, overrides, intention)
    )
    if executor.execution_id:
        typer.echo(f"Execution ID: {executor.execution_id}")
    _echo_result(result, executor.execution_id)


@execution_app.command("list")
def execution_list(
    status: Optional[str] = typer.Option(None, help="Only executions with this status"),
    workflow: Optional[str] = typer.Option(None, help="Only executions of this workflow"),
    limit: Optional[int] = typer.Option(None, help="Maximum number to show"),
) -> None:
    """
    List persisted executions, most recently updated first.

    Example:
        intentflow execution list --status failed --limit 5
        # Output: feature-lx2k3-ab12    feature    failed    2024-01-01T10:00:00+00:00
    """
    store = _get_store()
    states = asyncio.run(
        store.list_executions(status=status, workflow_id=workflow, limit=limit)
    )
    if not states:
        typer.echo("No executions found")
        return
    for state in states:
        typer.echo(
            f"{state.id}\t{state.workflow_id}\t{state.status}\t{state.updated_at.isoformat()}"
        )


@execution_app.command("show")
def execution_show(execution_id: str) -> None:
    """Show the saved state of an execution."""
    store = _get_store()
    state = asyncio.run(store.load(execution_id))
    if state is None:
        typer.echo("Execution not found")
        raise typer.Exit(code=1)
    typer.echo(f"Execution {state.id}: {state.status}")
    typer.echo(f"Workflow: {state.workflow_id}")
    if state.intention_id:
        typer.echo(f"Intention: {state.intention_id}")
    typer.echo(f"Next step index: {state.current_step_index}")
    typer.echo(f"Started: {state.started_at.isoformat()}")
    typer.echo(f"Updated: {state.updated_at.isoformat()}")
    if state.error:
        typer.echo(f"Error: {state.error}")
    for result in state.context.steps.values():
        typer.echo(_format_step_line(result))


@execution_app.command("resume")
def execution_resume(execution_id: str) -> None:
    """
    Resume a saved execution from its next step index.

    Only the original inputs carry over; outputs of steps run before the
    checkpoint are not restored.

    Example:
        intentflow execution resume feature-lx2k3-ab12
    """
    config = load_config()
    store = get_store(config=config)
    state = asyncio.run(store.load(execution_id))
    if state is None:
        _fail("Execution not found")

    loader = WorkflowLoader(config.workflows_dir)
    try:
        definition = loader.get_workflow(state.workflow_id)
    except LoadError as exc:
        _fail(str(exc))
    if definition is None:
        _fail(f"Workflow not found: {state.workflow_id}")

    executor = CheckpointingExecutor(DryRunExecutor(), store, definition=definition)
    engine = WorkflowEngine(executor, loader=loader, retry_backoff=config.retry_backoff)

    typer.echo(f"Resuming workflow: {definition.name}")
    typer.echo(f"Continuing from step {state.current_step_index + 1}")
    try:
        result = asyncio.run(engine.resume_workflow(state))
    except WorkflowNotFoundError as exc:
        _fail(str(exc))
    if executor.execution_id:
        typer.echo(f"Execution ID: {executor.execution_id}")
    _echo_result(result, executor.execution_id)


@execution_app.command("delete")
def execution_delete(execution_id: str) -> None:
    """Delete a saved execution."""
    store = _get_store()
    if not asyncio.run(store.delete(execution_id)):
        typer.echo("Execution not found")
        raise typer.Exit(code=1)
    typer.echo(f"Deleted {execution_id}")


@execution_app.command("cleanup")
def execution_cleanup(
    max_age: Optional[float] = typer.Option(
        None, "--max-age", help="Delete executions older than this many days"
    ),
    keep: Optional[int] = typer.Option(
        None, "--keep", help="Always keep this many recent executions"
    ),
    keep_completed: bool = typer.Option(
        False, "--keep-completed", help="Never delete completed executions"
    ),
) -> None:
    """
    Remove old executions according to the retention policy.

    Defaults come from the ``cleanup`` section of the configuration.

    Example:
        intentflow execution cleanup --max-age 3 --keep 5
    """
    config = load_config()
    store = get_store(config=config)
    deleted = asyncio.run(
        store.cleanup(
            max_age=config.cleanup.max_age_days if max_age is None else max_age,
            keep_count=config.cleanup.keep_count if keep is None else keep,
            delete_completed=config.cleanup.delete_completed and not keep_completed,
        )
    )
    typer.echo(f"Deleted {deleted} executions")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
