"""Load a workflow from disk, run it and inspect the persisted execution."""

import pytest

from intentflow import (
    CheckpointingExecutor,
    DryRunExecutor,
    WorkflowEngine,
    WorkflowLoader,
    get_store,
)
from intentflow.config import load_config


@pytest.mark.asyncio
async def test_configured_run_is_persisted(tmp_path, write_workflow):
    (tmp_path / "intentflow.yaml").write_text(
        "workflows_dir: workflows\nexecutions_dir: runs\n"
    )
    write_workflow(
        {
            "id": "feature",
            "name": "Feature",
            "inputs": ["name", {"name": "tests", "type": "boolean", "required": False}],
            "outputs": ["summary", "testPlan"],
            "steps": [
                {
                    "id": "design",
                    "name": "Write design",
                    "prompt": "Design for {{name}}",
                    "outputs": ["summary"],
                },
                {
                    "id": "tests",
                    "name": "Plan tests",
                    "condition": "{{tests}}",
                    "prompt": "Tests for {{steps.design.summary}}",
                    "outputs": ["testPlan"],
                },
                {
                    "id": "review",
                    "name": "Review",
                    "condition": "{{name}} != 'skip-review'",
                    "prompt": "Review {{steps.design.summary}}",
                },
            ],
        },
        filename="feature.yml",
    )

    config = load_config()
    loader = WorkflowLoader.from_config(config)
    store = get_store(config=config)
    definition = loader.get_workflow("feature")
    dry_run = DryRunExecutor()
    executor = CheckpointingExecutor(dry_run, store, definition=definition)

    result = await WorkflowEngine(executor, loader=loader).execute_workflow_by_id(
        "feature", {"name": "login", "tests": True}
    )

    assert result.success is True
    assert result.outputs == {
        "summary": "Design for login",
        "testPlan": "Tests for Design for login",
    }
    assert dry_run.rendered["review"] == "Review Design for login"

    persisted = await store.list_executions(workflow_id="feature")
    assert len(persisted) == 1
    assert persisted[0].status == "completed"
    assert persisted[0].context.completed_steps == ["design", "tests", "review"]
    assert (tmp_path / "runs" / f"{executor.execution_id}.json").exists()
