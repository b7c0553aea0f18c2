"""Shared fixtures for intentflow tests."""

import json
from pathlib import Path

import pytest
import yaml

import intentflow.persistence as persistence
from intentflow.contracts import StepResult


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep configuration and the cached store local to each test."""
    for name in (
        "INTENTFLOW_CONFIG",
        "INTENTFLOW_WORKFLOWS_DIR",
        "INTENTFLOW_EXECUTIONS_DIR",
        "INTENTFLOW_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    persistence._store_instance = None
    yield
    persistence._store_instance = None


@pytest.fixture
def workflows_dir(tmp_path) -> Path:
    path = tmp_path / "workflows"
    path.mkdir()
    return path


@pytest.fixture
def write_workflow(workflows_dir):
    """Write a workflow document and return its path."""

    def _write(document: dict, filename: str | None = None) -> Path:
        path = workflows_dir / (filename or f"{document['id']}.yaml")
        if path.suffix == ".json":
            path.write_text(json.dumps(document))
        else:
            path.write_text(yaml.safe_dump(document, sort_keys=False))
        return path

    return _write


class ScriptedExecutor:
    """Duck-typed executor returning canned outputs per step id."""

    def __init__(self, outputs=None, failures=None):
        self.outputs = outputs or {}
        self.failures = failures or {}
        self.calls: list[str] = []
        self.events: list[str] = []

    async def execute_step(self, step, context, definition):
        self.calls.append(step.id)
        if step.id in self.failures:
            raise RuntimeError(self.failures[step.id])
        return StepResult(
            step_id=step.id,
            status="success",
            outputs=dict(self.outputs.get(step.id, {})),
        )

    async def on_workflow_start(self, definition, context):
        self.events.append("start")

    async def on_step_complete(self, step, result, context):
        self.events.append(f"step:{step.id}:{result.status}")

    async def on_workflow_complete(self, result, context):
        self.events.append("complete")

    async def on_workflow_error(self, error, context):
        self.events.append("error")


@pytest.fixture
def scripted_executor():
    return ScriptedExecutor
