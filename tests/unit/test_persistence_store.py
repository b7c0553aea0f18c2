import json
import logging
from datetime import timedelta

import pytest

from intentflow.context import create_workflow_context
from intentflow.contracts import StepResult, utcnow
from intentflow.persistence import (
    FileExecutionStore,
    InMemoryExecutionStore,
    create_execution_state,
)
from intentflow.persistence.repository import select_expired


@pytest.fixture(params=["file", "memory"])
def store(request, tmp_path):
    if request.param == "file":
        return FileExecutionStore(tmp_path / "executions")
    return InMemoryExecutionStore()


def _state(execution_id, workflow_id="demo", status="pending", age_days=0, inputs=None):
    context = create_workflow_context(workflow_id, inputs or {"name": "login"})
    state = create_execution_state(execution_id, workflow_id, context)
    state.status = status
    state.updated_at = utcnow() - timedelta(days=age_days)
    return state


def test_create_execution_state_defaults():
    state = _state("e1")
    assert state.status == "pending"
    assert state.current_step_index == 0
    assert state.error is None


@pytest.mark.asyncio
async def test_save_and_load_roundtrip(store):
    state = _state("e1", inputs={"name": "login", "flags": [1, 2]})
    state.context.steps["a"] = StepResult(step_id="a", status="success", outputs={"x": 1})
    state.context.completed_steps.append("a")
    state.current_step_index = 1

    await store.save(state)
    loaded = await store.load("e1")

    assert loaded.id == "e1"
    assert loaded.current_step_index == 1
    assert loaded.context.inputs == {"name": "login", "flags": [1, 2]}
    assert loaded.context.steps["a"].outputs == {"x": 1}
    assert loaded.context.completed_steps == ["a"]
    assert loaded.updated_at == state.updated_at


@pytest.mark.asyncio
async def test_load_missing_returns_none(store):
    assert await store.load("missing") is None


@pytest.mark.asyncio
async def test_save_replaces_previous_snapshot(store):
    state = _state("e1")
    await store.save(state)
    state.status = "running"
    await store.save(state)

    assert (await store.load("e1")).status == "running"
    assert len(await store.list_executions()) == 1


@pytest.mark.asyncio
async def test_list_sorted_by_most_recent_update(store):
    await store.save(_state("old", age_days=3))
    await store.save(_state("new", age_days=0))
    await store.save(_state("mid", age_days=1))

    assert [s.id for s in await store.list_executions()] == ["new", "mid", "old"]


@pytest.mark.asyncio
async def test_list_filters_and_limit(store):
    await store.save(_state("a", workflow_id="feature", status="failed", age_days=2))
    await store.save(_state("b", workflow_id="feature", status="completed", age_days=1))
    await store.save(_state("c", workflow_id="bugfix", status="failed"))

    failed = await store.list_executions(status="failed")
    assert [s.id for s in failed] == ["c", "a"]

    feature = await store.list_executions(workflow_id="feature")
    assert [s.id for s in feature] == ["b", "a"]

    assert [s.id for s in await store.list_executions(limit=1)] == ["c"]
    assert await store.list_executions(status="paused") == []


@pytest.mark.asyncio
async def test_delete(store):
    await store.save(_state("e1"))
    assert await store.delete("e1") is True
    assert await store.delete("e1") is False
    assert await store.load("e1") is None


@pytest.mark.asyncio
async def test_update_status_sets_fields_and_timestamp(store):
    state = _state("e1", age_days=1)
    await store.save(state)

    updated = await store.update_status("e1", "failed", error="boom", current_step_index=2)

    assert updated.status == "failed"
    assert updated.error == "boom"
    assert updated.current_step_index == 2
    assert updated.updated_at > state.updated_at
    reloaded = await store.load("e1")
    assert reloaded.status == "failed"
    assert reloaded.current_step_index == 2


@pytest.mark.asyncio
async def test_update_status_of_unknown_execution(store):
    assert await store.update_status("missing", "running") is None


@pytest.mark.asyncio
async def test_cleanup_keeps_most_recent(store):
    for index in range(5):
        await store.save(_state(f"e{index}", age_days=10 + index))

    deleted = await store.cleanup(max_age=7, keep_count=2)

    assert deleted == 3
    assert [s.id for s in await store.list_executions()] == ["e0", "e1"]


@pytest.mark.asyncio
async def test_cleanup_respects_max_age(store):
    await store.save(_state("fresh", age_days=1))
    await store.save(_state("stale", age_days=30))

    deleted = await store.cleanup(max_age=7, keep_count=0)

    assert deleted == 1
    assert [s.id for s in await store.list_executions()] == ["fresh"]


@pytest.mark.asyncio
async def test_cleanup_can_keep_completed(store):
    await store.save(_state("done", status="completed", age_days=30))
    await store.save(_state("broken", status="failed", age_days=30))

    deleted = await store.cleanup(max_age=7, keep_count=0, delete_completed=False)

    assert deleted == 1
    assert [s.id for s in await store.list_executions()] == ["done"]


def test_select_expired_uses_reference_time():
    now = utcnow()
    states = [_state("a"), _state("b")]
    states[1].updated_at = now - timedelta(days=2)

    assert select_expired(states, max_age=1, keep_count=0, delete_completed=True, now=now) == ["b"]
    assert select_expired(states, max_age=1, keep_count=2, delete_completed=True, now=now) == []


@pytest.mark.asyncio
async def test_file_store_writes_camel_case_json(tmp_path):
    store = FileExecutionStore(tmp_path / "executions")
    state = _state("e1")
    state.current_step_index = 1

    path = await store.save(state)

    assert path == tmp_path / "executions" / "e1.json"
    document = json.loads(path.read_text())
    assert document["workflowId"] == "demo"
    assert document["currentStepIndex"] == 1
    assert document["context"]["completedSteps"] == []
    assert "startedAt" in document["context"]


@pytest.mark.asyncio
async def test_file_store_reads_naive_timestamps_as_utc(tmp_path):
    directory = tmp_path / "executions"
    directory.mkdir()
    (directory / "legacy.json").write_text(
        json.dumps(
            {
                "id": "legacy",
                "workflowId": "demo",
                "status": "paused",
                "currentStepIndex": 0,
                "context": {"inputs": {}, "workflowId": "demo"},
                "startedAt": "2024-01-01T10:00:00",
                "updatedAt": "2024-01-01T10:05:00",
            }
        )
    )

    state = await FileExecutionStore(directory).load("legacy")

    assert state.status == "paused"
    assert state.updated_at.tzinfo is not None


@pytest.mark.asyncio
async def test_file_store_skips_unreadable_files(tmp_path, caplog):
    directory = tmp_path / "executions"
    store = FileExecutionStore(directory)
    await store.save(_state("good"))
    (directory / "corrupt.json").write_text("{not json")
    (directory / "partial.json").write_text(json.dumps({"id": "partial"}))

    with caplog.at_level(logging.WARNING, logger="intentflow.persistence.filesystem"):
        states = await store.list_executions()

    assert [s.id for s in states] == ["good"]
    assert "corrupt.json" in caplog.text
    assert await store.load("corrupt") is None


@pytest.mark.asyncio
async def test_file_store_without_directory(tmp_path):
    store = FileExecutionStore(tmp_path / "nowhere")
    assert await store.list_executions() == []
    assert await store.cleanup() == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("execution_id", ["../escape", "nested/id", ""])
async def test_file_store_rejects_path_like_ids(tmp_path, execution_id):
    store = FileExecutionStore(tmp_path / "executions")
    with pytest.raises(ValueError):
        await store.load(execution_id)


@pytest.mark.asyncio
async def test_memory_store_snapshots_are_isolated():
    store = InMemoryExecutionStore()
    state = _state("e1")
    await store.save(state)

    state.context.inputs["name"] = "changed"
    loaded = await store.load("e1")
    loaded.context.inputs["name"] = "also changed"

    assert (await store.load("e1")).context.inputs["name"] == "login"
