"""Store abstraction for execution state persistence."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional, Protocol

from ..constants import DEFAULT_CLEANUP_KEEP_COUNT, DEFAULT_CLEANUP_MAX_AGE_DAYS
from ..contracts import utcnow
from .models import ExecutionState, ExecutionStatus


class ExecutionStore(Protocol):
    """Protocol for execution state persistence backends."""

    async def save(self, state: ExecutionState) -> Optional[Path]:
        """Persist ``state``, replacing any previous snapshot with the same id."""

    async def load(self, execution_id: str) -> ExecutionState | None:
        """Return the snapshot for ``execution_id`` or ``None``."""

    async def list_executions(
        self,
        status: Optional[ExecutionStatus] = None,
        workflow_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[ExecutionState]:
        """Return snapshots sorted by ``updated_at``, newest first."""

    async def delete(self, execution_id: str) -> bool:
        """Remove a snapshot, returning whether one existed."""

    async def update_status(
        self, execution_id: str, status: ExecutionStatus, **updates: Any
    ) -> ExecutionState | None:
        """Load, update and re-save a snapshot."""

    async def cleanup(
        self,
        max_age: float = DEFAULT_CLEANUP_MAX_AGE_DAYS,
        keep_count: int = DEFAULT_CLEANUP_KEEP_COUNT,
        delete_completed: bool = True,
    ) -> int:
        """Delete old snapshots, returning how many were removed."""


def filter_states(
    states: list[ExecutionState],
    status: Optional[ExecutionStatus] = None,
    workflow_id: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[ExecutionState]:
    selected = [
        state
        for state in states
        if (status is None or state.status == status)
        and (workflow_id is None or state.workflow_id == workflow_id)
    ]
    selected.sort(key=lambda state: state.updated_at, reverse=True)
    if limit:
        return selected[:limit]
    return selected


def select_expired(
    states: list[ExecutionState],
    max_age: float,
    keep_count: int,
    delete_completed: bool,
    now: Optional[datetime] = None,
) -> list[str]:
    """Return ids to delete from ``states`` (sorted newest first).

    The newest ``keep_count`` states are always retained; of the rest, those
    not updated within ``max_age`` days are selected, completed ones only
    when ``delete_completed`` is set.
    """
    cutoff = (now or utcnow()) - timedelta(days=max_age)
    expired: list[str] = []
    for index, state in enumerate(states):
        if index < keep_count:
            continue
        if state.updated_at >= cutoff:
            continue
        if delete_completed or state.status != "completed":
            expired.append(state.id)
    return expired


def apply_status_update(
    state: ExecutionState, status: ExecutionStatus, **updates: Any
) -> ExecutionState:
    fields = state.model_dump()
    fields.update(updates)
    fields["status"] = status
    fields["updated_at"] = utcnow()
    return ExecutionState.model_validate(fields)
