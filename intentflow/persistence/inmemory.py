"""In-memory implementation of the execution store."""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..constants import DEFAULT_CLEANUP_KEEP_COUNT, DEFAULT_CLEANUP_MAX_AGE_DAYS
from .models import ExecutionState, ExecutionStatus
from .repository import (
    ExecutionStore,
    apply_status_update,
    filter_states,
    select_expired,
)


class InMemoryExecutionStore(ExecutionStore):
    """Store execution state in local memory.

    Useful for tests or short-lived hosts. Snapshots are copied on the way in
    and out so callers can keep mutating a live context.
    """

    def __init__(self) -> None:
        self._states: Dict[str, ExecutionState] = {}

    async def save(self, state: ExecutionState) -> None:
        self._states[state.id] = state.model_copy(deep=True)

    async def load(self, execution_id: str) -> ExecutionState | None:
        state = self._states.get(execution_id)
        return state.model_copy(deep=True) if state else None

    async def list_executions(
        self,
        status: Optional[ExecutionStatus] = None,
        workflow_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[ExecutionState]:
        states = [state.model_copy(deep=True) for state in self._states.values()]
        return filter_states(states, status=status, workflow_id=workflow_id, limit=limit)

    async def delete(self, execution_id: str) -> bool:
        return self._states.pop(execution_id, None) is not None

    async def update_status(
        self, execution_id: str, status: ExecutionStatus, **updates: Any
    ) -> ExecutionState | None:
        state = self._states.get(execution_id)
        if state is None:
            return None
        updated = apply_status_update(state, status, **updates)
        await self.save(updated)
        return updated.model_copy(deep=True)

    async def cleanup(
        self,
        max_age: float = DEFAULT_CLEANUP_MAX_AGE_DAYS,
        keep_count: int = DEFAULT_CLEANUP_KEEP_COUNT,
        delete_completed: bool = True,
    ) -> int:
        states = await self.list_executions()
        expired = select_expired(states, max_age, keep_count, delete_completed)
        for execution_id in expired:
            await self.delete(execution_id)
        return len(expired)
