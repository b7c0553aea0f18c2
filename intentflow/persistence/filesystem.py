"""JSON file implementation of the execution store."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ..constants import DEFAULT_CLEANUP_KEEP_COUNT, DEFAULT_CLEANUP_MAX_AGE_DAYS
from .models import ExecutionState, ExecutionStatus
from .repository import (
    ExecutionStore,
    apply_status_update,
    filter_states,
    select_expired,
)

logger = logging.getLogger(__name__)


class FileExecutionStore(ExecutionStore):
    """Persist one ``<execution id>.json`` file per execution.

    Every save rewrites the whole file. There is no locking: concurrent
    writers to the same execution id are unsupported and the last one wins.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    # ------------------------------------------------------------------
    # Helper methods
    def _path(self, execution_id: str) -> Path:
        if not execution_id or Path(execution_id).name != execution_id:
            raise ValueError(f"Invalid execution id: {execution_id!r}")
        return self.directory / f"{execution_id}.json"

    def _write(self, state: ExecutionState) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(state.id)
        path.write_text(
            json.dumps(state.to_document(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        return path

    def _read(self, path: Path) -> ExecutionState | None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return ExecutionState.model_validate(data)
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning(f"Ignoring unreadable execution file {path.name}: {exc}")
            return None

    def _read_all(self) -> list[ExecutionState]:
        if not self.directory.is_dir():
            return []
        states = []
        for path in sorted(self.directory.glob("*.json")):
            state = self._read(path)
            if state is not None:
                states.append(state)
        return states

    def _load(self, execution_id: str) -> ExecutionState | None:
        path = self._path(execution_id)
        if not path.exists():
            return None
        return self._read(path)

    def _delete(self, execution_id: str) -> bool:
        path = self._path(execution_id)
        if not path.exists():
            return False
        path.unlink()
        return True

    # ------------------------------------------------------------------
    # Store API
    async def save(self, state: ExecutionState) -> Path:
        path = await asyncio.to_thread(self._write, state)
        logger.debug(f"Saved execution {state.id} ({state.status}) to {path}")
        return path

    async def load(self, execution_id: str) -> ExecutionState | None:
        return await asyncio.to_thread(self._load, execution_id)

    async def list_executions(
        self,
        status: Optional[ExecutionStatus] = None,
        workflow_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[ExecutionState]:
        states = await asyncio.to_thread(self._read_all)
        return filter_states(states, status=status, workflow_id=workflow_id, limit=limit)

    async def delete(self, execution_id: str) -> bool:
        return await asyncio.to_thread(self._delete, execution_id)

    async def update_status(
        self, execution_id: str, status: ExecutionStatus, **updates: Any
    ) -> ExecutionState | None:
        state = await self.load(execution_id)
        if state is None:
            return None
        updated = apply_status_update(state, status, **updates)
        await self.save(updated)
        return updated

    async def cleanup(
        self,
        max_age: float = DEFAULT_CLEANUP_MAX_AGE_DAYS,
        keep_count: int = DEFAULT_CLEANUP_KEEP_COUNT,
        delete_completed: bool = True,
    ) -> int:
        states = await self.list_executions()
        deleted = 0
        for execution_id in select_expired(states, max_age, keep_count, delete_completed):
            if await self.delete(execution_id):
                deleted += 1
        if deleted:
            logger.info(f"Removed {deleted} old executions from {self.directory}")
        return deleted
