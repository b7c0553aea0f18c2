"""Persistence layer for intentflow executions."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from ..config import IntentflowConfig, load_config
from .checkpoint import CheckpointingExecutor
from .filesystem import FileExecutionStore
from .inmemory import InMemoryExecutionStore
from .models import ExecutionState, ExecutionStatus, create_execution_state
from .repository import ExecutionStore

_store_instance: ExecutionStore | None = None


def get_store(
    directory: Optional[str | Path] = None, config: Optional[IntentflowConfig] = None
) -> ExecutionStore:
    """Factory function to obtain an execution store.

    The directory can be provided explicitly, via environment variable
    ``INTENTFLOW_EXECUTIONS_DIR``, or from loaded configuration. A directory
    value of ``:memory:`` selects the in-memory store.
    """

    global _store_instance
    if _store_instance is not None and directory is None and config is None:
        return _store_instance

    config = config or load_config()
    directory = (
        directory or os.getenv("INTENTFLOW_EXECUTIONS_DIR") or config.executions_dir
    )

    if str(directory) == ":memory:":
        _store_instance = InMemoryExecutionStore()
    else:
        _store_instance = FileExecutionStore(directory)
    return _store_instance


__all__ = [
    "CheckpointingExecutor",
    "ExecutionState",
    "ExecutionStatus",
    "ExecutionStore",
    "FileExecutionStore",
    "InMemoryExecutionStore",
    "create_execution_state",
    "get_store",
]
