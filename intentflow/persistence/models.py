"""Data models for persisted execution state."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import Field, field_validator

from ..contracts import CamelModel, WorkflowContext, utcnow

ExecutionStatus = Literal["pending", "running", "paused", "completed", "failed"]


class ExecutionState(CamelModel):
    """Resumable snapshot of one execution, stored as ``<id>.json``."""

    id: str
    workflow_id: str
    intention_id: Optional[str] = None
    status: ExecutionStatus = "pending"
    current_step_index: int = Field(default=0, ge=0)
    context: WorkflowContext
    started_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    error: Optional[str] = None

    @field_validator("started_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


def create_execution_state(
    execution_id: str,
    workflow_id: str,
    context: WorkflowContext,
    intention_id: Optional[str] = None,
) -> ExecutionState:
    """Return a new ``pending`` state positioned at the first step."""
    now = utcnow()
    return ExecutionState(
        id=execution_id,
        workflow_id=workflow_id,
        intention_id=intention_id,
        status="pending",
        current_step_index=0,
        context=context,
        started_at=now,
        updated_at=now,
    )
