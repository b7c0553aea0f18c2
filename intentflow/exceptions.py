"""Error types raised by intentflow."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class IntentflowError(Exception):
    """Base class for all intentflow errors."""


class LoadError(IntentflowError):
    """A workflow document is missing a required field or is malformed."""

    def __init__(
        self, message: str, field: Optional[str] = None, path: Optional[Path] = None
    ) -> None:
        self.field = field
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class WorkflowNotFoundError(IntentflowError):
    """No workflow definition exists for the requested id."""

    def __init__(self, workflow_id: str) -> None:
        self.workflow_id = workflow_id
        super().__init__(f"Workflow not found: {workflow_id}")


class StepFailedError(IntentflowError):
    """Raised inside the engine when a step fails without ``continueOnError``.

    The engine converts it into a failed ``WorkflowResult``; it never reaches
    callers of ``execute_workflow``.
    """

    def __init__(self, step_id: str, error: Optional[str]) -> None:
        self.step_id = step_id
        self.error = error
        super().__init__(f"Step {step_id} failed: {error}")
