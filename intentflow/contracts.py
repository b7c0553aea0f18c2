"""Core data contracts for intentflow workflows.

Workflow documents and persisted execution files use camelCase keys
(``continueOnError``, ``currentStepIndex``); the models expose snake_case
attributes and accept either spelling on input.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ValueType = Literal["string", "array", "object", "boolean", "number"]
StepStatus = Literal["success", "failed", "skipped"]
QuestionType = Literal["text", "confirm", "select", "multiselect"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model serialising to camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self, exclude_none: bool = False) -> dict[str, Any]:
        """Return a JSON-compatible dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=exclude_none)


class FrozenCamelModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


# ---------------------------------------------------------------------------
# Definition model


class WorkflowInput(FrozenCamelModel):
    """Input declared by a workflow."""

    name: str
    type: ValueType = "string"
    required: bool = True
    default: Optional[Any] = None
    description: Optional[str] = None


class WorkflowOutput(FrozenCamelModel):
    """Named output produced by a step."""

    name: str
    type: ValueType = "string"
    extract: Optional[str] = Field(
        default=None, description="Hint for mapping the raw executor result"
    )
    description: Optional[str] = None


class StepQuestion(FrozenCamelModel):
    """Question asked before a step when refining its PRD."""

    id: str
    prompt: str
    type: QuestionType = "text"
    options: Optional[Union[str, List[str]]] = None
    default: Optional[Any] = None


class WorkflowStep(FrozenCamelModel):
    """One unit of work, carried out by a ``StepExecutor``."""

    id: str
    name: str
    description: Optional[str] = None

    skills: List[str] = Field(default_factory=list)
    prompt: str = ""

    inputs: List[str] = Field(default_factory=list)
    outputs: List[WorkflowOutput] = Field(default_factory=list)

    refine_prd: bool = False
    prd_template: Optional[str] = None
    prd_questions: Optional[List[StepQuestion]] = None

    condition: Optional[str] = None
    continue_on_error: bool = False
    retry_count: int = Field(default=0, ge=0)

    before_step: Optional[str] = None
    after_step: Optional[str] = None


class WorkflowDefinition(FrozenCamelModel):
    """A named, ordered sequence of steps with declared inputs and outputs."""

    id: str
    name: str
    description: str = ""

    inputs: List[WorkflowInput] = Field(default_factory=list)
    outputs: List[str] = Field(default_factory=list)
    steps: List[WorkflowStep] = Field(default_factory=list)

    version: Optional[str] = None
    author: Optional[str] = None
    tags: Optional[List[str]] = None

    def get_step(self, step_id: str) -> Optional[WorkflowStep]:
        return next((step for step in self.steps if step.id == step_id), None)


class WorkflowOverrides(CamelModel):
    """Caller-supplied modifications applied to a single run."""

    skip_steps: List[str] = Field(default_factory=list)
    step_overrides: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    additional_context: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Runtime model


class StepResult(CamelModel):
    """Outcome of a single step."""

    step_id: str
    status: StepStatus
    outputs: Dict[str, Any] = Field(default_factory=dict)
    duration: float = 0
    error: Optional[str] = None
    created_files: Optional[List[str]] = None
    modified_files: Optional[List[str]] = None


class WorkflowContext(CamelModel):
    """Inputs and step results accumulated during one execution."""

    inputs: Dict[str, Any] = Field(default_factory=dict)
    steps: Dict[str, StepResult] = Field(default_factory=dict)

    current_step: Optional[str] = None
    completed_steps: List[str] = Field(default_factory=list)
    skipped_steps: List[str] = Field(default_factory=list)

    workflow_id: str
    intention_id: Optional[str] = None
    started_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class WorkflowResult(CamelModel):
    """Terminal summary of an execution."""

    success: bool
    workflow_id: str
    execution_id: str
    outputs: Dict[str, Any] = Field(default_factory=dict)
    steps: List[StepResult] = Field(default_factory=list)
    created_files: List[str] = Field(default_factory=list)
    modified_files: List[str] = Field(default_factory=list)
    duration: float = 0
    error: Optional[str] = None

    def get_step(self, step_id: str) -> Optional[StepResult]:
        return next((step for step in self.steps if step.step_id == step_id), None)
