"""intentflow: workflow execution core for intention-driven AI tooling."""

from .contracts import (
    StepQuestion,
    StepResult,
    WorkflowContext,
    WorkflowDefinition,
    WorkflowInput,
    WorkflowOutput,
    WorkflowOverrides,
    WorkflowResult,
    WorkflowStep,
)
from .context import create_workflow_context
from .engine import WorkflowEngine, apply_overrides, generate_execution_id
from .exceptions import IntentflowError, LoadError, WorkflowNotFoundError
from .executor import DryRunExecutor, StepExecutor
from .expressions import evaluate_condition, interpolate
from .loader import WorkflowLoader
from .persistence import (
    CheckpointingExecutor,
    ExecutionState,
    FileExecutionStore,
    InMemoryExecutionStore,
    get_store,
)

__version__ = "0.1.0"
__all__ = [
    "CheckpointingExecutor",
    "DryRunExecutor",
    "ExecutionState",
    "FileExecutionStore",
    "InMemoryExecutionStore",
    "IntentflowError",
    "LoadError",
    "StepExecutor",
    "StepQuestion",
    "StepResult",
    "WorkflowContext",
    "WorkflowDefinition",
    "WorkflowEngine",
    "WorkflowInput",
    "WorkflowLoader",
    "WorkflowNotFoundError",
    "WorkflowOutput",
    "WorkflowOverrides",
    "WorkflowResult",
    "WorkflowStep",
    "apply_overrides",
    "create_workflow_context",
    "evaluate_condition",
    "generate_execution_id",
    "get_store",
    "interpolate",
]
