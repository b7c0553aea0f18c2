"""Load workflow definitions from a directory of YAML or JSON documents."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, get_args

import yaml
from pydantic import ValidationError

from .config import IntentflowConfig, load_config
from .constants import WORKFLOW_FILE_EXTENSIONS
from .contracts import QuestionType, ValueType, WorkflowDefinition
from .exceptions import LoadError

logger = logging.getLogger(__name__)

__all__ = ["WorkflowLoader", "validate_workflow"]

_VALUE_TYPES = get_args(ValueType)
_QUESTION_TYPES = get_args(QuestionType)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _scalar_to_str(value: Any) -> Optional[str]:
    """Render a scalar as text; containers and ``None`` give ``None``."""
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _coerce_choice(value: Any, allowed: tuple, default: str) -> str:
    return value if value in allowed else default


def _normalize_input(raw: Any) -> Optional[Dict[str, Any]]:
    if isinstance(raw, str):
        return {"name": raw, "type": "string", "required": True}
    if not isinstance(raw, dict):
        return None
    name = _scalar_to_str(raw.get("name"))
    if not name:
        return None
    return {
        "name": name,
        "type": _coerce_choice(raw.get("type"), _VALUE_TYPES, "string"),
        "required": raw.get("required") is not False,
        "default": raw.get("default"),
        "description": _scalar_to_str(raw.get("description")),
    }


def _normalize_output(raw: Any) -> Optional[Dict[str, Any]]:
    if isinstance(raw, str):
        return {"name": raw, "type": "string"}
    if not isinstance(raw, dict):
        return None
    name = _scalar_to_str(raw.get("name"))
    if not name:
        return None
    return {
        "name": name,
        "type": _coerce_choice(raw.get("type"), _VALUE_TYPES, "string"),
        "extract": _scalar_to_str(raw.get("extract")),
        "description": _scalar_to_str(raw.get("description")),
    }


def _normalize_question(raw: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(raw, dict):
        return None
    question_id = _scalar_to_str(raw.get("id"))
    prompt = _scalar_to_str(raw.get("prompt"))
    if not question_id or not prompt:
        return None

    options = raw.get("options")
    if isinstance(options, list):
        options = [str(option) for option in options if _scalar_to_str(option) is not None]
    else:
        options = _scalar_to_str(options)

    return {
        "id": question_id,
        "prompt": prompt,
        "type": _coerce_choice(raw.get("type"), _QUESTION_TYPES, "text"),
        "options": options,
        "default": raw.get("default"),
    }


def _normalize_step(raw: Any, index: int) -> Dict[str, Any]:
    step = raw if isinstance(raw, dict) else {}

    if not _non_empty_str(step.get("id")):
        raise LoadError("Step must have an id", field=f"steps[{index}].id")
    if not _non_empty_str(step.get("name")):
        raise LoadError(
            f"Step {step['id']} must have a name", field=f"steps[{index}].name"
        )

    outputs = []
    if isinstance(step.get("outputs"), list):
        for output in step["outputs"]:
            normalized = _normalize_output(output)
            if normalized is not None:
                outputs.append(normalized)

    skills = step.get("skills")
    if isinstance(skills, list):
        skills = [s for s in skills if isinstance(s, str)]
    elif isinstance(skills, str):
        skills = [skills]
    else:
        skills = []

    inputs = step.get("inputs")
    inputs = [i for i in inputs if isinstance(i, str)] if isinstance(inputs, list) else []

    retry_count = step.get("retryCount", step.get("retry_count"))
    if isinstance(retry_count, bool) or not isinstance(retry_count, int):
        retry_count = 0

    questions = step.get("prdQuestions", step.get("prd_questions"))
    if isinstance(questions, list):
        questions = [
            q for q in (_normalize_question(raw_q) for raw_q in questions) if q is not None
        ]
    else:
        questions = None

    return {
        "id": step["id"],
        "name": step["name"],
        "description": _scalar_to_str(step.get("description")),
        "skills": skills,
        "prompt": _scalar_to_str(step.get("prompt")) or "",
        "inputs": inputs,
        "outputs": outputs,
        "refine_prd": step.get("refinePrd", step.get("refine_prd")) is True,
        "prd_template": _scalar_to_str(step.get("prdTemplate", step.get("prd_template"))),
        "prd_questions": questions,
        "condition": _scalar_to_str(step.get("condition")),
        "continue_on_error": step.get(
            "continueOnError", step.get("continue_on_error")
        )
        is True,
        "retry_count": max(retry_count, 0),
        "before_step": _scalar_to_str(step.get("beforeStep", step.get("before_step"))),
        "after_step": _scalar_to_str(step.get("afterStep", step.get("after_step"))),
    }


def _format_loc(loc: tuple) -> str:
    field = ""
    for part in loc:
        if isinstance(part, int):
            field += f"[{part}]"
        else:
            field += f".{part}" if field else str(part)
    return field


def validate_workflow(
    data: Any, path: Optional[Path] = None
) -> Optional[WorkflowDefinition]:
    """Normalize a loosely-typed document into a ``WorkflowDefinition``.

    Returns ``None`` when ``data`` is not a mapping. Raises ``LoadError`` when
    a required field is missing or invalid.
    """
    if not data or not isinstance(data, dict):
        return None

    if not _non_empty_str(data.get("id")):
        raise LoadError("Workflow must have an id", field="id", path=path)
    if not _non_empty_str(data.get("name")):
        raise LoadError("Workflow must have a name", field="name", path=path)
    raw_steps = data.get("steps")
    if not isinstance(raw_steps, list) or not raw_steps:
        raise LoadError("Workflow must have at least one step", field="steps", path=path)

    try:
        steps = [_normalize_step(raw, index) for index, raw in enumerate(raw_steps)]
    except LoadError as exc:
        raise LoadError(str(exc), field=exc.field, path=path) from None

    seen: set[str] = set()
    for step in steps:
        if step["id"] in seen:
            raise LoadError(
                f"Duplicate step id: {step['id']}", field="steps", path=path
            )
        seen.add(step["id"])

    inputs = []
    if isinstance(data.get("inputs"), list):
        inputs = [item for item in map(_normalize_input, data["inputs"]) if item is not None]

    outputs: List[str] = []
    if isinstance(data.get("outputs"), list):
        for output in data["outputs"]:
            if isinstance(output, str):
                outputs.append(output)
            elif isinstance(output, dict) and _non_empty_str(output.get("name")):
                outputs.append(output["name"])

    tags = data.get("tags")
    if isinstance(tags, list):
        tags = [str(tag) for tag in tags]
    elif tags is not None:
        tags = [str(tags)]

    try:
        return WorkflowDefinition(
            id=data["id"],
            name=data["name"],
            description=_scalar_to_str(data.get("description")) or "",
            inputs=inputs,
            outputs=outputs,
            steps=steps,
            version=_scalar_to_str(data.get("version")),
            author=_scalar_to_str(data.get("author")),
            tags=tags,
        )
    except ValidationError as exc:
        error = exc.errors()[0]
        field = _format_loc(error["loc"])
        raise LoadError(f"Invalid {field}: {error['msg']}", field=field, path=path) from exc


class WorkflowLoader:
    """Reads ``<id>.yaml|.yml|.json`` workflow documents from one directory."""

    def __init__(self, workflows_dir: str | Path) -> None:
        self.workflows_dir = Path(workflows_dir)

    @classmethod
    def from_config(cls, config: Optional[IntentflowConfig] = None) -> "WorkflowLoader":
        config = config or load_config()
        return cls(config.workflows_dir)

    def exists(self) -> bool:
        return self.workflows_dir.is_dir()

    def _iter_workflow_files(self) -> List[Path]:
        if not self.exists():
            return []
        return sorted(
            path
            for path in self.workflows_dir.iterdir()
            if path.is_file() and path.suffix in WORKFLOW_FILE_EXTENSIONS
        )

    def load_workflow_file(self, path: str | Path) -> Optional[WorkflowDefinition]:
        """Load and validate a single workflow document."""
        path = Path(path)
        if not path.exists():
            return None

        content = path.read_text(encoding="utf-8")
        try:
            if path.suffix == ".json":
                parsed = json.loads(content)
            else:
                parsed = yaml.safe_load(content)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise LoadError(f"Could not parse workflow document: {exc}", path=path) from exc

        return validate_workflow(parsed, path=path)

    def load_workflows(self) -> List[WorkflowDefinition]:
        """Load every workflow in the directory, skipping broken files."""
        workflows: List[WorkflowDefinition] = []
        for path in self._iter_workflow_files():
            try:
                workflow = self.load_workflow_file(path)
            except (LoadError, OSError, UnicodeDecodeError) as exc:
                logger.warning(f"Failed to load workflow {path.name}: {exc}")
                continue
            if workflow is not None:
                workflows.append(workflow)
        return workflows

    def get_workflow(self, workflow_id: str) -> Optional[WorkflowDefinition]:
        """Look a workflow up by file name first, then by declared id."""
        if not self.exists():
            return None

        for ext in WORKFLOW_FILE_EXTENSIONS:
            path = self.workflows_dir / f"{workflow_id}{ext}"
            if path.exists():
                return self.load_workflow_file(path)

        return next((w for w in self.load_workflows() if w.id == workflow_id), None)

    def save_workflow(
        self,
        definition: WorkflowDefinition,
        format: Literal["yaml", "json"] = "yaml",
    ) -> Path:
        """Write ``definition`` to ``<id>.yaml`` or ``<id>.json``."""
        self.workflows_dir.mkdir(parents=True, exist_ok=True)
        document = definition.to_document(exclude_none=True)

        if format == "yaml":
            path = self.workflows_dir / f"{definition.id}.yaml"
            content = yaml.safe_dump(
                document, sort_keys=False, default_flow_style=False, width=120
            )
        else:
            path = self.workflows_dir / f"{definition.id}.json"
            content = json.dumps(document, indent=2, ensure_ascii=False)

        path.write_text(content, encoding="utf-8")
        logger.info(f"Saved workflow {definition.id} to {path}")
        return path
