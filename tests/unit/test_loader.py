"""Tests for workflow definition loading and validation."""

import logging

import pytest

from intentflow.exceptions import LoadError
from intentflow.loader import WorkflowLoader, validate_workflow


def _minimal(**overrides):
    doc = {
        "id": "feature",
        "name": "Add a feature",
        "steps": [{"id": "plan", "name": "Plan"}],
    }
    doc.update(overrides)
    return doc


def test_load_yaml_workflow_normalizes_fields(write_workflow, workflows_dir):
    path = write_workflow(
        {
            "id": "feature",
            "name": "Add a feature",
            "description": "Plan then build",
            "version": 1.2,
            "inputs": [
                "featureName",
                {"name": "includeTests", "type": "boolean", "required": False, "default": True},
            ],
            "outputs": ["planPath", {"name": "summary"}, 42],
            "steps": [
                {
                    "id": "plan",
                    "name": "Plan",
                    "skills": "planner",
                    "prompt": "Plan {{featureName}}",
                    "inputs": ["featureName", 7],
                    "outputs": ["planPath", {"name": "summary", "extract": "## Summary"}],
                    "retryCount": 2,
                },
                {
                    "id": "tests",
                    "name": "Write tests",
                    "condition": "{{includeTests}} == true",
                    "continueOnError": True,
                    "skills": ["tester", 3],
                },
            ],
        }
    )

    workflow = WorkflowLoader(workflows_dir).load_workflow_file(path)

    assert workflow.id == "feature"
    assert workflow.version == "1.2"
    assert workflow.outputs == ["planPath", "summary"]

    feature_name, include_tests = workflow.inputs
    assert feature_name.name == "featureName"
    assert feature_name.type == "string"
    assert feature_name.required is True
    assert include_tests.type == "boolean"
    assert include_tests.required is False
    assert include_tests.default is True

    plan, tests = workflow.steps
    assert plan.skills == ["planner"]
    assert plan.inputs == ["featureName"]
    assert plan.retry_count == 2
    assert [o.name for o in plan.outputs] == ["planPath", "summary"]
    assert plan.outputs[1].extract == "## Summary"
    assert plan.continue_on_error is False

    assert tests.prompt == ""
    assert tests.skills == ["tester"]
    assert tests.continue_on_error is True
    assert tests.condition == "{{includeTests}} == true"


def test_load_json_workflow(write_workflow, workflows_dir):
    path = write_workflow(_minimal(), filename="feature.json")
    workflow = WorkflowLoader(workflows_dir).load_workflow_file(path)
    assert workflow.id == "feature"
    assert workflow.description == ""


@pytest.mark.parametrize(
    "document, field",
    [
        ({"name": "x", "steps": [{"id": "a", "name": "A"}]}, "id"),
        ({"id": "", "name": "x", "steps": [{"id": "a", "name": "A"}]}, "id"),
        ({"id": "x", "steps": [{"id": "a", "name": "A"}]}, "name"),
        ({"id": "x", "name": "x", "steps": []}, "steps"),
        ({"id": "x", "name": "x"}, "steps"),
        ({"id": "x", "name": "x", "steps": [{"name": "A"}]}, "steps[0].id"),
        ({"id": "x", "name": "x", "steps": [{"id": "a"}]}, "steps[0].name"),
        ({"id": "x", "name": "x", "steps": ["a"]}, "steps[0].id"),
    ],
)
def test_validation_names_missing_field(document, field):
    with pytest.raises(LoadError) as exc_info:
        validate_workflow(document)
    assert exc_info.value.field == field


def test_duplicate_step_ids_are_rejected():
    doc = _minimal(steps=[{"id": "a", "name": "A"}, {"id": "a", "name": "Again"}])
    with pytest.raises(LoadError, match="Duplicate step id"):
        validate_workflow(doc)


def test_unknown_types_fall_back_to_string():
    doc = _minimal(
        inputs=[{"name": "n", "type": "integer"}],
        steps=[
            {
                "id": "a",
                "name": "A",
                "outputs": [{"name": "report", "type": "markdown"}, {"type": "string"}],
            }
        ],
    )

    workflow = validate_workflow(doc)

    assert workflow.inputs[0].type == "string"
    assert [(o.name, o.type) for o in workflow.steps[0].outputs] == [("report", "string")]


def test_scalar_text_fields_are_stringified():
    doc = _minimal(
        description=7,
        steps=[{"id": "a", "name": "A", "prompt": 42, "description": 3.5}],
    )

    workflow = validate_workflow(doc)

    assert workflow.description == "7"
    assert workflow.steps[0].prompt == "42"
    assert workflow.steps[0].description == "3.5"


def test_malformed_questions_are_dropped():
    doc = _minimal(
        steps=[
            {
                "id": "a",
                "name": "A",
                "refinePrd": True,
                "prdQuestions": [
                    {"id": "scope"},
                    "not a question",
                    {"id": "tests", "prompt": "Tests?", "type": "checkbox"},
                ],
            }
        ]
    )

    questions = validate_workflow(doc).steps[0].prd_questions

    assert [(q.id, q.type) for q in questions] == [("tests", "text")]


def test_inputs_without_names_are_dropped():
    doc = _minimal(inputs=["feature", {"type": "boolean"}, 5])
    assert [i.name for i in validate_workflow(doc).inputs] == ["feature"]


def test_non_mapping_document_is_ignored():
    assert validate_workflow(["not", "a", "workflow"]) is None
    assert validate_workflow(None) is None


def test_boolean_condition_is_kept_as_literal():
    doc = _minimal(steps=[{"id": "a", "name": "A", "condition": False}])
    assert validate_workflow(doc).steps[0].condition == "false"


def test_unparseable_document_raises_load_error(workflows_dir):
    path = workflows_dir / "broken.yaml"
    path.write_text("id: [unclosed")
    with pytest.raises(LoadError) as exc_info:
        WorkflowLoader(workflows_dir).load_workflow_file(path)
    assert exc_info.value.path == path


def test_missing_file_returns_none(workflows_dir):
    assert WorkflowLoader(workflows_dir).load_workflow_file(workflows_dir / "nope.yaml") is None


def test_load_workflows_skips_malformed_files(write_workflow, workflows_dir, caplog):
    write_workflow(_minimal())
    write_workflow({"id": "other", "name": "Other", "steps": [{"id": "s", "name": "S"}]})
    (workflows_dir / "broken.yml").write_text("name: no id\nsteps: []\n")
    (workflows_dir / "garbage.json").write_text("{not json")
    (workflows_dir / "notes.txt").write_text("ignored")

    with caplog.at_level(logging.WARNING, logger="intentflow.loader"):
        workflows = WorkflowLoader(workflows_dir).load_workflows()

    assert sorted(w.id for w in workflows) == ["feature", "other"]
    assert "broken.yml" in caplog.text
    assert "garbage.json" in caplog.text


def test_load_workflows_without_directory(tmp_path):
    loader = WorkflowLoader(tmp_path / "missing")
    assert loader.exists() is False
    assert loader.load_workflows() == []
    assert loader.get_workflow("feature") is None


def test_get_workflow_by_filename(write_workflow, workflows_dir):
    write_workflow(_minimal(), filename="feature.yml")
    assert WorkflowLoader(workflows_dir).get_workflow("feature").name == "Add a feature"


def test_get_workflow_falls_back_to_declared_id(write_workflow, workflows_dir):
    write_workflow(_minimal(id="declared-id"), filename="some-file.yaml")
    (workflows_dir / "broken.yaml").write_text("id: 5\n")

    workflow = WorkflowLoader(workflows_dir).get_workflow("declared-id")

    assert workflow is not None
    assert workflow.id == "declared-id"


def test_get_workflow_unknown_id(write_workflow, workflows_dir):
    write_workflow(_minimal())
    assert WorkflowLoader(workflows_dir).get_workflow("unknown") is None


@pytest.mark.parametrize("fmt, suffix", [("yaml", ".yaml"), ("json", ".json")])
def test_save_workflow_writes_loadable_document(tmp_path, fmt, suffix):
    source = validate_workflow(
        _minimal(
            steps=[
                {
                    "id": "plan",
                    "name": "Plan",
                    "continueOnError": True,
                    "retryCount": 1,
                    "outputs": ["planPath"],
                }
            ]
        )
    )
    loader = WorkflowLoader(tmp_path / "saved")

    path = loader.save_workflow(source, format=fmt)

    assert path.suffix == suffix
    text = path.read_text()
    assert "continueOnError" in text
    assert loader.get_workflow("feature") == source
