"""Shared defaults for intentflow."""

DEFAULT_WORKFLOWS_DIR = ".context/workflows"
DEFAULT_EXECUTIONS_DIR = ".intentflow/executions"
DEFAULT_CONFIG_FILE = "intentflow.yaml"

WORKFLOW_FILE_EXTENSIONS = (".yaml", ".yml", ".json")

DEFAULT_CLEANUP_MAX_AGE_DAYS = 7
DEFAULT_CLEANUP_KEEP_COUNT = 10
