from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_CLEANUP_KEEP_COUNT,
    DEFAULT_CLEANUP_MAX_AGE_DAYS,
    DEFAULT_CONFIG_FILE,
    DEFAULT_EXECUTIONS_DIR,
    DEFAULT_WORKFLOWS_DIR,
)


class CleanupConfig(BaseModel):
    """Retention policy for persisted executions."""

    max_age_days: float = Field(default=DEFAULT_CLEANUP_MAX_AGE_DAYS, ge=0)
    keep_count: int = Field(default=DEFAULT_CLEANUP_KEEP_COUNT, ge=0)
    delete_completed: bool = True


class IntentflowConfig(BaseModel):
    """Top-level configuration model."""

    workflows_dir: Path = Path(DEFAULT_WORKFLOWS_DIR)
    executions_dir: Path = Path(DEFAULT_EXECUTIONS_DIR)
    log_level: str = "WARNING"
    retry_backoff: float = Field(
        default=0.0, ge=0, description="Seconds before the first step retry"
    )
    cleanup: CleanupConfig = CleanupConfig()


def load_config(path: Optional[str] = None) -> IntentflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to INTENTFLOW_CONFIG env
            variable or 'intentflow.yaml' in the current directory.
    """

    config_path = path or os.getenv("INTENTFLOW_CONFIG", DEFAULT_CONFIG_FILE)
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = IntentflowConfig(**data)
    else:
        config = IntentflowConfig()

    env_workflows_dir = os.getenv("INTENTFLOW_WORKFLOWS_DIR")
    if env_workflows_dir:
        config.workflows_dir = Path(env_workflows_dir)
    env_executions_dir = os.getenv("INTENTFLOW_EXECUTIONS_DIR")
    if env_executions_dir:
        config.executions_dir = Path(env_executions_dir)
    env_log_level = os.getenv("INTENTFLOW_LOG_LEVEL")
    if env_log_level:
        config.log_level = env_log_level
    return config


def setup_logging(level: str = "WARNING") -> None:
    """Configure root logging for command line use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
