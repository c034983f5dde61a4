"""Configuration for the Productive MCP server.

Credentials come from the environment. Workspace-specific IDs (custom fields,
their options, workflow statuses) come from ``productive.config.json``, which
``productive-mcp-setup`` generates.
"""
import logging
import os
from pathlib import Path
from typing import Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigurationError, validate_environment

logger = logging.getLogger("productive-mcp.config")

API_URL = "https://api.productive.io/api/v2"
APP_URL = "https://app.productive.io"
DEFAULT_CONFIG_PATH = "productive.config.json"

# Maximum characters returned from a single tool call
CHARACTER_LIMIT = 25000


class Settings(BaseModel):
    """Process-lifetime settings read once at startup."""

    api_token: str = Field(..., min_length=1)
    org_id: str = Field(..., min_length=1)
    api_url: str = API_URL
    config_path: Path = Path(DEFAULT_CONFIG_PATH)
    log_level: str = "INFO"


class CustomFieldIds(BaseModel):
    task_type: str = ""
    priority: str = ""
    estimate: str = ""


class WorkspaceConfig(BaseModel):
    """Organization-specific IDs that task payloads are built from."""

    custom_field_ids: CustomFieldIds = Field(default_factory=CustomFieldIds)
    task_type_options: dict[str, str] = Field(default_factory=dict)
    priority_options: dict[str, str] = Field(default_factory=dict)
    workflow_status_names: list[str] = Field(default_factory=list)
    workflow_status_ids: dict[str, str] = Field(default_factory=dict)

    @property
    def task_types(self) -> list[str]:
        return list(self.task_type_options)

    @property
    def priorities(self) -> list[str]:
        return list(self.priority_options)

    def task_type_name(self, option_id) -> Optional[str]:
        """Reverse lookup of a task type option ID."""
        return _reverse_lookup(self.task_type_options, option_id)

    def priority_name(self, option_id) -> Optional[str]:
        """Reverse lookup of a priority option ID."""
        return _reverse_lookup(self.priority_options, option_id)


def _reverse_lookup(options: dict[str, str], option_id) -> Optional[str]:
    if option_id is None or option_id == "":
        return None
    for name, candidate in options.items():
        if str(candidate) == str(option_id):
            return name
    return None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from the environment.

    Raises:
        ConfigurationError: If PRODUCTIVE_API_TOKEN or PRODUCTIVE_ORG_ID is missing
    """
    environ = os.environ if environ is None else environ
    validate_environment(environ)

    return Settings(
        api_token=environ["PRODUCTIVE_API_TOKEN"],
        org_id=environ["PRODUCTIVE_ORG_ID"],
        api_url=environ.get("PRODUCTIVE_API_URL") or API_URL,
        config_path=Path(environ.get("PRODUCTIVE_CONFIG_PATH") or DEFAULT_CONFIG_PATH),
        log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
    )


def load_workspace_config(path: Path) -> WorkspaceConfig:
    """Load workspace IDs from a JSON (or YAML) config file.

    A missing file is not an error: custom fields and workflow statuses are
    then simply unavailable.

    Raises:
        ConfigurationError: If the file exists but cannot be parsed
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"No workspace config at {path}; custom fields and workflow statuses disabled")
        return WorkspaceConfig()

    try:
        raw = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Could not parse {path}: expected a JSON object")

    try:
        config = WorkspaceConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid workspace config in {path}: {e}") from e

    logger.info(
        f"Loaded workspace config from {path}: "
        f"{len(config.task_type_options)} task types, "
        f"{len(config.priority_options)} priorities, "
        f"{len(config.workflow_status_ids)} workflow statuses"
    )
    return config
