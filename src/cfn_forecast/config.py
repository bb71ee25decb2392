"""
Configuration models for cfn-forecast.

Deploy configuration (parameters and tags) is merged from the template,
the existing stack, an optional YAML/JSON file, and command line values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError

if TYPE_CHECKING:
    from .template import Template

logger = logging.getLogger(__name__)


# =============================================================================
# Deploy Configuration
# =============================================================================


class DeployConfig(BaseModel):
    """Resolved parameter and tag values for one deployment."""

    parameters: dict[str, str] = Field(default_factory=dict)
    tags: dict[str, str] = Field(default_factory=dict)


class DeployConfigFile(BaseModel):
    """Schema of the --config file."""

    parameters: dict[str, str] = Field(default_factory=dict, alias="Parameters")
    tags: dict[str, str] = Field(default_factory=dict, alias="Tags")

    @field_validator("parameters", "tags", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): _to_str(v) for k, v in value.items()}
        return value


def _to_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ",".join(str(v) for v in value)
    return str(value)


@dataclass
class ForecastSettings:
    """Flags for a forecast run."""

    skip_iam: bool = False  # Skip permission checks
    resource_type: str = ""  # Only check this type; empty means all
    show_all: bool = False  # Report passing checks too
    role_arn: str = ""  # Role to simulate instead of the caller


# =============================================================================
# Loading
# =============================================================================


def parse_key_values(items: list[str], what: str = "value") -> dict[str, str]:
    """
    Parse key=value pairs.

    Each item may itself hold several comma-separated pairs.

    Raises:
        ConfigurationError: An entry has no '='
    """
    result: dict[str, str] = {}
    for item in items:
        for pair in item.split(","):
            pair = pair.strip()
            if not pair:
                continue
            key, sep, value = pair.partition("=")
            if not sep or not key:
                raise ConfigurationError(f"Invalid {what} '{pair}', expected key=value")
            result[key.strip()] = value.strip()
    return result


def load_config_file(path: Path) -> DeployConfigFile:
    """
    Load a YAML or JSON file with Parameters and Tags sections.

    Raises:
        ConfigurationError: The file cannot be read or does not match the schema
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Unable to read config file '{path}': {e}") from e

    if data is None:
        return DeployConfigFile()
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file '{path}' must contain a mapping")

    try:
        return DeployConfigFile.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config file '{path}': {e}") from e


def load_deploy_config(
    template: Template,
    stack: dict[str, Any] | None = None,
    config_path: Path | None = None,
    params: list[str] | None = None,
    tags: list[str] | None = None,
) -> DeployConfig:
    """
    Build the deploy configuration for a run.

    Precedence, lowest first: template defaults, previous stack values,
    config file, command line.

    Args:
        template: The parsed template
        stack: Existing stack descriptor (describe_stacks output), if any
        config_path: Optional YAML/JSON config file
        params: Command line parameter pairs
        tags: Command line tag pairs

    Returns:
        DeployConfig with merged values
    """
    parameters = template.parameter_defaults()
    stack_tags: dict[str, str] = {}

    if stack:
        declared = {name for name, _ in template.iter_parameters()}
        for p in stack.get("Parameters", []):
            key = p.get("ParameterKey")
            if key in declared and "ParameterValue" in p:
                parameters[key] = p["ParameterValue"]
        for t in stack.get("Tags", []):
            stack_tags[t["Key"]] = t["Value"]

    if config_path:
        file_config = load_config_file(config_path)
        parameters.update(file_config.parameters)
        stack_tags.update(file_config.tags)

    parameters.update(parse_key_values(params or [], "parameter"))
    stack_tags.update(parse_key_values(tags or [], "tag"))

    logger.debug("Deploy config: %d parameters, %d tags", len(parameters), len(stack_tags))
    return DeployConfig(parameters=parameters, tags=stack_tags)


def get_stack_name(supplied: str | None, template_path: Path) -> str:
    """Use the supplied stack name, or the template's file name without extension."""
    if supplied:
        return supplied
    return template_path.stem
