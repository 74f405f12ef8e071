"""Policy document loading.

A policy document is a versioned YAML file mapping command names to their
definitions:

    version: 1
    commands:
      useradd:
        description: Create a new Linux user
        requires_elevated_privilege: true
        log_arguments: true
        allowed_argument_patterns:
          - '^-m$'
          - '^[a-z][a-z0-9_-]{2,31}$'
"""

from pathlib import Path
from typing import Any

import pydantic
import yaml
from pydantic import BaseModel, Field

from hostops_core.config import Settings
from hostops_core.exceptions import PolicyLoadError
from hostops_core.policy.defaults import default_policy_table
from hostops_core.policy.table import CommandDefinition, PolicyTable

SUPPORTED_VERSIONS = {1}


class CommandSpec(BaseModel):
    """One command entry as written in a policy document."""

    description: str = ""
    requires_elevated_privilege: bool = False
    allowed_argument_patterns: list[str] = Field(default_factory=list)
    log_arguments: bool = False

    class Config:
        """Pydantic configuration."""

        extra = "forbid"


class PolicyDocument(BaseModel):
    """Versioned policy document."""

    version: int
    commands: dict[str, CommandSpec] = Field(default_factory=dict)

    class Config:
        """Pydantic configuration."""

        extra = "forbid"


def policy_from_data(data: Any) -> PolicyTable:
    """
    Build a PolicyTable from already-parsed document data.

    Args:
        data: Parsed YAML/JSON mapping

    Returns:
        PolicyTable with one definition per document entry

    Raises:
        PolicyLoadError: If the document is malformed, uses an unsupported
            version or contains an invalid regular expression
    """
    if not isinstance(data, dict):
        raise PolicyLoadError("Policy document must be a mapping")

    try:
        document = PolicyDocument.model_validate(data)
    except pydantic.ValidationError as e:
        raise PolicyLoadError(f"Invalid policy document: {e}") from e

    if document.version not in SUPPORTED_VERSIONS:
        raise PolicyLoadError(
            f"Unsupported policy version {document.version}. "
            f"Supported: {sorted(SUPPORTED_VERSIONS)}"
        )

    definitions = []
    for name, spec in document.commands.items():
        try:
            definitions.append(CommandDefinition(name=name, **spec.model_dump()))
        except pydantic.ValidationError as e:
            raise PolicyLoadError(f"Invalid definition for '{name}': {e}") from e

    return PolicyTable(definitions)


def load_policy_table(path: Path) -> PolicyTable:
    """
    Load a policy table from a YAML file.

    Args:
        path: Path to the policy document

    Returns:
        Loaded PolicyTable

    Raises:
        PolicyLoadError: If the file is missing or invalid
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise PolicyLoadError(f"Policy file not found: {path}") from e
    except yaml.YAMLError as e:
        raise PolicyLoadError(f"Policy file {path} is not valid YAML: {e}") from e

    return policy_from_data(data)


def load_configured_policy(settings: Settings | None = None) -> PolicyTable:
    """Load the policy file named in settings, or the built-in default table."""
    settings = settings or Settings()
    if settings.policy_file is None:
        return default_policy_table()
    return load_policy_table(settings.policy_file)


def dump_policy_table(table: PolicyTable) -> dict[str, Any]:
    """Serialize a PolicyTable into policy document data (inverse of policy_from_data)."""
    return {
        "version": max(SUPPORTED_VERSIONS),
        "commands": {
            definition.name: {
                "description": definition.description,
                "requires_elevated_privilege": definition.requires_elevated_privilege,
                "log_arguments": definition.log_arguments,
                "allowed_argument_patterns": [
                    pattern.pattern for pattern in definition.allowed_argument_patterns
                ],
            }
            for definition in table
        },
    }
