"""Configuration management for prstack.

Settings are resolved in this order, later sources winning:
1. Built-in defaults
2. ~/.prstack/config.yaml
3. git config keys (prstack.trunkRef, prstack.branchPrefix, prstack.namespace)

The result is a PrstackConfig object that callers construct once and pass
down; nothing here is cached for the lifetime of the process.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from prstack.core.validation import validate_branch_name
from prstack.git.runner import try_git

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when there's an error with prstack configuration."""
    pass


_CONFIG_DIR = Path.home() / ".prstack"

# git config key -> PrstackConfig field
GIT_CONFIG_KEYS = {
    "prstack.trunkRef": "trunk_ref",
    "prstack.branchPrefix": "branch_prefix",
    "prstack.namespace": "namespace",
}

DEFAULT_NAMESPACE = "local"


class PrstackConfig(BaseModel):
    """Effective prstack configuration."""

    trunk_ref: str = "origin/main"
    branch_prefix: str = "prstack"
    namespace: str = DEFAULT_NAMESPACE

    @field_validator("trunk_ref", "branch_prefix", "namespace")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("branch_prefix", "namespace")
    @classmethod
    def valid_ref_component(cls, value: str) -> str:
        # Both end up as path components of the group titles ref
        result = validate_branch_name(value)
        if not result.ok:
            raise ValueError(result.error)
        return value

    @property
    def group_titles_ref(self) -> str:
        """Ref holding the group title blob for this namespace."""
        return f"refs/{self.branch_prefix}/{self.namespace}/group-titles"


def get_global_config_dir() -> Path:
    """Get the global prstack configuration directory.

    Returns:
        Path to ~/.prstack/
    """
    return _CONFIG_DIR


def get_config_file_path() -> Path:
    """Get path to config.yaml file.

    Returns:
        Path to ~/.prstack/config.yaml
    """
    return get_global_config_dir() / "config.yaml"


def load_global_config() -> Dict[str, Any]:
    """Load global configuration from ~/.prstack/config.yaml.

    Returns:
        Dictionary with configuration values. Empty dict if file doesn't exist.
    """
    config_file = get_config_file_path()

    if not config_file.exists():
        return {}

    try:
        with open(config_file, "r") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config from {config_file}: {e}")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file {config_file} must contain a mapping")
    return config


def save_global_config(config: Dict[str, Any]) -> None:
    """Save global configuration to ~/.prstack/config.yaml."""
    config_dir = get_global_config_dir()
    config_dir.mkdir(exist_ok=True)
    config_file = get_config_file_path()

    try:
        with open(config_file, "w") as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigError(f"Failed to save config to {config_file}: {e}")


def _read_git_config(key: str, cwd: Optional[Path] = None) -> Optional[str]:
    result = try_git(["config", "--get", key], cwd=cwd)
    if result.returncode != 0:
        return None
    value = result.stdout.strip()
    return value or None


def sanitize_namespace(name: str) -> str:
    """Turn a user name into something usable as a ref path component."""
    slug = re.sub(r"[^A-Za-z0-9._-]+", "-", name.strip()).strip("-.")
    return slug.lower() or DEFAULT_NAMESPACE


def load_config(cwd: Optional[Path] = None) -> PrstackConfig:
    """Build the effective configuration for a repository.

    Args:
        cwd: Repository to read git config from.

    Returns:
        The resolved PrstackConfig.

    Raises:
        ConfigError: If a source holds an invalid value.
    """
    values: Dict[str, Any] = {}

    for key, value in load_global_config().items():
        if key in PrstackConfig.model_fields:
            values[key] = value
        else:
            logger.warning("Ignoring unknown config key in %s: %s", get_config_file_path(), key)

    for git_key, field_name in GIT_CONFIG_KEYS.items():
        value = _read_git_config(git_key, cwd=cwd)
        if value is not None:
            values[field_name] = value

    if "namespace" not in values:
        user_name = _read_git_config("user.name", cwd=cwd)
        if user_name:
            values["namespace"] = sanitize_namespace(user_name)

    try:
        config = PrstackConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid prstack configuration: {e}")

    logger.debug("Loaded configuration: %s", config.model_dump())
    return config
