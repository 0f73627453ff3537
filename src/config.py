"""
Configuration management for webapp deployments.

Settings come from dataclass defaults, an optional YAML file and
environment variable overrides, in that order.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from jsonschema import ValidationError, validate

DEFAULT_CONFIG_FILE = "webapp-deploy.yaml"

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "region": {"type": "string", "minLength": 1},
        "profile": {"type": ["string", "null"]},
        "poll_interval": {"type": "number", "exclusiveMinimum": 0},
        "max_wait": {"type": ["number", "null"], "exclusiveMinimum": 0},
        "probe_retries": {"type": "integer", "minimum": 0},
        "probe_backoff": {"type": "number", "minimum": 0},
        "capabilities": {"type": "array", "items": {"type": "string"}},
        "build_command": {
            "type": "array",
            "items": {"type": "string"},
            "minItems": 1,
        },
        "workspace_prefix": {"type": "string"},
        "tags": {"type": "object", "additionalProperties": {"type": "string"}},
    },
    "additionalProperties": False,
}

# Environment variable -> (field, converter)
ENV_OVERRIDES = {
    "AWS_DEFAULT_REGION": ("region", str),
    "AWS_REGION": ("region", str),
    "AWS_PROFILE": ("profile", str),
    "WEBAPP_DEPLOY_POLL_INTERVAL": ("poll_interval", float),
    "WEBAPP_DEPLOY_MAX_WAIT": ("max_wait", float),
}


@dataclass
class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    message: str
    details: Optional[str] = None

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


@dataclass
class DeployConfig:
    """Settings for a deployment run."""

    # AWS context
    region: str = "us-east-1"
    profile: Optional[str] = None

    # Stack polling
    poll_interval: float = 5.0
    max_wait: Optional[float] = 3600.0
    probe_retries: int = 3
    probe_backoff: float = 1.0

    capabilities: List[str] = field(
        default_factory=lambda: ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM"]
    )

    # Build, {project} and {output} are substituted per run
    build_command: List[str] = field(
        default_factory=lambda: [
            "dotnet",
            "publish",
            "{project}",
            "--configuration",
            "Release",
            "--output",
            "{output}",
        ]
    )
    workspace_prefix: str = "webapp-deploy-"

    tags: Dict[str, str] = field(default_factory=lambda: {"ManagedBy": "webapp-deploy"})

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeployConfig":
        """Create config from dictionary."""
        try:
            validate(instance=data, schema=CONFIG_SCHEMA)
        except ValidationError as e:
            raise ConfigurationError("Invalid configuration", e.message) from e
        return cls(**data)


def _read_config_file(config_file: Path) -> Dict[str, Any]:
    try:
        with open(config_file, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse {config_file}", str(e)) from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration in {config_file} must be a mapping")
    return data


def _apply_env_overrides(data: Dict[str, Any], environ: Dict[str, str]) -> None:
    for var, (key, convert) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if not value:
            continue
        try:
            data[key] = convert(value)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {var}", value) from e


def load_deploy_config(
    config_file: Optional[Union[str, Path]] = None,
    environ: Optional[Dict[str, str]] = None,
    **overrides: Any,
) -> DeployConfig:
    """
    Load deployment configuration.

    Args:
        config_file: YAML file to read; defaults to ./webapp-deploy.yaml when present
        environ: Environment mapping (defaults to os.environ)
        **overrides: Explicit values, e.g. from CLI options; None values are ignored

    Returns:
        Validated DeployConfig
    """
    data: Dict[str, Any] = {}

    if config_file is not None:
        path = Path(config_file)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")
        data.update(_read_config_file(path))
    elif Path(DEFAULT_CONFIG_FILE).exists():
        data.update(_read_config_file(Path(DEFAULT_CONFIG_FILE)))

    _apply_env_overrides(data, dict(os.environ) if environ is None else environ)

    data.update({k: v for k, v in overrides.items() if v is not None})

    return DeployConfig.from_dict(data)
