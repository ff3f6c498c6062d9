"""
Deploy file loader and validator.

A deploy file keeps the upload rules of a project next to its build, so the
CI step only has to supply credentials. Values from the file override the
environment; CLI flags override the file.

Example deploy file (deploy.yaml):
    ```yaml
    version: "1.0"
    bucket: my-site-assets
    source: build/**
    target: releases/v1
    strip_prefix: build/
    exclude:
      - build/**/*.map
    acl: public
    compress: true
    cache_control: public, max-age=3600
    ```

Usage:
    >>> from gcs_deploy.utils.config_loader import load_config, validate_config
    >>> config = load_config("deploy.yaml")
    >>> issues = validate_config(config)
    >>> if not issues:
    ...     overrides = to_overrides(config)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from gcs_deploy.uploader.uploader import ACCESS_MODES
from gcs_deploy.utils.errors import ConfigError
from gcs_deploy.utils.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_VERSIONS = ["1.0"]

_STRING_FIELDS = ["bucket", "source", "target", "strip_prefix", "cache_control"]
_BOOL_FIELDS = ["compress", "dry_run"]

# Deploy file key -> DeployConfig attribute
_FIELD_MAP = {
    "bucket": "bucket",
    "source": "source",
    "target": "target",
    "strip_prefix": "strip_prefix",
    "exclude": "exclude",
    "acl": "access",
    "dry_run": "dry_run",
    "compress": "compress",
    "cache_control": "cache_control",
}


@dataclass
class ConfigIssue:
    """Validation problem in a deploy file."""

    field: str
    message: str
    value: Optional[Any] = None

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.field}: {self.message} (got: {self.value})"
        return f"{self.field}: {self.message}"


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a deploy file.

    Args:
        config_path: Path to YAML deploy file

    Returns:
        Dictionary containing parsed configuration

    Raises:
        ConfigError: If the file is missing, empty, not a mapping or not
            valid YAML
    """
    path = Path(config_path)
    logger.info(f"Loading deploy file: {path}")

    if not path.exists():
        raise ConfigError(f"Deploy file not found: {path}")

    if not path.is_file():
        raise ConfigError(f"Deploy file path is not a file: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise ConfigError(f"Deploy file is not valid YAML: {path}: {e}") from e

    if config is None:
        raise ConfigError(f"Deploy file is empty: {path}")

    if not isinstance(config, dict):
        raise ConfigError(
            f"Deploy file must contain a mapping, got {type(config).__name__}: {path}"
        )

    return config


def validate_config(config: Dict[str, Any]) -> List[ConfigIssue]:
    """
    Validate a parsed deploy file.

    Args:
        config: Parsed deploy file

    Returns:
        List of validation issues (empty if valid)
    """
    issues: List[ConfigIssue] = []

    if "version" not in config:
        issues.append(ConfigIssue("version", "Missing required field"))
    elif str(config["version"]) not in SUPPORTED_VERSIONS:
        issues.append(
            ConfigIssue(
                "version",
                f"Unsupported version (supported: {SUPPORTED_VERSIONS})",
                config["version"],
            )
        )

    for key in config:
        if key != "version" and key not in _FIELD_MAP:
            issues.append(ConfigIssue(key, "Unknown field"))

    for key in _STRING_FIELDS:
        if key in config and not isinstance(config[key], str):
            issues.append(
                ConfigIssue(key, "Must be a string", type(config[key]).__name__)
            )

    for key in _BOOL_FIELDS:
        if key in config and not isinstance(config[key], bool):
            issues.append(
                ConfigIssue(key, "Must be true or false", type(config[key]).__name__)
            )

    if "acl" in config and config["acl"] not in ACCESS_MODES:
        issues.append(
            ConfigIssue("acl", f"Invalid access mode (valid: {list(ACCESS_MODES)})", config["acl"])
        )

    # A single string is accepted as a one-pattern list
    if "exclude" in config and not isinstance(config["exclude"], str):
        exclude = config["exclude"]
        if not isinstance(exclude, list):
            issues.append(
                ConfigIssue("exclude", "Must be a list of patterns", type(exclude).__name__)
            )
        else:
            for i, pattern in enumerate(exclude):
                if not isinstance(pattern, str) or not pattern:
                    issues.append(
                        ConfigIssue(f"exclude[{i}]", "Must be a non-empty string", pattern)
                    )

    if issues:
        logger.warning(f"Deploy file validation failed with {len(issues)} issues")

    return issues


def to_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map a validated deploy file onto DeployConfig attribute names.

    A single string ``exclude`` is treated as a one-pattern list.
    """
    overrides: Dict[str, Any] = {}
    for key, attr in _FIELD_MAP.items():
        if key not in config:
            continue
        value = config[key]
        if key == "exclude" and isinstance(value, str):
            value = [value]
        overrides[attr] = value
    return overrides


def load_overrides(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load, validate and map a deploy file in one step.

    Raises:
        ConfigError: If loading fails or validation reports any issue
    """
    config = load_config(config_path)
    issues = validate_config(config)
    if issues:
        details = "; ".join(str(issue) for issue in issues)
        raise ConfigError(f"Invalid deploy file {config_path}: {details}")
    return to_overrides(config)
