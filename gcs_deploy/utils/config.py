"""
Environment configuration loader for gcs-deploy.

Reads deploy settings from the environment the way CI plugins receive them
(``PLUGIN_*`` variables), optionally after loading a ``.env`` style file, and
turns them into an immutable UploadSpec for a run.
"""

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from dotenv import load_dotenv

from gcs_deploy.uploader.uploader import ACCESS_MODES, UploadSpec
from gcs_deploy.utils.errors import ConfigError
from gcs_deploy.utils.logging import get_logger

logger = get_logger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def parse_bool(value: Optional[str]) -> bool:
    """Parse a boolean environment value (``true``, ``1``, ``yes``, ``on``)."""
    if value is None:
        return False
    return value.strip().lower() in _TRUE_VALUES


def parse_list(value: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-separated environment value, dropping empty items."""
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass
class DeployConfig:
    """Deploy settings before validation."""

    bucket: str = ""
    source: str = ""
    target: str = ""
    strip_prefix: str = ""
    exclude: Tuple[str, ...] = ()
    access: str = "private"
    dry_run: bool = False
    compress: bool = False
    cache_control: str = ""
    credentials: str = field(default="", repr=False)

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "DeployConfig":
        """
        Load configuration from environment variables.

        Args:
            env_file: Optional env file loaded first; existing variables win

        Returns:
            DeployConfig with values found in the environment

        Raises:
            ConfigError: If ``env_file`` is given but does not exist
        """
        if env_file:
            env_path = Path(env_file)
            if not env_path.is_file():
                raise ConfigError(f"Env file not found: {env_path}")
            load_dotenv(env_path, override=False)
            logger.info(f"Loaded environment from {env_path}")

        return cls(
            bucket=os.getenv("PLUGIN_BUCKET") or os.getenv("GCS_BUCKET", ""),
            source=os.getenv("PLUGIN_SOURCE", ""),
            target=os.getenv("PLUGIN_TARGET", ""),
            strip_prefix=os.getenv("PLUGIN_STRIP_PREFIX", ""),
            exclude=parse_list(os.getenv("PLUGIN_EXCLUDE")),
            access=os.getenv("PLUGIN_ACL", "private"),
            dry_run=parse_bool(os.getenv("PLUGIN_DRY_RUN")),
            compress=parse_bool(os.getenv("PLUGIN_COMPRESS")),
            cache_control=os.getenv("PLUGIN_CACHE_CONTROL", ""),
            credentials=os.getenv("GOOGLE_APPLICATION_CREDENTIALS_CONTENTS", ""),
        )

    def merge(self, overrides: Dict[str, Any]) -> "DeployConfig":
        """
        Return a copy with ``overrides`` applied.

        Keys whose value is None are ignored so unset CLI flags do not clear
        values from lower-precedence sources.

        Raises:
            ConfigError: If an override names an unknown setting
        """
        known = {f.name for f in dataclasses.fields(self)}
        updates: Dict[str, Any] = {}
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in known:
                raise ConfigError(f"Unknown configuration setting: {key}")
            if key == "exclude":
                value = tuple(value)
            updates[key] = value
        return dataclasses.replace(self, **updates)

    def to_upload_spec(self) -> UploadSpec:
        """
        Validate and freeze the configuration for a run.

        Raises:
            ConfigError: If the bucket or source is missing or the access
                mode is not one of ``private``/``public``
        """
        if not self.bucket:
            raise ConfigError(
                "Bucket is required. Set PLUGIN_BUCKET or pass --bucket."
            )
        if not self.source:
            raise ConfigError(
                "Source pattern is required. Set PLUGIN_SOURCE or pass --source."
            )
        if self.access not in ACCESS_MODES:
            raise ConfigError(
                f"Invalid access mode '{self.access}' (valid: {', '.join(ACCESS_MODES)})"
            )

        return UploadSpec(
            bucket=self.bucket,
            source=self.source,
            target=self.target,
            strip_prefix=self.strip_prefix,
            exclude=tuple(self.exclude),
            access=self.access,
            dry_run=self.dry_run,
            compress=self.compress,
            cache_control=self.cache_control or None,
            credentials=self.credentials,
        )
