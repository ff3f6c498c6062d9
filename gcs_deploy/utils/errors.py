"""
Exception hierarchy for gcs-deploy.

Every failure of a deploy run surfaces as a subclass of DeployError so the
CLI can log it and exit non-zero. Nothing here is retried.
"""

from typing import Optional


class DeployError(Exception):
    """Base exception for the package."""


class ConfigError(DeployError):
    """Raised when configuration or the credentials payload is malformed."""


class AuthError(DeployError):
    """Raised when a storage client cannot be acquired."""


class MatchError(DeployError):
    """Raised when an include or exclude glob pattern is invalid."""

    def __init__(self, message: str, pattern: Optional[str] = None) -> None:
        super().__init__(message)
        self.pattern = pattern


class FileTransferError(DeployError):
    """
    Base for errors tied to a single file of the run.

    Attributes:
        local_path: Local file being processed
        target: Object key the file was headed for
    """

    def __init__(
        self,
        message: str,
        local_path: Optional[str] = None,
        target: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.local_path = local_path
        self.target = target

    def __str__(self) -> str:
        base = super().__str__()
        if self.local_path is None:
            return base
        return f"{base} (name={self.local_path}, target={self.target})"


class SourceFileError(FileTransferError):
    """Raised when a local source file cannot be opened or read."""


class TransferError(FileTransferError):
    """Raised when writing, committing or updating a remote object fails."""
