"""
Google Cloud Storage upload engine.

Resolves glob patterns into files, derives object keys and content types,
and uploads each file in a two-phase body-then-metadata sequence.
"""

from .uploader import (
    AttributeUpdate,
    FileEntry,
    UploadResult,
    UploadSpec,
    upload_file,
)
from .matcher import resolve_matches
from .targets import classify, normalize_prefix, resolve_target
from .context import RunContext, open_run_context
from .orchestrator import RunReport, build_entry, run_upload

__all__ = [
    "AttributeUpdate",
    "FileEntry",
    "UploadResult",
    "UploadSpec",
    "upload_file",
    "resolve_matches",
    "classify",
    "normalize_prefix",
    "resolve_target",
    "RunContext",
    "open_run_context",
    "RunReport",
    "build_entry",
    "run_upload",
]
