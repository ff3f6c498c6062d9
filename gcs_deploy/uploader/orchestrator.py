"""
Deploy run orchestration.

Drives one run from credentials to the last uploaded file:

    Init -> Authenticated -> Resolving -> Uploading -> Finished
                 |               |            |
                 +---------------+------------+--> Aborted (error raised)

Files are processed one at a time in matcher order. The first failing file
aborts the run; files after it are never attempted and files before it stay
uploaded.
"""

import os
import stat
from dataclasses import dataclass, field
from typing import List, Optional

from gcs_deploy.uploader.context import ClientFactory, RunContext, open_run_context
from gcs_deploy.uploader.matcher import resolve_matches
from gcs_deploy.uploader.targets import classify, normalize_prefix, resolve_target
from gcs_deploy.uploader.uploader import FileEntry, UploadResult, UploadSpec, upload_file
from gcs_deploy.utils.errors import FileTransferError, MatchError
from gcs_deploy.utils.logging import get_logger, log_function_call
from gcs_deploy.utils.metrics import UploadMetrics

logger = get_logger(__name__)


@dataclass
class RunReport:
    """
    Summary of a finished run.

    Attributes:
        bucket: Bucket the run uploaded to
        dry_run: Whether the run was a dry run
        matched: Number of paths the matcher returned
        skipped: Directories and unreadable paths that were passed over
        results: One UploadResult per file, in upload order
    """

    bucket: str
    dry_run: bool = False
    matched: int = 0
    skipped: int = 0
    results: List[UploadResult] = field(default_factory=list)

    @property
    def uploaded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def bytes_uploaded(self) -> int:
        return sum(r.bytes_uploaded for r in self.results)


def build_entry(local_path: str, target_prefix: str, strip_prefix: str) -> FileEntry:
    """Derive the target key and content type of a matched file."""
    return FileEntry(
        local_path=local_path,
        target=resolve_target(local_path, target_prefix, strip_prefix),
        content_type=classify(local_path),
    )


def _is_directory(path: str) -> Optional[bool]:
    """True for directories, False for files, None if the path cannot be stat'ed."""
    try:
        return stat.S_ISDIR(os.stat(path).st_mode)
    except OSError as e:
        logger.warning(f"Skipping {path}: {e}")
        return None


def upload_matches(context: RunContext, paths: List[str], report: RunReport) -> None:
    """
    Upload matched paths in order, stopping at the first failure.

    Raises:
        FileTransferError: For the first file that fails
    """
    spec = context.spec
    target_prefix = normalize_prefix(spec.target)

    for path in paths:
        is_dir = _is_directory(path)
        if is_dir is None or is_dir:
            report.skipped += 1
            continue

        entry = build_entry(path, target_prefix, spec.strip_prefix)
        try:
            result = upload_file(context, entry)
        except FileTransferError as e:
            context.metrics.record_upload_failure()
            report.results.append(
                UploadResult(
                    local_path=entry.local_path,
                    target=entry.target,
                    success=False,
                    error_message=str(e),
                )
            )
            logger.error(
                "Could not upload file",
                extra={
                    "file": entry.local_path,
                    "bucket": spec.bucket,
                    "target": entry.target,
                    "error": str(e),
                },
            )
            raise

        report.results.append(result)


@log_function_call
def run_upload(
    spec: UploadSpec,
    client_factory: Optional[ClientFactory] = None,
    metrics: Optional[UploadMetrics] = None,
) -> RunReport:
    """
    Execute a deploy run.

    Args:
        spec: Settings of the run
        client_factory: Builds the storage client from the credentials
            payload (tests pass a fake)
        metrics: Collectors to record into

    Returns:
        RunReport of the finished run

    Raises:
        ConfigError: Malformed credentials payload
        AuthError: Storage client could not be acquired
        MatchError: Invalid include or exclude pattern
        SourceFileError: A local file could not be read
        TransferError: A remote write or metadata update failed
    """
    report = RunReport(bucket=spec.bucket, dry_run=spec.dry_run)

    with open_run_context(spec, client_factory=client_factory, metrics=metrics) as context:
        logger.info("Attempting to upload", extra={"bucket": spec.bucket})

        try:
            paths = resolve_matches(spec.source, spec.exclude)
        except MatchError as e:
            logger.error("Could not match files", extra={"error": str(e)})
            raise

        report.matched = len(paths)
        upload_matches(context, paths, report)

    logger.info(
        f"Run finished: {report.uploaded} file(s), {report.skipped} skipped",
        extra={"bucket": spec.bucket, "dry_run": spec.dry_run},
    )
    return report
