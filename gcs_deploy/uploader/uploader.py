"""
Google Cloud Storage transfer pipeline.

Uploads one matched file in two ordered phases:

1. Body: the local file (gzip-compressed when the run asks for it) is
   uploaded to the target object. The upload call returns only once the
   object is committed.
2. Metadata: the committed object is made publicly readable when the run's
   access mode is ``public``, then its content type, content encoding and
   cache control are patched in one attribute update.

Any failure raises; nothing is retried.

Example usage:
    >>> from gcs_deploy.uploader import FileEntry, open_run_context, upload_file
    >>> with open_run_context(spec) as context:
    ...     entry = FileEntry("build/app.js", "releases/v1/app.js", "text/javascript")
    ...     result = upload_file(context, entry)
"""

import gzip
import os
import tempfile
import time
from dataclasses import dataclass, field
from typing import IO, TYPE_CHECKING, Any, Dict, Optional, Tuple

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError

from gcs_deploy.utils.errors import SourceFileError, TransferError
from gcs_deploy.utils.logging import get_logger

if TYPE_CHECKING:
    from gcs_deploy.uploader.context import RunContext

logger = get_logger(__name__)

ACCESS_MODES = ("private", "public")

# Codec identifier written to Content-Encoding
COMPRESSION_ENCODING = "gzip"

CHUNK_SIZE = 1024 * 1024
# Compressed bodies are staged in memory up to this size, then on disk
SPOOL_MAX_BYTES = 16 * 1024 * 1024

# Credentials refresh lazily on the first request of a blob call
_REMOTE_ERRORS = (GoogleAPIError, GoogleAuthError, OSError)


@dataclass(frozen=True)
class UploadSpec:
    """
    Settings of one deploy run.

    Attributes:
        bucket: GCS bucket name (without gs:// prefix)
        source: Glob pattern selecting local files
        target: Key prefix objects are uploaded under
        strip_prefix: Literal prefix removed from local paths before joining
        exclude: Glob patterns whose matches are never uploaded
        access: ``private`` or ``public``
        dry_run: Resolve and log everything but upload nothing
        compress: Gzip bodies and set Content-Encoding
        cache_control: Cache-Control metadata, if any
        credentials: Service-account JSON contents; empty for
            application-default credentials
    """

    bucket: str
    source: str
    target: str = ""
    strip_prefix: str = ""
    exclude: Tuple[str, ...] = ()
    access: str = "private"
    dry_run: bool = False
    compress: bool = False
    cache_control: Optional[str] = None
    credentials: str = field(default="", repr=False)


@dataclass(frozen=True)
class FileEntry:
    """A matched local file and what it becomes remotely."""

    local_path: str
    target: str
    content_type: str


@dataclass(frozen=True)
class AttributeUpdate:
    """
    Metadata applied to an object after its body is committed.

    Attributes:
        content_type: MIME type of the object
        content_encoding: Set only when the body was compressed
        cache_control: Set only when configured
    """

    content_type: str
    content_encoding: Optional[str] = None
    cache_control: Optional[str] = None

    @classmethod
    def for_entry(cls, entry: FileEntry, spec: UploadSpec) -> "AttributeUpdate":
        return cls(
            content_type=entry.content_type,
            content_encoding=COMPRESSION_ENCODING if spec.compress else None,
            cache_control=spec.cache_control or None,
        )

    def as_dict(self) -> Dict[str, str]:
        """Fields that will be sent, keyed by their metadata name."""
        attrs = {"content_type": self.content_type}
        if self.content_encoding is not None:
            attrs["content_encoding"] = self.content_encoding
        if self.cache_control is not None:
            attrs["cache_control"] = self.cache_control
        return attrs

    def apply(self, blob: Any) -> None:
        """Set the fields on ``blob`` and patch them in one request."""
        for name, value in self.as_dict().items():
            setattr(blob, name, value)
        blob.patch()


@dataclass
class UploadResult:
    """
    Outcome of one file of a run.

    Attributes:
        local_path: Local file path
        target: Object key
        success: Whether the file was uploaded (or would be, in a dry run)
        gcs_uri: gs://bucket/key of the object
        dry_run: True if nothing was actually transferred
        bytes_uploaded: Source bytes read (before compression)
        duration_seconds: Time spent on the file
        error_message: Error description (None if successful)
    """

    local_path: str
    target: str
    success: bool
    gcs_uri: Optional[str] = None
    dry_run: bool = False
    bytes_uploaded: int = 0
    duration_seconds: float = 0.0
    error_message: Optional[str] = None


def _log_fields(context: "RunContext", entry: FileEntry) -> Dict[str, Any]:
    spec = context.spec
    return {
        "file": entry.local_path,
        "bucket": spec.bucket,
        "target": entry.target,
        "content_type": entry.content_type,
        "compress": spec.compress,
        "cache_control": spec.cache_control or "",
    }


def _copy(source: IO[bytes], sink: IO[bytes], entry: FileEntry) -> int:
    """Copy ``source`` into a local sink, returning the bytes read."""
    total = 0
    while True:
        try:
            chunk = source.read(CHUNK_SIZE)
        except OSError as e:
            raise SourceFileError(
                f"Could not read source file: {e}", entry.local_path, entry.target
            ) from e
        if not chunk:
            return total
        sink.write(chunk)
        total += len(chunk)


def _upload(
    context: "RunContext", entry: FileEntry, blob: Any, body: IO[bytes], size: int
) -> None:
    # A known size lets small objects go in one multipart request
    try:
        blob.upload_from_file(body, rewind=True, size=size)
    except _REMOTE_ERRORS as e:
        context.metrics.record_gcs_error(operation="write", error_type=type(e).__name__)
        raise TransferError(
            f"Could not write object: {e}", entry.local_path, entry.target
        ) from e


def _write_body(context: "RunContext", entry: FileEntry, blob: Any) -> int:
    """
    Body phase: upload the (optionally compressed) file and commit it.

    Returns:
        Number of source bytes read
    """
    try:
        source = open(entry.local_path, "rb")
    except OSError as e:
        raise SourceFileError(
            f"Could not open source file: {e}", entry.local_path, entry.target
        ) from e

    with source:
        if not context.spec.compress:
            size = os.fstat(source.fileno()).st_size
            _upload(context, entry, blob, source, size)
            return size

        with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_BYTES) as staged:
            # mtime=0 keeps the compressed bytes identical across builds
            with gzip.GzipFile(filename="", mode="wb", fileobj=staged, mtime=0) as compressed:
                size = _copy(source, compressed, entry)
            # The gzip footer is written; the object is committed by the upload
            _upload(context, entry, blob, staged, staged.tell())
            return size


def _write_metadata(context: "RunContext", entry: FileEntry, blob: Any) -> AttributeUpdate:
    """Metadata phase: ACL first, then the attribute update."""
    if context.spec.access == "public":
        try:
            blob.make_public()
        except _REMOTE_ERRORS as e:
            context.metrics.record_gcs_error(operation="acl", error_type=type(e).__name__)
            raise TransferError(
                f"Could not grant public read: {e}", entry.local_path, entry.target
            ) from e

    update = AttributeUpdate.for_entry(entry, context.spec)
    try:
        update.apply(blob)
    except _REMOTE_ERRORS as e:
        context.metrics.record_gcs_error(operation="patch", error_type=type(e).__name__)
        raise TransferError(
            f"Could not update attributes: {e}", entry.local_path, entry.target
        ) from e
    return update


def upload_file(context: "RunContext", entry: FileEntry) -> UploadResult:
    """
    Upload a single matched file.

    In a dry run the intended upload is logged and a result returned without
    opening the local file or calling the storage API.

    Args:
        context: Handles of the current run
        entry: File to upload and its derived target and content type

    Returns:
        UploadResult describing the upload

    Raises:
        SourceFileError: If the local file cannot be opened or read
        TransferError: If the context was released or any remote step fails
    """
    spec = context.spec
    fields = _log_fields(context, entry)
    gcs_uri = f"gs://{spec.bucket}/{entry.target}"

    logger.info("Uploading file", extra=fields)

    if spec.dry_run:
        context.metrics.record_dry_run()
        return UploadResult(
            local_path=entry.local_path,
            target=entry.target,
            success=True,
            gcs_uri=gcs_uri,
            dry_run=True,
        )

    if context.released:
        raise TransferError("Run context already released", entry.local_path, entry.target)

    start_time = time.time()
    blob = context.bucket.blob(entry.target)

    with context.metrics.track_upload():
        size = _write_body(context, entry, blob)
        logger.info("Uploaded file", extra=fields)

        update = _write_metadata(context, entry, blob)
        logger.info("Updated attributes", extra={**fields, **update.as_dict()})

    context.metrics.record_upload_success(bytes_uploaded=size)

    return UploadResult(
        local_path=entry.local_path,
        target=entry.target,
        success=True,
        gcs_uri=gcs_uri,
        bytes_uploaded=size,
        duration_seconds=time.time() - start_time,
    )
