"""
Run context: the storage handles shared by every transfer of one run.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

from gcs_deploy.uploader.uploader import UploadSpec
from gcs_deploy.utils.credentials import create_storage_client
from gcs_deploy.utils.logging import get_logger
from gcs_deploy.utils.metrics import UploadMetrics, get_metrics

logger = get_logger(__name__)

# Takes the credentials payload, returns a storage.Client-like object
ClientFactory = Callable[[str], Any]


@dataclass
class RunContext:
    """
    Handles owned by a single deploy run.

    Attributes:
        spec: Immutable settings of the run
        client: Storage client (closed on release)
        bucket: Bucket handle objects are created from
        metrics: Collectors the run records into
        cancelled: Set once the context is released; transfers refuse to
            start afterwards
    """

    spec: UploadSpec
    client: Any
    bucket: Any
    metrics: UploadMetrics
    cancelled: threading.Event = field(default_factory=threading.Event)

    @property
    def released(self) -> bool:
        return self.cancelled.is_set()

    def release(self) -> None:
        """Close the storage client. Safe to call more than once."""
        if self.cancelled.is_set():
            return
        self.cancelled.set()
        close = getattr(self.client, "close", None)
        if close is not None:
            close()
        logger.debug(f"Released storage client for bucket {self.spec.bucket}")


@contextmanager
def open_run_context(
    spec: UploadSpec,
    client_factory: Optional[ClientFactory] = None,
    metrics: Optional[UploadMetrics] = None,
) -> Iterator[RunContext]:
    """
    Acquire a storage client for ``spec`` and release it on exit.

    Args:
        spec: Settings of the run
        client_factory: Builds the client from the credentials payload;
            defaults to ``create_storage_client``
        metrics: Collectors to record into; defaults to the process-wide ones

    Raises:
        ConfigError: If the credentials payload is malformed
        AuthError: If the client cannot be created
    """
    factory = client_factory or create_storage_client
    client = factory(spec.credentials)

    context = RunContext(
        spec=spec,
        client=client,
        bucket=None,
        metrics=metrics or get_metrics(),
    )
    try:
        # No API call: bucket handles are created locally
        context.bucket = client.bucket(spec.bucket)
        yield context
    finally:
        context.release()
