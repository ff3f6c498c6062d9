"""
Prometheus metrics for deploy runs.

A deploy is a short-lived CI step, so metrics are not scraped from a live
server. Instead each run records into its own registry and the CLI can dump
it with ``write_to_textfile`` for the node-exporter textfile collector.

Metrics Provided:
    - gcs_deploy_upload_requests_total: Counter of file uploads by status
    - gcs_deploy_upload_bytes_total: Counter of source bytes uploaded
    - gcs_deploy_upload_duration_seconds: Histogram of per-file transfer time
    - gcs_deploy_gcs_api_errors_total: Counter of storage API errors

Usage:
    >>> from gcs_deploy.utils.metrics import get_metrics
    >>> metrics = get_metrics()
    >>> with metrics.track_upload():
    ...     upload_file(context, entry)
    >>> metrics.write_textfile("/var/lib/node_exporter/gcs_deploy.prom")
"""

from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    Info,
    write_to_textfile,
)

from gcs_deploy import __version__
from gcs_deploy.utils.logging import get_logger

logger = get_logger(__name__)


class UploadMetrics:
    """
    Prometheus collectors for one deploy process.

    Example:
        >>> metrics = UploadMetrics(registry=CollectorRegistry())
        >>> metrics.record_upload_success(bytes_uploaded=1024)
        >>> metrics.record_gcs_error(operation="patch", error_type="Forbidden")
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()

        self.upload_requests = Counter(
            name="gcs_deploy_upload_requests_total",
            documentation="Total number of file uploads",
            labelnames=["status"],  # success, failure, dry_run
            registry=self.registry,
        )

        self.upload_bytes = Counter(
            name="gcs_deploy_upload_bytes_total",
            documentation="Total source bytes uploaded to GCS",
            registry=self.registry,
        )

        self.upload_duration = Histogram(
            name="gcs_deploy_upload_duration_seconds",
            documentation="Time spent transferring a single file",
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 300.0],
            registry=self.registry,
        )

        self.gcs_api_errors = Counter(
            name="gcs_deploy_gcs_api_errors_total",
            documentation="Total GCS API errors",
            labelnames=["operation", "error_type"],  # operation: write/acl/patch
            registry=self.registry,
        )

        self.app_info = Info(
            name="gcs_deploy",
            documentation="gcs-deploy build information",
            registry=self.registry,
        )
        self.app_info.info({"version": __version__})

    def track_upload(self):
        """Context manager timing a single file transfer."""
        return self.upload_duration.time()

    def record_upload_success(self, bytes_uploaded: int) -> None:
        self.upload_requests.labels(status="success").inc()
        self.upload_bytes.inc(bytes_uploaded)

    def record_upload_failure(self) -> None:
        self.upload_requests.labels(status="failure").inc()

    def record_dry_run(self) -> None:
        self.upload_requests.labels(status="dry_run").inc()

    def record_gcs_error(self, operation: str, error_type: str) -> None:
        """
        Record a storage API error.

        Args:
            operation: Phase that failed (write, acl, patch)
            error_type: Exception class name
        """
        self.gcs_api_errors.labels(operation=operation, error_type=error_type).inc()

    def write_textfile(self, path: str) -> None:
        """Write all collectors in Prometheus text format to ``path``."""
        write_to_textfile(path, self.registry)
        logger.info(f"Metrics written to {path}")


_metrics_instance: Optional[UploadMetrics] = None


def get_metrics() -> UploadMetrics:
    """Get the process-wide metrics instance (created on first use)."""
    global _metrics_instance
    if _metrics_instance is None:
        _metrics_instance = UploadMetrics()
    return _metrics_instance


def reset_metrics() -> UploadMetrics:
    """Replace the process-wide metrics instance with a fresh one."""
    global _metrics_instance
    _metrics_instance = UploadMetrics()
    return _metrics_instance
