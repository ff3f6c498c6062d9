"""
gcs-deploy

Uploads build artifacts selected by glob patterns to a Google Cloud Storage
bucket, with per-file content types, optional gzip compression, public-read
ACLs and cache-control metadata.

This package provides:
- uploader: matching, key resolution, the transfer pipeline and run orchestration
- utils: logging, configuration, credentials, errors and metrics
"""

__version__ = "1.0.0"

from gcs_deploy.utils.logging import setup_logging

# Initialize default logging configuration
setup_logging()
