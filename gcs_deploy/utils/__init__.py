"""
Shared utilities for gcs-deploy.

- logging: Structured logging with run ids and entry/exit decorators
- errors: Exception hierarchy of a deploy run
- config / config_loader: Environment and deploy-file configuration
- credentials: Service-account decoding and storage client creation
- metrics: Prometheus collectors for upload runs
"""

from gcs_deploy.utils.logging import get_logger, log_function_call

__all__ = ["get_logger", "log_function_call"]
