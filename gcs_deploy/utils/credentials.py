"""
Google Cloud credentials for deploy runs.

The credentials payload is the *contents* of a service-account JSON key, as
CI systems hand it over in an environment variable. An empty payload falls
back to application-default credentials (workload identity, gcloud login).

Security Principles:
    - Never log the payload or any key material
    - Fail before any file is touched when the payload is malformed
"""

import json
from typing import Any, Dict, Optional

import google.auth
from google.auth import exceptions as auth_exceptions
from google.cloud import storage
from google.oauth2 import service_account

from gcs_deploy.utils.errors import AuthError, ConfigError
from gcs_deploy.utils.logging import get_logger

logger = get_logger(__name__)

# Uploads set ACLs, so read-write is not enough
FULL_CONTROL_SCOPE = "https://www.googleapis.com/auth/devstorage.full_control"

_REQUIRED_KEY_FIELDS = ("client_email", "private_key")


def load_service_account_info(payload: str) -> Dict[str, Any]:
    """
    Decode a service-account JSON payload.

    Args:
        payload: Contents of the service-account key file

    Returns:
        Parsed key as a dict

    Raises:
        ConfigError: If the payload is not a JSON object with key fields
    """
    try:
        info = json.loads(payload)
    except json.JSONDecodeError as e:
        # The message of JSONDecodeError only carries positions, never content
        raise ConfigError(f"Credentials payload is not valid JSON: {e}") from e

    if not isinstance(info, dict):
        raise ConfigError(
            f"Credentials payload must be a JSON object, got {type(info).__name__}"
        )

    missing = [key for key in _REQUIRED_KEY_FIELDS if not info.get(key)]
    if missing:
        raise ConfigError(
            f"Credentials payload is missing required fields: {', '.join(missing)}"
        )

    return info


def create_storage_client(payload: Optional[str]) -> storage.Client:
    """
    Create a storage client with full-control access.

    Args:
        payload: Service-account JSON contents, or empty for
            application-default credentials

    Returns:
        Authenticated ``google.cloud.storage.Client``

    Raises:
        ConfigError: If the payload is malformed
        AuthError: If credentials or the client cannot be created
    """
    if not payload:
        logger.info("No credentials payload given, using application default credentials")
        try:
            credentials, project = google.auth.default(scopes=[FULL_CONTROL_SCOPE])
            return storage.Client(project=project, credentials=credentials)
        except auth_exceptions.GoogleAuthError as e:
            raise AuthError(f"Could not acquire default credentials: {e}") from e

    info = load_service_account_info(payload)
    logger.debug(f"Using service account {info['client_email']}")

    try:
        credentials = service_account.Credentials.from_service_account_info(
            info, scopes=[FULL_CONTROL_SCOPE]
        )
    except (ValueError, auth_exceptions.GoogleAuthError) as e:
        raise AuthError(f"Could not create service account credentials: {e}") from e

    try:
        return storage.Client(project=info.get("project_id"), credentials=credentials)
    except auth_exceptions.GoogleAuthError as e:
        raise AuthError(f"Could not create storage client: {e}") from e
