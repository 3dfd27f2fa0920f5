"""Utilities for reading credentials from Kubernetes secrets."""

from __future__ import annotations

import base64
import json
from typing import Any

from google.oauth2 import service_account
from kubernetes import client

from ..constants import CREDENTIALS_SECRET_KEY

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


def get_secret_value(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
    key: str,
) -> str:
    """Get a value from a Kubernetes secret.

    Args:
        api: Kubernetes API client
        namespace: Namespace of the secret
        secret_name: Name of the secret
        key: Key in the secret

    Returns:
        Secret value

    Raises:
        ValueError: If secret or key not found
    """
    try:
        secret = api.read_namespaced_secret(name=secret_name, namespace=namespace)
    except client.exceptions.ApiException as e:
        if e.status == 404:
            raise ValueError(f"Secret '{secret_name}' not found in namespace '{namespace}'") from e
        raise

    data = secret.data or {}
    if key not in data:
        raise ValueError(f"Key '{key}' not found in secret '{secret_name}'")

    value = data[key]
    # Handle both string and bytes (different versions of kubernetes client)
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True).decode("utf-8")
        except ValueError:
            # Not base64, assume it's already decoded
            return value
    return value.decode("utf-8")


def resolve_credentials(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
    key: str = CREDENTIALS_SECRET_KEY,
) -> service_account.Credentials:
    """Build service account credentials from a JSON key stored in a secret.

    Args:
        api: Kubernetes API client
        namespace: Namespace of the secret
        secret_name: Name of the secret
        key: Key holding the service account JSON key

    Returns:
        Service account credentials scoped for cloud-platform

    Raises:
        ValueError: If the secret, the key, or a valid JSON key is missing
    """
    raw = get_secret_value(api, namespace, secret_name, key)
    try:
        info: dict[str, Any] = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Key '{key}' in secret '{secret_name}' is not a JSON service account key") from e

    try:
        return service_account.Credentials.from_service_account_info(info, scopes=[CLOUD_PLATFORM_SCOPE])
    except (KeyError, ValueError) as e:
        raise ValueError(f"Key '{key}' in secret '{secret_name}' is not a valid service account key: {e}") from e
