"""Builder for GCP provider instances."""

from __future__ import annotations

from kubernetes import client, config

from ..config import get_project_id
from ..services.gcp.client import GCPProvider
from ..services.gcp.models import CredentialRef
from ..utils.secrets import resolve_credentials


def get_core_api() -> client.CoreV1Api:
    """Get a Kubernetes CoreV1Api client, preferring in-cluster configuration."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()

    return client.CoreV1Api()


def create_provider_from_ref(
    credential_ref: CredentialRef | None,
    api: client.CoreV1Api | None = None,
) -> GCPProvider:
    """Create a GCP provider for one reconcile pass.

    Args:
        credential_ref: Secret holding a service account key, or None to use
            application default credentials
        api: Kubernetes API client used to read the secret

    Returns:
        Configured GCP provider

    Raises:
        ValueError: If the referenced secret or key is missing or invalid
    """
    project_id = get_project_id()
    if credential_ref is None:
        return GCPProvider(project_id=project_id)

    if api is None:
        api = get_core_api()
    credentials = resolve_credentials(api, credential_ref.namespace, credential_ref.name)
    return GCPProvider(credentials=credentials, project_id=project_id)
