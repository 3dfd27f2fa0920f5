"""Builder for Folder desired state and the names derived from it."""

from __future__ import annotations

from typing import Any

from ..constants import OWNER_SERVICE_ACCOUNT_SUFFIX
from ..services.gcp.models import DesiredFolder


def service_account_id(name: str, namespace: str) -> str:
    """Account id of the GCP service account owning a Folder."""
    return f"{name}-{namespace}"


def service_account_display_name(name: str, namespace: str) -> str:
    return f"storage-{service_account_id(name, namespace)}-{namespace}"


def folder_path(name: str, namespace: str) -> str:
    """Managed folder path of a Folder; always ends with a slash."""
    return f"{name}/{namespace}/"


def owner_service_account_name(name: str) -> str:
    """Name of the Kubernetes ServiceAccount bound to the Folder's identity."""
    return f"{name}{OWNER_SERVICE_ACCOUNT_SUFFIX}"


def workload_principal(project_id: str, namespace: str, kubernetes_service_account: str) -> str:
    """Workload identity principal of a Kubernetes ServiceAccount."""
    return f"serviceAccount:{project_id}.svc.id.goog[{namespace}/{kubernetes_service_account}]"


def service_account_principal(email: str) -> str:
    return f"serviceAccount:{email}"


def create_folder_from_spec(spec: dict[str, Any], meta: dict[str, Any]) -> DesiredFolder:
    """Create the desired state of a Folder from its CRD spec.

    Every name is derived from the resource name and namespace; spec.name
    is accepted but does not take part in naming.

    Args:
        spec: Folder CRD spec
        meta: Resource metadata

    Returns:
        Desired state for one reconcile pass

    Raises:
        ValueError: If the spec is invalid
    """
    bucket = spec.get("bucketName")
    if not bucket:
        raise ValueError("bucketName is required")

    name = meta.get("name")
    if not name:
        raise ValueError("metadata.name is required")
    namespace = meta.get("namespace", "default")

    return DesiredFolder(
        bucket=bucket,
        folder_path=folder_path(name, namespace),
        service_account_id=service_account_id(name, namespace),
        display_name=service_account_display_name(name, namespace),
        kubernetes_service_account=owner_service_account_name(name),
        namespace=namespace,
    )
