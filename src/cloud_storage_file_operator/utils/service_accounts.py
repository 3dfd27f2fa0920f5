"""Utilities for managing the Kubernetes ServiceAccounts bound to GCP service accounts."""

from __future__ import annotations

import logging
from typing import Any

from kubernetes import client

from ..constants import ANNOTATION_GCP_SERVICE_ACCOUNT, FIELD_MANAGER, LABEL_MANAGED_BY

logger = logging.getLogger(__name__)


def make_owner_reference(api_version: str, kind: str, meta: dict[str, Any]) -> dict[str, Any]:
    """Build a controller owner reference pointing at a custom resource."""
    return {
        "apiVersion": api_version,
        "kind": kind,
        "name": meta.get("name"),
        "uid": meta.get("uid"),
        "controller": True,
        "blockOwnerDeletion": True,
    }


def ensure_workload_service_account(
    api: client.CoreV1Api,
    namespace: str,
    name: str,
    gcp_service_account_email: str,
    owner_reference: dict[str, Any],
) -> client.V1ServiceAccount:
    """Create or update a ServiceAccount annotated for workload identity.

    The annotation and the controller owner reference are set on every call;
    other annotations, labels and owner references are left alone.

    Args:
        api: Kubernetes API client
        namespace: Namespace of the ServiceAccount
        name: Name of the ServiceAccount
        gcp_service_account_email: Email of the GCP service account to impersonate
        owner_reference: Controller owner reference (see make_owner_reference)

    Returns:
        The created or updated ServiceAccount
    """
    try:
        existing = api.read_namespaced_service_account(name=name, namespace=namespace)
    except client.exceptions.ApiException as e:
        if e.status != 404:
            raise
        existing = None

    if existing is None:
        body = client.V1ServiceAccount(
            metadata=client.V1ObjectMeta(
                name=name,
                namespace=namespace,
                annotations={ANNOTATION_GCP_SERVICE_ACCOUNT: gcp_service_account_email},
                labels={LABEL_MANAGED_BY: FIELD_MANAGER},
                owner_references=[owner_reference],
            ),
        )
        try:
            created = api.create_namespaced_service_account(
                namespace=namespace,
                body=body,
                field_manager=FIELD_MANAGER,
            )
            logger.info(f"Created service account {namespace}/{name}")
            return created
        except client.exceptions.ApiException as e:
            if e.status != 409:
                raise
            logger.info(f"Service account {namespace}/{name} was created concurrently, updating it")
            existing = api.read_namespaced_service_account(name=name, namespace=namespace)

    owner_references = _merge_owner_reference(existing, owner_reference)
    annotations = existing.metadata.annotations or {}
    if (
        annotations.get(ANNOTATION_GCP_SERVICE_ACCOUNT) == gcp_service_account_email
        and owner_references is None
    ):
        return existing

    patch: dict[str, Any] = {
        "metadata": {"annotations": {ANNOTATION_GCP_SERVICE_ACCOUNT: gcp_service_account_email}},
    }
    if owner_references is not None:
        patch["metadata"]["ownerReferences"] = owner_references

    updated = api.patch_namespaced_service_account(
        name=name,
        namespace=namespace,
        body=patch,
        field_manager=FIELD_MANAGER,
    )
    logger.info(f"Updated service account {namespace}/{name}")
    return updated


def _merge_owner_reference(
    service_account: client.V1ServiceAccount,
    owner_reference: dict[str, Any],
) -> list[dict[str, Any]] | None:
    """Return the owner references with ours added, or None if already present."""
    current = service_account.metadata.owner_references or []
    if any(ref.uid == owner_reference["uid"] for ref in current):
        return None

    merged = [
        {
            "apiVersion": ref.api_version,
            "kind": ref.kind,
            "name": ref.name,
            "uid": ref.uid,
            "controller": ref.controller,
            "blockOwnerDeletion": ref.block_owner_deletion,
        }
        for ref in current
    ]
    merged.append(owner_reference)
    return merged
