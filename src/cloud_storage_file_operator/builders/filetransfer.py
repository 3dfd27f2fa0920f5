"""Builder for FileTransfer desired state."""

from __future__ import annotations

from typing import Any

from ..services.gcp.models import CredentialRef, DesiredFileTransfer


def create_file_transfer_from_spec(spec: dict[str, Any], meta: dict[str, Any]) -> DesiredFileTransfer:
    """Create the desired state of a FileTransfer from its CRD spec.

    Args:
        spec: FileTransfer CRD spec
        meta: Resource metadata

    Returns:
        Desired state for one reconcile pass

    Raises:
        ValueError: If the spec is invalid
    """
    bucket = spec.get("bucketName")
    if not bucket:
        raise ValueError("bucketName is required")

    # An empty prefix lists the whole bucket
    source_prefix = (spec.get("query") or {}).get("prefix") or ""

    # Destination is optional; without it the transfer only counts objects.
    # A destination without a prefix copies to the bucket root.
    destination = spec.get("copyDestination")
    destination_prefix = None if destination is None else (destination.get("prefix") or "")

    credential_ref = None
    secret = spec.get("bucketSecret") or {}
    if secret:
        secret_name = secret.get("name")
        if not secret_name:
            raise ValueError("bucketSecret.name is required when bucketSecret is set")
        credential_ref = CredentialRef(
            name=secret_name,
            namespace=secret.get("namespace") or meta.get("namespace", "default"),
        )

    return DesiredFileTransfer(
        bucket=bucket,
        source_prefix=source_prefix,
        destination_prefix=destination_prefix,
        credential_ref=credential_ref,
    )
