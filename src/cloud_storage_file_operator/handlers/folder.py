"""Handler for Folder CRD."""

from __future__ import annotations

from typing import Any

import kopf

from ..builders.folder import create_folder_from_spec, service_account_principal, workload_principal
from ..builders.provider import create_provider_from_ref, get_core_api
from ..constants import (
    API_GROUP_VERSION,
    KIND_FOLDER,
    ROLE_FOLDER_ADMIN,
    ROLE_WORKLOAD_IDENTITY_USER,
)
from ..services.provisioner import CloudResourceProvisioner
from ..tracing import add_span_attribute, trace_span
from ..utils.conditions import set_ready_condition
from ..utils.events import emit_folder_provisioned, emit_validate_succeeded
from ..utils.service_accounts import ensure_workload_service_account, make_owner_reference
from .base import BaseHandler


class FolderHandler(BaseHandler):
    """Handler for Folder resources."""

    def __init__(self):
        """Initialize folder handler."""
        super().__init__(KIND_FOLDER)

    def reconcile(
        self,
        spec: dict[str, Any],
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
        body: Any,
    ) -> None:
        """Reconcile Folder resource.

        Every step runs on every pass and converges on its own. Status is
        written only once all of them succeeded, so a failing step leaves
        the previous status untouched.
        """
        try:
            desired = create_folder_from_spec(spec, meta)
        except ValueError as e:
            self.handle_validation_error(body, meta, str(e))

        emit_validate_succeeded(body)

        attributes = {"bucket.name": desired.bucket, "folder.path": desired.folder_path}
        with trace_span("reconcile_folder", kind=KIND_FOLDER, attributes=attributes):
            provider = create_provider_from_ref(None)
            provisioner = CloudResourceProvisioner(provider)

            with trace_span("ensure_managed_folder", kind=KIND_FOLDER):
                folder = provisioner.ensure_managed_folder(desired.bucket, desired.folder_path)

            with trace_span("ensure_service_identity", kind=KIND_FOLDER):
                identity = provisioner.ensure_service_identity(desired.service_account_id, desired.display_name)
            add_span_attribute("service_account.email", identity.email)

            with trace_span("bind_workload_principal", kind=KIND_FOLDER):
                principal = workload_principal(
                    provider.require_project_id(), desired.namespace, desired.kubernetes_service_account
                )
                provisioner.bind_workload_principal_to_identity(identity, principal, ROLE_WORKLOAD_IDENTITY_USER)

            with trace_span("grant_folder_role", kind=KIND_FOLDER):
                provisioner.grant_role_on_folder(
                    folder, desired.bucket, ROLE_FOLDER_ADMIN, service_account_principal(identity.email)
                )

            with trace_span("ensure_kubernetes_service_account", kind=KIND_FOLDER):
                ensure_workload_service_account(
                    get_core_api(),
                    desired.namespace,
                    desired.kubernetes_service_account,
                    identity.email,
                    make_owner_reference(API_GROUP_VERSION, KIND_FOLDER, meta),
                )

            conditions = set_ready_condition(
                status.get("conditions") or [],
                True,
                f"Managed folder {folder} is ready",
                meta.get("generation"),
            )
            self.update_resource_status(
                patch,
                meta,
                True,
                {
                    "serviceAccountName": desired.kubernetes_service_account,
                    "email": identity.email,
                    "folder": folder,
                    "conditions": conditions,
                },
            )

            self.log_info(
                meta,
                f"Provisioned managed folder {folder}",
                reason="FolderProvisioned",
                folder=folder,
                service_account=identity.email,
            )
            emit_folder_provisioned(body, folder, identity.email)


# Global handler instance
_handler = FolderHandler()


@kopf.on.create(API_GROUP_VERSION, KIND_FOLDER)
@kopf.on.update(API_GROUP_VERSION, KIND_FOLDER)
@kopf.on.resume(API_GROUP_VERSION, KIND_FOLDER)
def handle_folder(
    spec: dict[str, Any],
    meta: dict[str, Any],
    status: dict[str, Any],
    patch: kopf.Patch,
    body: Any,
    retry: int,
    **kwargs: Any,
) -> None:
    """Handle Folder resource reconciliation."""
    _handler.reconcile_with_metrics(
        body, meta, lambda: _handler.reconcile(spec, meta, status, patch, body), retry=retry
    )
