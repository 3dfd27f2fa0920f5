"""Idempotent provisioning of managed folders, service accounts and IAM bindings."""

from __future__ import annotations

import logging
import time
from typing import Callable

from .. import metrics
from ..exceptions import ConflictError, NotFoundError, OperationCancelledError
from .gcp.base import CloudResourceClient
from .gcp.models import AccessPolicy, ServiceIdentity
from .gcp.policy import add_binding

logger = logging.getLogger(__name__)


def check_deadline(deadline: float | None, operation: str) -> None:
    """Raise if a monotonic deadline has already passed."""
    if deadline is not None and time.monotonic() >= deadline:
        raise OperationCancelledError(f"{operation}: deadline exceeded")


class CloudResourceProvisioner:
    """Get-or-create and ensure operations over a CloudResourceClient.

    Holds no state besides the client: every call re-reads the source of truth.
    """

    def __init__(self, client: CloudResourceClient):
        self.client = client

    def ensure_managed_folder(self, bucket: str, path: str, deadline: float | None = None) -> str:
        """Get or create a managed folder.

        Args:
            bucket: Bucket holding the folder
            path: Folder path, ending with "/"
            deadline: Optional monotonic deadline

        Returns:
            Canonical name of the managed folder
        """
        check_deadline(deadline, "ensure_managed_folder")
        try:
            folder = self.client.get_managed_folder(bucket, path)
            metrics.provisioning_steps_total.labels(step="managed_folder", result="exists").inc()
            return folder.name
        except NotFoundError:
            logger.info(f"Managed folder {path} not found in bucket {bucket}, creating it")

        check_deadline(deadline, "ensure_managed_folder")
        try:
            folder = self.client.create_managed_folder(bucket, path)
            metrics.provisioning_steps_total.labels(step="managed_folder", result="created").inc()
            logger.info(f"Created managed folder {folder.name} in bucket {bucket}")
            return folder.name
        except ConflictError:
            # Created by someone else between our get and create
            logger.info(f"Managed folder {path} already exists in bucket {bucket}, re-reading it")
            folder = self.client.get_managed_folder(bucket, path)
            metrics.provisioning_steps_total.labels(step="managed_folder", result="exists").inc()
            return folder.name

    def ensure_service_identity(
        self,
        name: str,
        display_name: str,
        deadline: float | None = None,
    ) -> ServiceIdentity:
        """Get or create a service account by its deterministic account id.

        Args:
            name: Account id of the service account
            display_name: Display name used when creating it
            deadline: Optional monotonic deadline

        Returns:
            The existing or created service account
        """
        check_deadline(deadline, "ensure_service_identity")
        try:
            identity = self.client.get_service_account(name)
            metrics.provisioning_steps_total.labels(step="service_account", result="exists").inc()
            return identity
        except NotFoundError:
            logger.info(f"Service account {name} not found, creating it")

        check_deadline(deadline, "ensure_service_identity")
        try:
            identity = self.client.create_service_account(name, display_name)
            metrics.provisioning_steps_total.labels(step="service_account", result="created").inc()
            return identity
        except ConflictError:
            logger.info(f"Service account {name} already exists, re-reading it")
            identity = self.client.get_service_account(name)
            metrics.provisioning_steps_total.labels(step="service_account", result="exists").inc()
            return identity

    def bind_workload_principal_to_identity(
        self,
        identity: ServiceIdentity,
        principal: str,
        role: str,
        deadline: float | None = None,
    ) -> AccessPolicy:
        """Grant a principal a role on a service account.

        Returns:
            The policy in effect after the call
        """
        return self._add_policy_binding(
            step="identity_binding",
            target=identity.email,
            read=lambda: self.client.get_service_account_policy(identity),
            write=lambda policy: self.client.set_service_account_policy(identity, policy),
            principal=principal,
            role=role,
            deadline=deadline,
        )

    def grant_role_on_folder(
        self,
        folder: str,
        bucket: str,
        role: str,
        principal: str,
        deadline: float | None = None,
    ) -> AccessPolicy:
        """Grant a principal a role on a managed folder.

        Returns:
            The policy in effect after the call
        """
        return self._add_policy_binding(
            step="folder_binding",
            target=f"gs://{bucket}/{folder}",
            read=lambda: self.client.get_folder_policy(bucket, folder),
            write=lambda policy: self.client.set_folder_policy(bucket, folder, policy),
            principal=principal,
            role=role,
            deadline=deadline,
        )

    def _add_policy_binding(
        self,
        step: str,
        target: str,
        read: Callable[[], AccessPolicy],
        write: Callable[[AccessPolicy], AccessPolicy],
        principal: str,
        role: str,
        deadline: float | None,
    ) -> AccessPolicy:
        """Read-modify-write a policy.

        The write carries the etag of the read, so a concurrent modification
        fails with ConflictError instead of being overwritten.
        """
        check_deadline(deadline, step)
        current = read()
        updated = add_binding(current, role, principal)
        if updated == current:
            metrics.provisioning_steps_total.labels(step=step, result="unchanged").inc()
            logger.debug(f"{principal} already has {role} on {target}")
            return current

        check_deadline(deadline, step)
        try:
            result = write(updated)
        except ConflictError:
            metrics.provisioning_steps_total.labels(step=step, result="conflict").inc()
            logger.warning(f"Policy of {target} changed while granting {role} to {principal}")
            raise
        metrics.provisioning_steps_total.labels(step=step, result="updated").inc()
        logger.info(f"Granted {role} to {principal} on {target}")
        return result
