"""Interfaces the provisioner and the replication engine depend on."""

from __future__ import annotations

from typing import Iterator, Protocol

from .models import AccessPolicy, ManagedFolder, ServiceIdentity


class ObjectStore(Protocol):
    """Protocol defining object listing and server-side copy."""

    def iter_object_names(self, bucket: str, prefix: str) -> Iterator[str]:
        """Yield object names under a prefix, fetching pages lazily."""
        ...

    def copy_object(self, bucket: str, source: str, destination: str) -> None:
        """Copy an object within a bucket, overwriting the destination."""
        ...


class CloudResourceClient(Protocol):
    """Protocol defining the managed folder and IAM operations.

    Implementations raise NotFoundError for missing resources and
    ConflictError when a create hits an existing resource or a policy
    write carries a stale etag.
    """

    def get_managed_folder(self, bucket: str, path: str) -> ManagedFolder:
        """Get a managed folder."""
        ...

    def create_managed_folder(self, bucket: str, path: str) -> ManagedFolder:
        """Create a managed folder."""
        ...

    def get_folder_policy(self, bucket: str, folder: str) -> AccessPolicy:
        """Get the IAM policy of a managed folder."""
        ...

    def set_folder_policy(self, bucket: str, folder: str, policy: AccessPolicy) -> AccessPolicy:
        """Replace the IAM policy of a managed folder."""
        ...

    def get_service_account(self, account_id: str) -> ServiceIdentity:
        """Get a service account by its account id."""
        ...

    def create_service_account(self, account_id: str, display_name: str) -> ServiceIdentity:
        """Create a service account."""
        ...

    def get_service_account_policy(self, identity: ServiceIdentity) -> AccessPolicy:
        """Get the IAM policy of a service account."""
        ...

    def set_service_account_policy(self, identity: ServiceIdentity, policy: AccessPolicy) -> AccessPolicy:
        """Replace the IAM policy of a service account."""
        ...
