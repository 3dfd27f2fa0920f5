"""Shared fixtures: in-memory fakes of the object store and the cloud resource client."""

from __future__ import annotations

import threading
from typing import Iterator

import pytest

from cloud_storage_file_operator.exceptions import ConflictError, NotFoundError
from cloud_storage_file_operator.services.gcp.models import AccessPolicy, ManagedFolder, ServiceIdentity


class FakeObjectStore:
    """Object store keeping object names per bucket in memory."""

    def __init__(self, objects: dict[str, list[str]] | None = None):
        self.objects = {bucket: list(names) for bucket, names in (objects or {}).items()}
        self.copies: list[tuple[str, str]] = []
        self.list_calls = 0
        self.fail_keys: dict[str, Exception] = {}
        self._lock = threading.Lock()

    def iter_object_names(self, bucket: str, prefix: str) -> Iterator[str]:
        self.list_calls += 1
        for name in sorted(self.objects.get(bucket, [])):
            if name.startswith(prefix):
                yield name

    def copy_object(self, bucket: str, source: str, destination: str) -> None:
        if source in self.fail_keys:
            raise self.fail_keys[source]
        with self._lock:
            self.copies.append((source, destination))
            if destination not in self.objects.setdefault(bucket, []):
                self.objects[bucket].append(destination)


class FakeCloudClient:
    """Cloud resource client keeping folders, identities and policies in memory.

    Policy writes check the etag like the real APIs do and bump it on success.
    """

    def __init__(self, project_id: str = "test-project"):
        self.project_id = project_id
        self.folders: dict[tuple[str, str], ManagedFolder] = {}
        self.identities: dict[str, ServiceIdentity] = {}
        self.folder_policies: dict[tuple[str, str], AccessPolicy] = {}
        self.identity_policies: dict[str, AccessPolicy] = {}
        self.calls: list[str] = []
        self.errors: dict[str, Exception] = {}

    def _call(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.errors:
            raise self.errors[operation]

    def require_project_id(self) -> str:
        return self.project_id

    def get_managed_folder(self, bucket: str, path: str) -> ManagedFolder:
        self._call("get_managed_folder")
        if (bucket, path) not in self.folders:
            raise NotFoundError(f"managed folder {path} not found", status=404, operation="get_managed_folder")
        return self.folders[(bucket, path)]

    def create_managed_folder(self, bucket: str, path: str) -> ManagedFolder:
        self._call("create_managed_folder")
        if (bucket, path) in self.folders:
            raise ConflictError(f"managed folder {path} exists", status=409, operation="create_managed_folder")
        folder = ManagedFolder(bucket=bucket, name=path, metageneration="1")
        self.folders[(bucket, path)] = folder
        self.folder_policies[(bucket, path)] = AccessPolicy(etag="BwE1", version=1)
        return folder

    def get_folder_policy(self, bucket: str, folder: str) -> AccessPolicy:
        self._call("get_folder_policy")
        return self.folder_policies.setdefault((bucket, folder), AccessPolicy(etag="BwE1", version=1))

    def set_folder_policy(self, bucket: str, folder: str, policy: AccessPolicy) -> AccessPolicy:
        self._call("set_folder_policy")
        stored = self._check_etag(self.folder_policies.get((bucket, folder)), policy, "set_folder_policy")
        self.folder_policies[(bucket, folder)] = stored
        return stored

    def get_service_account(self, account_id: str) -> ServiceIdentity:
        self._call("get_service_account")
        if account_id not in self.identities:
            raise NotFoundError(f"service account {account_id} not found", status=404, operation="get_service_account")
        return self.identities[account_id]

    def create_service_account(self, account_id: str, display_name: str) -> ServiceIdentity:
        self._call("create_service_account")
        if account_id in self.identities:
            raise ConflictError(f"service account {account_id} exists", status=409, operation="create_service_account")
        email = f"{account_id}@{self.project_id}.iam.gserviceaccount.com"
        identity = ServiceIdentity(
            name=f"projects/{self.project_id}/serviceAccounts/{email}",
            email=email,
            project_id=self.project_id,
            display_name=display_name,
        )
        self.identities[account_id] = identity
        return identity

    def get_service_account_policy(self, identity: ServiceIdentity) -> AccessPolicy:
        self._call("get_service_account_policy")
        return self.identity_policies.setdefault(identity.email, AccessPolicy(etag="ACAB", version=1))

    def set_service_account_policy(self, identity: ServiceIdentity, policy: AccessPolicy) -> AccessPolicy:
        self._call("set_service_account_policy")
        stored = self._check_etag(self.identity_policies.get(identity.email), policy, "set_service_account_policy")
        self.identity_policies[identity.email] = stored
        return stored

    def _check_etag(self, current: AccessPolicy | None, policy: AccessPolicy, operation: str) -> AccessPolicy:
        if current is not None and current.etag != policy.etag:
            raise ConflictError(f"{operation}: etag mismatch", status=412, operation=operation)
        return AccessPolicy(bindings=policy.bindings, etag=f"{policy.etag}+", version=policy.version)


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def cloud_client() -> FakeCloudClient:
    return FakeCloudClient()
