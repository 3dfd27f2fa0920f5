"""Tests for the cloud resource provisioner."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from cloud_storage_file_operator.exceptions import (
    CloudAPIError,
    ConflictError,
    NotFoundError,
    OperationCancelledError,
    TransientError,
)
from cloud_storage_file_operator.services.gcp.models import AccessPolicy, Binding, ManagedFolder
from cloud_storage_file_operator.services.provisioner import CloudResourceProvisioner, check_deadline

BUCKET = "test-bucket"
FOLDER = "team-a/default/"
ROLE_ADMIN = "roles/storage.folderAdmin"
ROLE_WI = "roles/iam.workloadIdentityUser"
WORKLOAD = "serviceAccount:test-project.svc.id.goog[default/team-a-owner]"


def run_racing_callers(cloud_client, get_name, create_name, call):
    """Run call in two threads that both miss on get before either creates."""
    barrier = threading.Barrier(2, timeout=5)
    create_lock = threading.Lock()
    original_get = getattr(cloud_client, get_name)
    original_create = getattr(cloud_client, create_name)

    def get(*args):
        try:
            return original_get(*args)
        except NotFoundError:
            barrier.wait()
            raise

    def create(*args):
        with create_lock:
            return original_create(*args)

    setattr(cloud_client, get_name, get)
    setattr(cloud_client, create_name, create)

    with ThreadPoolExecutor(max_workers=2) as executor:
        futures = [executor.submit(call) for _ in range(2)]
        return [future.result(timeout=10) for future in futures]


class TestCheckDeadline:
    """Test cases for check_deadline function."""

    def test_no_deadline(self):
        """Test that a missing deadline never expires."""
        check_deadline(None, "op")

    def test_future_deadline(self):
        """Test that a future deadline passes."""
        check_deadline(time.monotonic() + 60, "op")

    def test_expired_deadline(self):
        """Test that an expired deadline raises."""
        with pytest.raises(OperationCancelledError, match="op: deadline exceeded"):
            check_deadline(time.monotonic() - 1, "op")


class TestEnsureManagedFolder:
    """Test cases for ensure_managed_folder."""

    def test_creates_missing_folder(self, cloud_client):
        """Test that a missing folder is created."""
        provisioner = CloudResourceProvisioner(cloud_client)

        name = provisioner.ensure_managed_folder(BUCKET, FOLDER)

        assert name == FOLDER
        assert cloud_client.calls == ["get_managed_folder", "create_managed_folder"]

    def test_existing_folder_not_recreated(self, cloud_client):
        """Test that an existing folder is returned without a create."""
        cloud_client.folders[(BUCKET, FOLDER)] = ManagedFolder(bucket=BUCKET, name=FOLDER)
        provisioner = CloudResourceProvisioner(cloud_client)

        assert provisioner.ensure_managed_folder(BUCKET, FOLDER) == FOLDER
        assert cloud_client.calls == ["get_managed_folder"]

    def test_create_race_refetches(self, cloud_client):
        """Test that a folder created concurrently counts as converged."""
        original_create = cloud_client.create_managed_folder

        def racing_create(bucket, path):
            # Someone else wins the race between our get and create
            original_create(bucket, path)
            raise ConflictError("already exists", status=409, operation="create_managed_folder")

        cloud_client.create_managed_folder = racing_create
        provisioner = CloudResourceProvisioner(cloud_client)

        assert provisioner.ensure_managed_folder(BUCKET, FOLDER) == FOLDER
        assert cloud_client.calls == ["get_managed_folder", "create_managed_folder", "get_managed_folder"]

    def test_concurrent_callers_get_same_folder(self, cloud_client):
        """Test that two callers racing between get and create both converge."""
        provisioner = CloudResourceProvisioner(cloud_client)

        results = run_racing_callers(
            cloud_client,
            "get_managed_folder",
            "create_managed_folder",
            lambda: provisioner.ensure_managed_folder(BUCKET, FOLDER),
        )

        assert results == [FOLDER, FOLDER]
        assert cloud_client.calls.count("create_managed_folder") == 2
        assert list(cloud_client.folders) == [(BUCKET, FOLDER)]

    def test_repeated_calls_converge(self, cloud_client):
        """Test that calling twice yields the same folder and a single create."""
        provisioner = CloudResourceProvisioner(cloud_client)

        first = provisioner.ensure_managed_folder(BUCKET, FOLDER)
        second = provisioner.ensure_managed_folder(BUCKET, FOLDER)

        assert first == second
        assert cloud_client.calls.count("create_managed_folder") == 1

    def test_fetch_error_aborts(self, cloud_client):
        """Test that errors other than not-found are raised without a create."""
        cloud_client.errors["get_managed_folder"] = TransientError("503", status=503)
        provisioner = CloudResourceProvisioner(cloud_client)

        with pytest.raises(TransientError):
            provisioner.ensure_managed_folder(BUCKET, FOLDER)
        assert "create_managed_folder" not in cloud_client.calls

    def test_expired_deadline_makes_no_calls(self, cloud_client):
        """Test that an expired deadline fails before any call."""
        provisioner = CloudResourceProvisioner(cloud_client)

        with pytest.raises(OperationCancelledError):
            provisioner.ensure_managed_folder(BUCKET, FOLDER, deadline=time.monotonic() - 1)
        assert cloud_client.calls == []


class TestEnsureServiceIdentity:
    """Test cases for ensure_service_identity."""

    def test_creates_missing_identity(self, cloud_client):
        """Test that a missing service account is created with the display name."""
        provisioner = CloudResourceProvisioner(cloud_client)

        identity = provisioner.ensure_service_identity("team-a-default", "storage-team-a-default-default")

        assert identity.email == "team-a-default@test-project.iam.gserviceaccount.com"
        assert identity.display_name == "storage-team-a-default-default"
        assert cloud_client.calls == ["get_service_account", "create_service_account"]

    def test_existing_identity_returned(self, cloud_client):
        """Test that an existing service account is reused."""
        provisioner = CloudResourceProvisioner(cloud_client)
        created = provisioner.ensure_service_identity("team-a-default", "display")
        cloud_client.calls.clear()

        assert provisioner.ensure_service_identity("team-a-default", "display") == created
        assert cloud_client.calls == ["get_service_account"]

    def test_create_conflict_refetches(self, cloud_client):
        """Test that a concurrent create is resolved by fetching again."""
        original_create = cloud_client.create_service_account

        def racing_create(account_id, display_name):
            original_create(account_id, display_name)
            raise ConflictError("exists", status=409, operation="create_service_account")

        cloud_client.create_service_account = racing_create
        provisioner = CloudResourceProvisioner(cloud_client)

        identity = provisioner.ensure_service_identity("team-a-default", "display")

        assert identity.email.startswith("team-a-default@")
        assert cloud_client.calls[-1] == "get_service_account"

    def test_concurrent_callers_get_same_identity(self, cloud_client):
        """Test that two callers racing between get and create share one account."""
        provisioner = CloudResourceProvisioner(cloud_client)

        first, second = run_racing_callers(
            cloud_client,
            "get_service_account",
            "create_service_account",
            lambda: provisioner.ensure_service_identity("team-a-default", "display"),
        )

        assert first == second
        assert first.email == "team-a-default@test-project.iam.gserviceaccount.com"
        assert list(cloud_client.identities) == ["team-a-default"]

    def test_fetch_error_is_fatal(self, cloud_client):
        """Test that a permission error on fetch is raised unchanged."""
        cloud_client.errors["get_service_account"] = CloudAPIError("403 forbidden", status=403)
        provisioner = CloudResourceProvisioner(cloud_client)

        with pytest.raises(CloudAPIError, match="403"):
            provisioner.ensure_service_identity("team-a-default", "display")
        assert "create_service_account" not in cloud_client.calls


class TestPolicyBindings:
    """Test cases for the policy binding operations."""

    def test_bind_workload_principal(self, cloud_client):
        """Test that the workload principal is bound on the service account."""
        provisioner = CloudResourceProvisioner(cloud_client)
        identity = provisioner.ensure_service_identity("team-a-default", "display")

        policy = provisioner.bind_workload_principal_to_identity(identity, WORKLOAD, ROLE_WI)

        assert policy.members_for(ROLE_WI) == (WORKLOAD,)
        assert cloud_client.identity_policies[identity.email].members_for(ROLE_WI) == (WORKLOAD,)

    def test_unchanged_policy_not_written(self, cloud_client):
        """Test that a second grant reads the policy but issues no write."""
        provisioner = CloudResourceProvisioner(cloud_client)
        provisioner.ensure_managed_folder(BUCKET, FOLDER)
        principal = "serviceAccount:team-a-default@test-project.iam.gserviceaccount.com"

        provisioner.grant_role_on_folder(FOLDER, BUCKET, ROLE_ADMIN, principal)
        provisioner.grant_role_on_folder(FOLDER, BUCKET, ROLE_ADMIN, principal)

        assert cloud_client.calls.count("get_folder_policy") == 2
        assert cloud_client.calls.count("set_folder_policy") == 1

    def test_existing_members_kept(self, cloud_client):
        """Test that a grant keeps members bound by others."""
        other = "user:someone@example.com"
        cloud_client.folder_policies[(BUCKET, FOLDER)] = AccessPolicy(
            bindings=(Binding(role=ROLE_ADMIN, members=(other,)),), etag="BwE1"
        )
        provisioner = CloudResourceProvisioner(cloud_client)

        policy = provisioner.grant_role_on_folder(FOLDER, BUCKET, ROLE_ADMIN, "serviceAccount:a@b")

        assert policy.members_for(ROLE_ADMIN) == (other, "serviceAccount:a@b")

    def test_write_carries_read_etag(self, cloud_client):
        """Test that the write is conditioned on the etag that was read."""
        cloud_client.folder_policies[(BUCKET, FOLDER)] = AccessPolicy(etag="BwE1")
        written = []
        original_set = cloud_client.set_folder_policy

        def recording_set(bucket, folder, policy):
            written.append(policy)
            return original_set(bucket, folder, policy)

        cloud_client.set_folder_policy = recording_set
        provisioner = CloudResourceProvisioner(cloud_client)

        provisioner.grant_role_on_folder(FOLDER, BUCKET, ROLE_ADMIN, "serviceAccount:a@b")

        assert written[0].etag == "BwE1"

    def test_etag_mismatch_raises_conflict(self, cloud_client):
        """Test that a concurrent policy change surfaces as ConflictError."""
        cloud_client.folder_policies[(BUCKET, FOLDER)] = AccessPolicy(etag="BwE1")
        original_get = cloud_client.get_folder_policy

        def stale_get(bucket, folder):
            policy = original_get(bucket, folder)
            # Another writer updates the policy right after our read
            cloud_client.folder_policies[(bucket, folder)] = AccessPolicy(etag="BwE2")
            return policy

        cloud_client.get_folder_policy = stale_get
        provisioner = CloudResourceProvisioner(cloud_client)

        with pytest.raises(ConflictError):
            provisioner.grant_role_on_folder(FOLDER, BUCKET, ROLE_ADMIN, "serviceAccount:a@b")

    def test_read_error_propagates(self, cloud_client):
        """Test that a failed policy read aborts without a write."""
        cloud_client.errors["get_folder_policy"] = NotFoundError("gone", status=404)
        provisioner = CloudResourceProvisioner(cloud_client)

        with pytest.raises(NotFoundError):
            provisioner.grant_role_on_folder(FOLDER, BUCKET, ROLE_ADMIN, "serviceAccount:a@b")
        assert "set_folder_policy" not in cloud_client.calls
