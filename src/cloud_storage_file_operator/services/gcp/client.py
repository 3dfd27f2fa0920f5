"""GCP storage and IAM client implementation."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Iterator

import google.auth
import google_auth_httplib2
import httplib2
from google.auth.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ... import metrics
from ...exceptions import CloudAPIError, ConflictError, NotFoundError, TransientError
from .models import AccessPolicy, ManagedFolder, ServiceIdentity

logger = logging.getLogger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
DEFAULT_HTTP_TIMEOUT_SECONDS = 60.0


def translate_http_error(error: HttpError, operation: str) -> CloudAPIError:
    """Map an HTTP error response onto the domain error kinds."""
    status = int(error.resp.status)
    message = f"{operation}: {status} {error.reason or error}"
    if status == 404:
        return NotFoundError(message, status=status, operation=operation)
    if status in (409, 412):
        return ConflictError(message, status=status, operation=operation)
    if status == 429 or status >= 500:
        return TransientError(message, status=status, operation=operation)
    return CloudAPIError(message, status=status, operation=operation)


class GCPProvider:
    """GCP provider implementation backed by the storage v1 and iam v1 APIs.

    Discovery service objects are shared, but each thread executes requests
    over its own connection since httplib2 is not thread-safe.
    """

    def __init__(
        self,
        credentials: Credentials | None = None,
        project_id: str | None = None,
        http_timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize GCP provider.

        Args:
            credentials: Credentials to use; application default credentials when None
            project_id: Project owning service accounts; defaults to the credentials' project
            http_timeout: Socket timeout for each request in seconds
        """
        if credentials is None:
            credentials, default_project = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
            project_id = project_id or default_project

        self.credentials = credentials
        self.project_id = project_id or getattr(credentials, "project_id", None)
        self.http_timeout = http_timeout
        self._local = threading.local()

        self.storage = build("storage", "v1", credentials=credentials, cache_discovery=False)
        self.iam = build("iam", "v1", credentials=credentials, cache_discovery=False)

    def _http(self) -> google_auth_httplib2.AuthorizedHttp:
        http = getattr(self._local, "http", None)
        if http is None:
            http = google_auth_httplib2.AuthorizedHttp(
                self.credentials, http=httplib2.Http(timeout=self.http_timeout)
            )
            self._local.http = http
        return http

    def _execute(self, operation: str, request: Any) -> dict[str, Any]:
        """Execute a request, recording metrics and translating errors."""
        start_time = time.time()
        try:
            response = request.execute(http=self._http())
            metrics.api_call_total.labels(api_type="gcp", operation=operation, result="success").inc()
            return response or {}
        except HttpError as e:
            error = translate_http_error(e, operation)
            result = "not_found" if isinstance(error, NotFoundError) else "error"
            metrics.api_call_total.labels(api_type="gcp", operation=operation, result=result).inc()
            raise error from e
        except (httplib2.HttpLib2Error, OSError) as e:
            metrics.api_call_total.labels(api_type="gcp", operation=operation, result="error").inc()
            raise TransientError(f"{operation}: {e}", operation=operation) from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="gcp", operation=operation).observe(duration)

    # Objects

    def iter_object_names(self, bucket: str, prefix: str) -> Iterator[str]:
        """Yield object names under a prefix, one page at a time."""
        objects = self.storage.objects()
        request = objects.list(bucket=bucket, prefix=prefix or None, fields="items(name),nextPageToken")
        while request is not None:
            response = self._execute("list_objects", request)
            for item in response.get("items", []):
                yield item["name"]
            request = objects.list_next(request, response)

    def copy_object(self, bucket: str, source: str, destination: str) -> None:
        """Copy an object within a bucket, overwriting the destination.

        Uses objects.rewrite, which may need several calls for large objects.
        """
        rewrite_token = None
        while True:
            request = self.storage.objects().rewrite(
                sourceBucket=bucket,
                sourceObject=source,
                destinationBucket=bucket,
                destinationObject=destination,
                rewriteToken=rewrite_token,
                fields="done,rewriteToken",
                body={},
            )
            response = self._execute("rewrite_object", request)
            if response.get("done"):
                logger.debug(f"Copied gs://{bucket}/{source} to gs://{bucket}/{destination}")
                return
            rewrite_token = response["rewriteToken"]

    # Managed folders

    def get_managed_folder(self, bucket: str, path: str) -> ManagedFolder:
        request = self.storage.managedFolders().get(bucket=bucket, managedFolder=path)
        return ManagedFolder.from_api(self._execute("get_managed_folder", request))

    def create_managed_folder(self, bucket: str, path: str) -> ManagedFolder:
        request = self.storage.managedFolders().insert(bucket=bucket, body={"name": path})
        return ManagedFolder.from_api(self._execute("create_managed_folder", request))

    def get_folder_policy(self, bucket: str, folder: str) -> AccessPolicy:
        request = self.storage.managedFolders().getIamPolicy(
            bucket=bucket,
            managedFolder=folder,
            optionsRequestedPolicyVersion=3,
        )
        return AccessPolicy.from_api(self._execute("get_folder_policy", request))

    def set_folder_policy(self, bucket: str, folder: str, policy: AccessPolicy) -> AccessPolicy:
        request = self.storage.managedFolders().setIamPolicy(
            bucket=bucket,
            managedFolder=folder,
            body=policy.to_api(),
        )
        return AccessPolicy.from_api(self._execute("set_folder_policy", request))

    # Service accounts

    def require_project_id(self) -> str:
        if not self.project_id:
            raise ValueError("a GCP project id is required for service account operations (set GCP_PROJECT_ID)")
        return self.project_id

    def service_account_email(self, account_id: str) -> str:
        return f"{account_id}@{self.require_project_id()}.iam.gserviceaccount.com"

    def get_service_account(self, account_id: str) -> ServiceIdentity:
        project = self.require_project_id()
        name = f"projects/{project}/serviceAccounts/{self.service_account_email(account_id)}"
        request = self.iam.projects().serviceAccounts().get(name=name)
        return ServiceIdentity.from_api(self._execute("get_service_account", request))

    def create_service_account(self, account_id: str, display_name: str) -> ServiceIdentity:
        project = self.require_project_id()
        request = self.iam.projects().serviceAccounts().create(
            name=f"projects/{project}",
            body={"accountId": account_id, "serviceAccount": {"displayName": display_name}},
        )
        identity = ServiceIdentity.from_api(self._execute("create_service_account", request))
        logger.info(f"Created service account {identity.email}")
        return identity

    def get_service_account_policy(self, identity: ServiceIdentity) -> AccessPolicy:
        request = self.iam.projects().serviceAccounts().getIamPolicy(
            resource=identity.name,
            options_requestedPolicyVersion=3,
        )
        return AccessPolicy.from_api(self._execute("get_service_account_policy", request))

    def set_service_account_policy(self, identity: ServiceIdentity, policy: AccessPolicy) -> AccessPolicy:
        request = self.iam.projects().serviceAccounts().setIamPolicy(
            resource=identity.name,
            body={"policy": policy.to_api()},
        )
        return AccessPolicy.from_api(self._execute("set_service_account_policy", request))
