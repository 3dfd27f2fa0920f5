"""Handler for FileTransfer CRD."""

from __future__ import annotations

import time
from typing import Any

import kopf

from ..builders.filetransfer import create_file_transfer_from_spec
from ..builders.provider import create_provider_from_ref, get_core_api
from ..config import get_copy_max_workers, get_copy_timeout_seconds
from ..constants import API_GROUP_VERSION, COPY_STATUS_DONE, COPY_STATUS_PENDING, KIND_FILE_TRANSFER
from ..exceptions import DataIntegrityError, OperatorError
from ..services.gcp.models import DesiredFileTransfer
from ..services.replication import copy_objects, list_objects
from ..tracing import add_span_attribute, trace_span
from ..utils.conditions import set_copy_failed_condition
from ..utils.errors import sanitize_exception
from ..utils.events import emit_copy_failed, emit_objects_copied, emit_validate_succeeded
from .base import BaseHandler


class FileTransferHandler(BaseHandler):
    """Handler for FileTransfer resources."""

    def __init__(self):
        """Initialize file transfer handler."""
        super().__init__(KIND_FILE_TRANSFER)

    def reconcile(
        self,
        spec: dict[str, Any],
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
        body: Any,
    ) -> None:
        """Reconcile FileTransfer resource.

        Lists the objects under the source prefix and, while the copy is not
        done yet, copies them to the destination prefix. The object count is
        written whenever it changed, even when the copy failed.
        """
        try:
            desired = create_file_transfer_from_spec(spec, meta)
        except ValueError as e:
            self.handle_validation_error(body, meta, str(e))

        emit_validate_succeeded(body)

        attributes = {"bucket.name": desired.bucket, "source.prefix": desired.source_prefix}
        with trace_span("reconcile_file_transfer", kind=KIND_FILE_TRANSFER, attributes=attributes):
            api = get_core_api() if desired.credential_ref is not None else None
            provider = create_provider_from_ref(desired.credential_ref, api)

            with trace_span("list_objects", kind=KIND_FILE_TRANSFER):
                keys = list(list_objects(provider, desired.bucket, desired.source_prefix))
            add_span_attribute("objects.found", len(keys))

            status_update: dict[str, Any] = {}
            copy_error: OperatorError | None = None

            copy_status = status.get("copyStatus") or COPY_STATUS_PENDING
            if desired.destination_prefix is not None and copy_status != COPY_STATUS_DONE:
                try:
                    self._copy(provider, desired, keys, body, meta)
                    status_update["copyStatus"] = COPY_STATUS_DONE
                except OperatorError as e:
                    copy_error = e

                conditions = status.get("conditions") or []
                updated = set_copy_failed_condition(
                    conditions,
                    copy_error is not None,
                    sanitize_exception(copy_error) if copy_error else "All objects copied",
                    meta.get("generation"),
                )
                if updated != conditions:
                    status_update["conditions"] = updated

            found = len(keys)
            if status.get("foundObjects") != found:
                self.log_info(meta, f"Found {found} object(s)", reason="ObjectsFound", objects_found=found)
                status_update["foundObjects"] = found

            if status_update:
                self.update_resource_status(patch, meta, copy_error is None, status_update)

            # kopf applies the patch above even though the handler fails
            if isinstance(copy_error, DataIntegrityError):
                raise kopf.PermanentError(str(copy_error)) from copy_error
            if copy_error is not None:
                raise copy_error

    def _copy(
        self,
        provider: Any,
        desired: DesiredFileTransfer,
        keys: list[str],
        body: Any,
        meta: dict[str, Any],
    ) -> None:
        destination_prefix = desired.destination_prefix or ""
        deadline = time.monotonic() + get_copy_timeout_seconds()
        with trace_span("copy_objects", kind=KIND_FILE_TRANSFER, attributes={"destination.prefix": destination_prefix}):
            try:
                copied = copy_objects(
                    provider,
                    desired.bucket,
                    desired.source_prefix,
                    destination_prefix,
                    keys,
                    max_workers=get_copy_max_workers(),
                    deadline=deadline,
                )
            except OperatorError as e:
                message = f"Copy to {destination_prefix!r} failed: {sanitize_exception(e)}"
                self.log_error(meta, message, error=e, reason="CopyFailed")
                emit_copy_failed(body, message)
                raise

        self.log_info(
            meta,
            f"Copied {len(copied)} object(s) to {destination_prefix!r}",
            reason="ObjectsCopied",
            objects_copied=len(copied),
        )
        emit_objects_copied(body, len(copied), desired.source_prefix, destination_prefix)


# Global handler instance
_handler = FileTransferHandler()


@kopf.on.create(API_GROUP_VERSION, KIND_FILE_TRANSFER)
@kopf.on.update(API_GROUP_VERSION, KIND_FILE_TRANSFER)
@kopf.on.resume(API_GROUP_VERSION, KIND_FILE_TRANSFER)
def handle_file_transfer(
    spec: dict[str, Any],
    meta: dict[str, Any],
    status: dict[str, Any],
    patch: kopf.Patch,
    body: Any,
    retry: int,
    **kwargs: Any,
) -> None:
    """Handle FileTransfer resource reconciliation."""
    _handler.reconcile_with_metrics(
        body, meta, lambda: _handler.reconcile(spec, meta, status, patch, body), retry=retry
    )
