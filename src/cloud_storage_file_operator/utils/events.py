"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_COPY_FAILED,
    EVENT_REASON_FOLDER_PROVISIONED,
    EVENT_REASON_OBJECTS_COPIED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_VALIDATE_FAILED,
    EVENT_REASON_VALIDATE_SUCCEEDED,
)


def emit_event(
    body: Any,
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: Resource body (or metadata carrying name, namespace and uid)
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(body: Any) -> None:
    """Emit reconcile started event."""
    emit_event(body, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(body: Any, message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_validate_succeeded(body: Any) -> None:
    """Emit validation succeeded event."""
    emit_event(body, EVENT_REASON_VALIDATE_SUCCEEDED, "Validation succeeded")


def emit_validate_failed(body: Any, message: str) -> None:
    """Emit validation failed event."""
    emit_event(body, EVENT_REASON_VALIDATE_FAILED, message, type_="Warning")


def emit_objects_copied(body: Any, count: int, source_prefix: str, destination_prefix: str) -> None:
    """Emit objects copied event."""
    emit_event(
        body,
        EVENT_REASON_OBJECTS_COPIED,
        f"Copied {count} object(s) from {source_prefix!r} to {destination_prefix!r}",
    )


def emit_copy_failed(body: Any, message: str) -> None:
    """Emit copy failed event."""
    emit_event(body, EVENT_REASON_COPY_FAILED, message, type_="Warning")


def emit_folder_provisioned(body: Any, folder: str, email: str) -> None:
    """Emit folder provisioned event."""
    emit_event(body, EVENT_REASON_FOLDER_PROVISIONED, f"Managed folder {folder} bound to {email}")
