"""Utility functions for the Cloud Storage File Operator."""

from .conditions import (
    get_condition,
    set_copy_failed_condition,
    set_ready_condition,
    update_condition,
)
from .events import emit_event
from .secrets import get_secret_value, resolve_credentials
from .service_accounts import ensure_workload_service_account, make_owner_reference

__all__ = [
    "update_condition",
    "get_condition",
    "set_ready_condition",
    "set_copy_failed_condition",
    "emit_event",
    "get_secret_value",
    "resolve_credentials",
    "ensure_workload_service_account",
    "make_owner_reference",
]
