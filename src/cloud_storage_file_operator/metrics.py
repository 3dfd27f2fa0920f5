"""Prometheus metrics for the Cloud Storage File Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "csfo_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "csfo_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 300.0],
)

error_total = Counter(
    "csfo_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

resource_status_total = Counter(
    "csfo_operator_resource_status_total",
    "Resource status transitions reported by reconciliations",
    ["kind", "status"],
)

# Cloud API call metrics
api_call_total = Counter(
    "csfo_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "csfo_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

# Object replication metrics
objects_copied_total = Counter(
    "csfo_operator_objects_copied_total",
    "Total number of object copy attempts",
    ["result"],
)

copy_duration_seconds = Histogram(
    "csfo_operator_copy_duration_seconds",
    "Duration of a full prefix copy in seconds",
    buckets=[0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 900.0],
)

# Provisioning metrics
provisioning_steps_total = Counter(
    "csfo_operator_provisioning_steps_total",
    "Total number of provisioning steps by outcome",
    ["step", "result"],
)
