"""Runtime configuration read from environment variables."""

from __future__ import annotations

import os

DEFAULT_COPY_MAX_WORKERS = 32
DEFAULT_COPY_TIMEOUT_SECONDS = 600.0
DEFAULT_METRICS_PORT = 8080
DEFAULT_KOPF_MAX_WORKERS = 4

# Handler retry backoff: 1s, 2s, 4s, 8s, 16s, 32s, 60s (max)
RETRY_MIN_DELAY_SECONDS = 1.0
RETRY_MAX_DELAY_SECONDS = 60.0
RETRY_BACKOFF_FACTOR = 2.0


def get_project_id() -> str | None:
    """Get the GCP project that owns the service accounts created for Folders.

    Returns None when unset; callers then fall back to the project of the
    application default credentials.
    """
    return os.getenv("GCP_PROJECT_ID") or None


def get_copy_max_workers() -> int:
    """Get the size of the worker pool used for object copies."""
    workers = int(os.getenv("COPY_MAX_WORKERS", str(DEFAULT_COPY_MAX_WORKERS)))
    if workers < 1:
        raise ValueError(f"COPY_MAX_WORKERS must be at least 1, got {workers}")
    return workers


def get_copy_timeout_seconds() -> float:
    """Get the deadline in seconds for a single copy run."""
    return float(os.getenv("COPY_TIMEOUT_SECONDS", str(DEFAULT_COPY_TIMEOUT_SECONDS)))


def get_metrics_port() -> int:
    return int(os.getenv("METRICS_PORT", str(DEFAULT_METRICS_PORT)))


def get_kopf_max_workers() -> int:
    return int(os.getenv("KOPF_MAX_WORKERS", str(DEFAULT_KOPF_MAX_WORKERS)))


def get_retry_delay(retry: int) -> float:
    """Get the delay before the next attempt of a handler that failed retry times."""
    return min(RETRY_MAX_DELAY_SECONDS, RETRY_MIN_DELAY_SECONDS * RETRY_BACKOFF_FACTOR ** min(retry, 32))
