"""Operator entry point: kopf startup configuration and handler registration.

Run with ``kopf run -m cloud_storage_file_operator.main``.
"""

from __future__ import annotations

import logging
from typing import Any

import kopf

from . import handlers  # noqa: F401
from . import health
from . import logging as structured_logging
from .config import get_kopf_max_workers, get_metrics_port
from .tracing import initialize_tracing

logger = logging.getLogger(__name__)


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    # Set up structured JSON logging
    structured_logging.setup_structured_logging()
    initialize_tracing()

    # Use AnnotationsProgressStorage to avoid conflicts with status updates
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = logging.INFO
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = get_kopf_max_workers()

    # Handler retries back off exponentially through kopf.TemporaryError delays,
    # see BaseHandler.reconcile_with_metrics

    # Metrics HTTP server with health check endpoints
    metrics_port = get_metrics_port()
    health.start_metrics_server(metrics_port)
    logger.info(f"Serving metrics and health checks on port {metrics_port}")
