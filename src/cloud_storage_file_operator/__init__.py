"""Kubernetes operator for Google Cloud Storage file transfers and managed folders."""

__version__ = "0.1.0"
