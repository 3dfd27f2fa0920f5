"""Domain errors raised by the provisioner, the replication engine and the GCP transport."""

from __future__ import annotations


class OperatorError(Exception):
    """Base class for all operator errors."""


class CloudAPIError(OperatorError):
    """A cloud API call returned an error response.

    Attributes:
        status: HTTP status code, or None for transport failures
        operation: Name of the failed operation (e.g. "get_managed_folder")
    """

    def __init__(self, message: str, status: int | None = None, operation: str | None = None):
        super().__init__(message)
        self.status = status
        self.operation = operation


class NotFoundError(CloudAPIError):
    """The requested cloud resource does not exist (HTTP 404)."""


class ConflictError(CloudAPIError):
    """The resource already exists or a policy etag did not match (HTTP 409/412)."""


class TransientError(CloudAPIError):
    """Network failure, throttling or server error (HTTP 429/5xx)."""


class DataIntegrityError(OperatorError):
    """An object key does not start with the prefix it was listed under."""

    def __init__(self, key: str, prefix: str):
        super().__init__(f"object {key!r} does not start with source prefix {prefix!r}")
        self.key = key
        self.prefix = prefix


class NoObjectsFoundError(OperatorError):
    """A copy was requested for an empty set of object keys."""


class OperationCancelledError(OperatorError):
    """A deadline expired before the operation completed."""

    def __init__(self, message: str, pending: list[str] | None = None):
        super().__init__(message)
        self.pending = pending or []


class CopyFailedError(OperatorError):
    """One or more object copies failed.

    Attributes:
        failures: Mapping of source key to the exception raised while copying it
        copied: Number of keys copied successfully
    """

    def __init__(self, failures: dict[str, Exception], copied: int):
        self.failures = failures
        self.copied = copied
        keys = sorted(failures)
        shown = ", ".join(keys[:5])
        if len(keys) > 5:
            shown += f" and {len(keys) - 5} more"
        first = failures[keys[0]]
        super().__init__(
            f"failed to copy {len(keys)} object(s) ({copied} copied): {shown}; first error: {first}"
        )

    @property
    def failed_keys(self) -> list[str]:
        return sorted(self.failures)
