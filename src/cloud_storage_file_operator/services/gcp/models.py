"""Models for GCP storage and IAM operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Binding:
    """A role binding within an access policy."""

    role: str
    members: tuple[str, ...] = ()
    condition: dict[str, Any] | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Binding:
        return cls(
            role=data["role"],
            members=tuple(data.get("members", [])),
            condition=data.get("condition"),
        )

    def to_api(self) -> dict[str, Any]:
        result: dict[str, Any] = {"role": self.role, "members": list(self.members)}
        if self.condition is not None:
            result["condition"] = self.condition
        return result


@dataclass(frozen=True)
class AccessPolicy:
    """An IAM policy together with the etag it was read at."""

    bindings: tuple[Binding, ...] = ()
    etag: str | None = None
    version: int | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> AccessPolicy:
        return cls(
            bindings=tuple(Binding.from_api(b) for b in data.get("bindings", [])),
            etag=data.get("etag"),
            version=data.get("version"),
        )

    def to_api(self) -> dict[str, Any]:
        result: dict[str, Any] = {"bindings": [b.to_api() for b in self.bindings]}
        if self.etag is not None:
            result["etag"] = self.etag
        if self.version is not None:
            result["version"] = self.version
        return result

    def members_for(self, role: str) -> tuple[str, ...]:
        """Members of the unconditional binding for a role."""
        for binding in self.bindings:
            if binding.role == role and binding.condition is None:
                return binding.members
        return ()


@dataclass(frozen=True)
class ServiceIdentity:
    """A GCP service account."""

    name: str
    email: str
    project_id: str
    unique_id: str | None = None
    display_name: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> ServiceIdentity:
        return cls(
            name=data["name"],
            email=data["email"],
            project_id=data["projectId"],
            unique_id=data.get("uniqueId"),
            display_name=data.get("displayName"),
        )


@dataclass(frozen=True)
class ManagedFolder:
    """A managed folder within a bucket."""

    bucket: str
    name: str
    metageneration: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> ManagedFolder:
        return cls(
            bucket=data["bucket"],
            name=data["name"],
            metageneration=data.get("metageneration"),
        )


@dataclass(frozen=True)
class CredentialRef:
    """Reference to the secret holding a service account key."""

    name: str
    namespace: str


@dataclass(frozen=True)
class DesiredFileTransfer:
    """Desired state of a FileTransfer for one reconcile pass."""

    bucket: str
    source_prefix: str
    destination_prefix: str | None = None
    credential_ref: CredentialRef | None = None


@dataclass(frozen=True)
class DesiredFolder:
    """Desired state of a Folder for one reconcile pass."""

    bucket: str
    folder_path: str
    service_account_id: str
    display_name: str
    kubernetes_service_account: str
    namespace: str
