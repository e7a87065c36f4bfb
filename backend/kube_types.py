"""
Type definitions for Kubernetes objects.
"""
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional
from urllib.parse import quote


class WorkloadType(str, Enum):
    """Workload resource, valued by its API path segment."""
    DEPLOYMENT = "deployments"
    DAEMONSET = "daemonsets"
    STATEFULSET = "statefulsets"

    @property
    def kind(self) -> str:
        return _KINDS[self]

    @classmethod
    def accepted(cls) -> list:
        """Every literal accepted for the ``type`` input."""
        return [member.value for member in cls] + [member.kind for member in cls]

    @classmethod
    def parse(cls, value: str) -> "WorkloadType":
        for member in cls:
            if value == member.value or value == member.kind:
                return member
        raise ValueError(
            f"unsupported workload type: {value!r} (accepted: {', '.join(cls.accepted())})"
        )


_KINDS = {
    WorkloadType.DEPLOYMENT: "Deployment",
    WorkloadType.DAEMONSET: "DaemonSet",
    WorkloadType.STATEFULSET: "StatefulSet",
}


def encode_segment(value: str) -> str:
    """Percent-encode a single URL path segment."""
    return quote(value, safe="")


@dataclass(frozen=True)
class TargetReference:
    """Rancher-proxied API location of one workload."""
    backend: str
    cluster: str
    namespace: str
    workload_type: WorkloadType
    workload: str

    @property
    def url(self) -> str:
        return (
            f"{self.backend}/k8s/clusters/{encode_segment(self.cluster)}"
            f"/apis/apps/v1/namespaces/{encode_segment(self.namespace)}"
            f"/{self.workload_type.value}/{encode_segment(self.workload)}"
        )

    @classmethod
    def from_params(cls, params) -> "TargetReference":
        return cls(
            backend=params.backend,
            cluster=params.cluster,
            namespace=params.namespace,
            workload_type=params.workload_type,
            workload=params.workload,
        )


@dataclass(frozen=True)
class PatchPayload:
    """A patch document together with the content type it is sent as."""
    content_type: str
    body: Any

    def to_json(self) -> str:
        return json.dumps(self.body, sort_keys=True, separators=(",", ":"))


@dataclass
class WorkloadStatus:
    """Rollout-relevant fields of a workload, as reported by the API."""
    generation: int = 0
    observed_generation: int = -1
    replicas: int = 0
    updated_replicas: int = 0
    available_replicas: int = 0
    raw_status: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, document: Dict[str, Any]) -> "WorkloadStatus":
        """
        Build a status snapshot from a workload object.

        Args:
            document: Decoded JSON body of a GET on the workload

        Returns:
            WorkloadStatus with absent fields defaulted
        """
        metadata = document.get("metadata") or {}
        status = document.get("status") or {}
        return cls(
            generation=_as_int(metadata.get("generation"), 0),
            observed_generation=_as_int(status.get("observedGeneration"), -1),
            replicas=_as_int(status.get("replicas"), 0),
            updated_replicas=_as_int(status.get("updatedReplicas"), 0),
            available_replicas=_as_int(status.get("availableReplicas"), 0),
            raw_status=dict(status),
        )

    def describe(self) -> str:
        return (
            f"Gen: {self.observed_generation}/{self.generation} | "
            f"Replicas: {self.available_replicas}/{self.replicas} "
            f"(Updated: {self.updated_replicas})"
        )


def _as_int(value: Optional[Any], default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
