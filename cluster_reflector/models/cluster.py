"""Cluster snapshot data structures."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum

SNAPSHOT_API_VERSION = "reflector.grid.sce.com/v1"


class NodeRole(StrEnum):
    """Role a node plays in the cluster."""

    CONTROL_PLANE = "control-plane"
    WORKER = "worker"


class WorkloadKind(StrEnum):
    """Workload kinds the workload source knows how to list."""

    DEPLOYMENT = "Deployment"
    STATEFUL_SET = "StatefulSet"
    DAEMON_SET = "DaemonSet"


@dataclass(frozen=True)
class Node:
    """A cluster node as reported in a snapshot."""

    name: str
    internal_ip: str
    role: NodeRole
    kubelet_version: str

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "ip": self.internal_ip,
            "role": self.role.value,
            "version": self.kubelet_version,
        }


@dataclass(frozen=True)
class App:
    """An application and every version observed for it in one refresh.

    ``variants`` is duplicate free and keeps first-seen order.
    """

    name: str
    version: str
    variants: tuple[str, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "version": self.version,
            "variants": list(self.variants),
        }


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


def format_rfc3339(ts: datetime) -> str:
    """Render *ts* as RFC 3339 in UTC with a ``Z`` suffix."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Snapshot:
    """One immutable, fully-formed cluster-info payload.

    Never patched in place: refreshes build a new Snapshot and the cache swaps
    it in wholesale.
    """

    generated_at: datetime
    nodes: tuple[Node, ...] = ()
    apps: tuple[App, ...] = ()
    api_version: str = field(default=SNAPSHOT_API_VERSION)

    @classmethod
    def empty(cls, now: datetime | None = None) -> Snapshot:
        """Placeholder served while the cache is empty or expired."""
        return cls(generated_at=now or utcnow())

    def with_timestamp(self, now: datetime) -> Snapshot:
        return replace(self, generated_at=now)

    def to_dict(self) -> dict[str, object]:
        """Serialise to the wire shape served on ``/cluster-info``."""
        return {
            "apiVersion": self.api_version,
            "timestamp": format_rfc3339(self.generated_at),
            "nodes": [node.to_dict() for node in self.nodes],
            "apps": [app.to_dict() for app in self.apps],
        }
