"""Node discovery and role classification.

Role detection is a best-effort heuristic over well-known labels and taints.
Clusters that mark control-plane nodes some other way (or not at all) will
report them as workers; that is accepted imprecision, not a bug.
"""

from __future__ import annotations

from typing import Any

from cluster_reflector.cluster import ClusterLister
from cluster_reflector.models.cluster import Node, NodeRole

CONTROL_PLANE_LABELS = (
    "node-role.kubernetes.io/control-plane",
    "node-role.kubernetes.io/master",
)
_CONTROL_PLANE_TAINT_MARKERS = ("control-plane", "master")


def classify_role(node: dict[str, Any]) -> NodeRole:
    """Return the role of a raw node object."""
    labels = (node.get("metadata") or {}).get("labels") or {}
    if any(label in labels for label in CONTROL_PLANE_LABELS):
        return NodeRole.CONTROL_PLANE

    for taint in (node.get("spec") or {}).get("taints") or []:
        key = str(taint.get("key", ""))
        if taint.get("effect") == "NoSchedule" and any(marker in key for marker in _CONTROL_PLANE_TAINT_MARKERS):
            return NodeRole.CONTROL_PLANE

    return NodeRole.WORKER


def internal_ip(node: dict[str, Any]) -> str:
    """First InternalIP address of the node, or "" if it has none."""
    for addr in (node.get("status") or {}).get("addresses") or []:
        if addr.get("type") == "InternalIP":
            return str(addr.get("address", ""))
    return ""


def parse_node(node: dict[str, Any]) -> Node:
    status = node.get("status") or {}
    return Node(
        name=str((node.get("metadata") or {}).get("name", "")),
        internal_ip=internal_ip(node),
        role=classify_role(node),
        kubelet_version=str((status.get("nodeInfo") or {}).get("kubeletVersion", "")),
    )


async def discover_nodes(cluster: ClusterLister) -> list[Node]:
    """List every node in the cluster.

    Raises:
        ClusterAPIError: the node list call failed. Node discovery has no
            partial result, so the refresh cycle fails with it.
    """
    return [parse_node(raw) for raw in await cluster.list_nodes()]
