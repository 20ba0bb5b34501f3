"""Core data structures for cluster-reflector."""

from cluster_reflector.models.cluster import (
    SNAPSHOT_API_VERSION,
    App,
    Node,
    NodeRole,
    Snapshot,
    WorkloadKind,
)
from cluster_reflector.models.config import ReflectorConfig

__all__ = [
    "SNAPSHOT_API_VERSION",
    "App",
    "Node",
    "NodeRole",
    "ReflectorConfig",
    "Snapshot",
    "WorkloadKind",
]
