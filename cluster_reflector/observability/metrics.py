"""Prometheus metrics for cluster-reflector.

Snapshot gauges are recomputed from the served snapshot on each scrape;
refresh counters are updated by the refresh cycle itself.
"""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

from cluster_reflector.models.cluster import NodeRole, Snapshot

nodes_total = Gauge(
    "cluster_reflector_nodes_total",
    "Total number of nodes in the cluster",
)
apps_total = Gauge(
    "cluster_reflector_apps_total",
    "Total number of discovered applications",
)
control_plane_nodes = Gauge(
    "cluster_reflector_control_plane_nodes",
    "Total number of control plane nodes",
)
worker_nodes = Gauge(
    "cluster_reflector_worker_nodes",
    "Total number of worker nodes",
)
refresh_total = Counter(
    "cluster_reflector_refresh_total",
    "Refresh cycles by result",
    ["result"],
)
refresh_duration_seconds = Histogram(
    "cluster_reflector_refresh_duration_seconds",
    "Wall time of one discovery-and-install cycle",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)
discovery_errors_total = Counter(
    "cluster_reflector_discovery_errors_total",
    "Discovery units that failed and were skipped",
    ["source"],
)


def observe_snapshot(snapshot: Snapshot) -> None:
    """Point the snapshot gauges at *snapshot*."""
    control_plane = sum(1 for node in snapshot.nodes if node.role == NodeRole.CONTROL_PLANE)
    nodes_total.set(len(snapshot.nodes))
    apps_total.set(len(snapshot.apps))
    control_plane_nodes.set(control_plane)
    worker_nodes.set(len(snapshot.nodes) - control_plane)


def render_latest(snapshot: Snapshot) -> tuple[bytes, str]:
    """Refresh the gauges from *snapshot* and return (body, content type)."""
    observe_snapshot(snapshot)
    return generate_latest(), CONTENT_TYPE_LATEST
