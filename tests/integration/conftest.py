"""Shared fixtures for cluster-reflector integration tests.

FakeCluster stands in for the Kubernetes API at the ClusterLister seam, so
the full refresh pipeline (nodes, merge policy, cache, HTTP layer) runs
without a real cluster.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from cluster_reflector.errors import ClusterAPIError
from cluster_reflector.models.cluster import WorkloadKind

# ---------------------------------------------------------------------------
# Object factory helpers
# ---------------------------------------------------------------------------


def make_node(
    name: str,
    ip: str,
    control_plane: bool = False,
    kubelet_version: str = "v1.28.4",
) -> dict[str, Any]:
    """Create a raw Node object with sensible defaults for testing."""
    labels = {"kubernetes.io/os": "linux"}
    if control_plane:
        labels["node-role.kubernetes.io/control-plane"] = ""
    return {
        "metadata": {"name": name, "labels": labels},
        "spec": {},
        "status": {
            "addresses": [
                {"type": "Hostname", "address": name},
                {"type": "InternalIP", "address": ip},
            ],
            "nodeInfo": {"kubeletVersion": kubelet_version},
        },
    }


def make_app_version(name: str, version: str, namespace: str = "default") -> dict[str, Any]:
    """Create a raw AppVersion custom object."""
    return {
        "apiVersion": "cluster.grid.sce.com/v1alpha1",
        "kind": "AppVersion",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"name": name, "version": version},
    }


def make_workload(
    name: str,
    namespace: str = "default",
    labels: dict[str, str] | None = None,
    image: str = "",
) -> dict[str, Any]:
    """Create a raw Deployment/StatefulSet/DaemonSet object."""
    containers = [{"name": name, "image": image}] if image else []
    return {
        "metadata": {"name": name, "namespace": namespace, "labels": labels or {}},
        "spec": {"template": {"spec": {"containers": containers}}},
    }


# ---------------------------------------------------------------------------
# Fake cluster
# ---------------------------------------------------------------------------


@dataclass
class FakeCluster:
    """In-memory ClusterLister.

    ``app_versions`` and ``workloads`` are keyed by namespace; a
    cluster-wide list returns every namespace's objects. Entries in
    ``fail_app_versions`` / ``fail_workloads`` make the matching call raise.
    """

    nodes: list[dict[str, Any]] = field(default_factory=list)
    app_versions: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    workloads: dict[tuple[WorkloadKind, str], list[dict[str, Any]]] = field(default_factory=dict)
    fail_nodes: bool = False
    fail_app_versions: set[str] = field(default_factory=set)
    fail_workloads: set[tuple[WorkloadKind, str]] = field(default_factory=set)
    calls: list[tuple[str, ...]] = field(default_factory=list)

    async def list_nodes(self, limit: int | None = None) -> list[dict[str, Any]]:
        self.calls.append(("nodes",))
        if self.fail_nodes:
            raise ClusterAPIError("list nodes", "connection refused")
        return list(self.nodes[:limit] if limit else self.nodes)

    async def list_app_versions(self, namespace: str = "") -> list[dict[str, Any]]:
        self.calls.append(("appversions", namespace))
        if namespace in self.fail_app_versions:
            raise ClusterAPIError("list AppVersions", "the server could not find the requested resource", 404)
        if namespace:
            return list(self.app_versions.get(namespace, []))
        return [obj for objs in self.app_versions.values() for obj in objs]

    async def list_workloads(self, kind: WorkloadKind, namespace: str = "") -> list[dict[str, Any]]:
        self.calls.append(("workloads", kind.value, namespace))
        if (kind, namespace) in self.fail_workloads:
            raise ClusterAPIError(f"list {kind}", "forbidden", 403)
        if namespace:
            return list(self.workloads.get((kind, namespace), []))
        return [obj for (k, _), objs in self.workloads.items() if k == kind for obj in objs]


@pytest.fixture
def fake_cluster() -> FakeCluster:
    """One control-plane node, one AppVersion and one overlapping Deployment."""
    return FakeCluster(
        nodes=[make_node("cp-1", "10.0.1.100", control_plane=True)],
        app_versions={"default": [make_app_version("my-app", "1.0.0")]},
        workloads={
            (WorkloadKind.DEPLOYMENT, "default"): [
                make_workload(
                    "my-app",
                    labels={"app.kubernetes.io/name": "my-app", "app.kubernetes.io/version": "0.9.0"},
                )
            ]
        },
    )


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cluster_factory() -> type[FakeCluster]:
    """Build a FakeCluster with custom contents: ``cluster_factory(nodes=[...])``."""
    return FakeCluster


@pytest.fixture
def node_factory() -> Callable[..., dict[str, Any]]:
    return make_node


@pytest.fixture
def app_version_factory() -> Callable[..., dict[str, Any]]:
    return make_app_version


@pytest.fixture
def workload_factory() -> Callable[..., dict[str, Any]]:
    return make_workload
