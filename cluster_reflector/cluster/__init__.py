"""Kubernetes API access for cluster-reflector.

Exposes:
    ClusterLister -- Protocol the discovery engine lists resources through.
    ClusterClient -- kubernetes-asyncio backed implementation.
"""

from cluster_reflector.cluster.client import (
    APP_VERSION_GROUP,
    APP_VERSION_PLURAL,
    APP_VERSION_VERSION,
    ClusterClient,
    ClusterLister,
)

__all__ = [
    "APP_VERSION_GROUP",
    "APP_VERSION_PLURAL",
    "APP_VERSION_VERSION",
    "ClusterClient",
    "ClusterLister",
]
