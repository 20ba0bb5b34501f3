"""Cache layer for cluster-reflector.

Holds the latest merged snapshot produced by the refresh loop and serves it
to concurrent readers.

Submodules:
    snapshot_cache -- Single-entry snapshot cache with TTL and atomic swap.
"""

from cluster_reflector.cache.snapshot_cache import CacheEntry, SnapshotCache

__all__ = ["CacheEntry", "SnapshotCache"]
