"""Discovery-and-cache engine.

Submodules
----------
nodes    -- Node listing and control-plane/worker classification.
apps     -- AppVersion and workload app sources, and the shared fold.
policy   -- MergePolicy: which sources run, in which order.
refresh  -- RefreshLoop: initial cycle plus a periodic timer.
service  -- ClusterReflector: the query facade (fetch_snapshot, health_check).
"""

from cluster_reflector.discovery.service import ClusterReflector

__all__ = ["ClusterReflector"]
