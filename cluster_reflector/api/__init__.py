"""REST API layer for cluster-reflector.

Exposes:
    create_app -- FastAPI application factory.
    build_app  -- Alias for create_app (used by cluster_reflector.app bootstrap).
"""

from cluster_reflector.api.app import create_app

# The bootstrap in cluster_reflector.app imports `build_app` from this package.
build_app = create_app

__all__ = ["build_app", "create_app"]
