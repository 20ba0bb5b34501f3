"""Query facade over the discovery-and-cache engine.

ClusterReflector owns the snapshot cache and the refresh loop, and is the
only object the HTTP layer talks to.
"""

from __future__ import annotations

import asyncio
import time
from datetime import timedelta

from cluster_reflector.cache import SnapshotCache
from cluster_reflector.cluster import ClusterLister
from cluster_reflector.discovery.nodes import discover_nodes
from cluster_reflector.discovery.policy import MergePolicy
from cluster_reflector.discovery.refresh import LoopState, RefreshLoop
from cluster_reflector.errors import ClusterAPIError, HealthCheckError, HealthReason
from cluster_reflector.models.cluster import Snapshot
from cluster_reflector.models.config import ReflectorConfig
from cluster_reflector.observability.logging import get_logger
from cluster_reflector.observability.metrics import refresh_duration_seconds, refresh_total

_log = get_logger("discovery.service")

_STALE_FACTOR = 2.0


class ClusterReflector:
    """Discovers nodes and apps on a timer and serves the latest snapshot.

    Args:
        config:  Validated configuration.
        cluster: The list capability (ClusterClient in production).
        cache:   Optional pre-built cache; one is created from the TTL otherwise.
        policy:  Optional merge policy; built from ``config.discovery`` otherwise.
    """

    def __init__(
        self,
        config: ReflectorConfig,
        cluster: ClusterLister,
        cache: SnapshotCache | None = None,
        policy: MergePolicy | None = None,
    ) -> None:
        self._config = config
        self._cluster = cluster
        self._cache = cache or SnapshotCache(ttl=timedelta(seconds=config.cache.ttl_seconds))
        self._policy = policy or MergePolicy.from_config(config.discovery, cluster)
        self._loop = RefreshLoop(self.refresh, interval=config.cache.refresh_interval_seconds)

    @property
    def cache(self) -> SnapshotCache:
        return self._cache

    @property
    def state(self) -> LoopState:
        return self._loop.state

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self) -> Snapshot:
        """Run one discovery-and-install cycle.

        Discovery runs without holding the cache lock; only the final swap is
        serialised against readers.

        Raises:
            ClusterAPIError: node discovery failed. App source failures never
                propagate here.
        """
        started = time.monotonic()
        _log.debug("refreshing_cache")
        try:
            nodes = await discover_nodes(self._cluster)
            apps = await self._policy.discover_apps()
        except Exception:
            refresh_total.labels(result="failure").inc()
            raise

        snapshot = Snapshot(generated_at=self._cache.now(), nodes=tuple(nodes), apps=tuple(apps))
        self._cache.install(snapshot)

        refresh_total.labels(result="success").inc()
        refresh_duration_seconds.observe(time.monotonic() - started)
        _log.debug("cache_refreshed", nodes=len(nodes), apps=len(apps))
        return snapshot

    async def start(self) -> None:
        """Run the refresh loop until ``stop()`` or cancellation.

        Raises:
            ClusterAPIError: the initial refresh failed.
        """
        discovery = self._config.discovery
        _log.info(
            "starting_cluster_discovery",
            prefer_crd=discovery.prefer_crd,
            fallback_workloads=discovery.fallback_workloads,
            crd_only=discovery.crd_only,
            namespace_selector=discovery.namespace_selector,
            workload_kinds=[kind.value for kind in discovery.workload_kinds],
        )
        await self._loop.run()

    def stop(self) -> None:
        """Request the refresh loop to stop. Idempotent."""
        self._loop.stop()

    async def wait_ready(self) -> None:
        """Block until the initial refresh has been installed."""
        await self._loop.wait_ready()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def fetch_snapshot(self) -> Snapshot:
        """Return the cached snapshot stamped with the current time.

        Never raises: an empty or expired cache yields an empty placeholder.
        """
        entry = self._cache.read()
        now = self._cache.now()
        if entry.snapshot is None or entry.is_expired(now):
            _log.warning("cache_expired_or_empty")
            return Snapshot.empty(now)
        return entry.snapshot.with_timestamp(now)

    async def health_check(self, timeout: float | None = None) -> None:
        """Probe API connectivity and cache freshness.

        Raises:
            HealthCheckError: reason ``connectivity`` if the API call failed or
                timed out, ``stale`` if the cache is older than twice its TTL.
        """
        if timeout is None:
            timeout = self._config.health.timeout_seconds
        try:
            await asyncio.wait_for(self._cluster.list_nodes(limit=1), timeout=timeout)
        except TimeoutError as exc:
            raise HealthCheckError(
                HealthReason.CONNECTIVITY,
                f"failed to connect to Kubernetes API: timed out after {timeout}s",
            ) from exc
        except ClusterAPIError as exc:
            raise HealthCheckError(
                HealthReason.CONNECTIVITY,
                f"failed to connect to Kubernetes API: {exc}",
            ) from exc

        entry = self._cache.read()
        now = self._cache.now()
        if entry.is_stale(now, factor=_STALE_FACTOR):
            age = entry.age(now)
            shown = "never refreshed" if age is None else f"{age.total_seconds():.1f}s"
            raise HealthCheckError(HealthReason.STALE, f"cache is stale (age: {shown})")
