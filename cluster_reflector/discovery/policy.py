"""Merge policy: which app sources run, and in which order.

Both sources are plain enable/disable toggles; when both are enabled they
both run, CRD first, into the same accumulator. Nothing here is a
"try A, fall back to B if A found nothing" chain despite the flag names.
"""

from __future__ import annotations

from cluster_reflector.cluster import ClusterLister
from cluster_reflector.discovery.apps import AppAccumulator, CRDAppSource, WorkloadAppSource
from cluster_reflector.models.cluster import App
from cluster_reflector.models.config import DiscoveryConfig
from cluster_reflector.observability.logging import get_logger
from cluster_reflector.observability.metrics import discovery_errors_total

_log = get_logger("discovery.policy")


class MergePolicy:
    """Runs the enabled app sources for one refresh and returns the merged apps."""

    def __init__(
        self,
        config: DiscoveryConfig,
        crd_source: CRDAppSource,
        workload_source: WorkloadAppSource,
    ) -> None:
        self._config = config
        self._crd_source = crd_source
        self._workload_source = workload_source

    @classmethod
    def from_config(cls, config: DiscoveryConfig, cluster: ClusterLister) -> MergePolicy:
        return cls(
            config,
            CRDAppSource(cluster, config.namespace_selector),
            WorkloadAppSource(cluster, config.workload_kinds, config.namespace_selector),
        )

    async def discover_apps(self) -> list[App]:
        """Run the enabled sources. Source failures are logged, never raised."""
        apps = AppAccumulator()

        if self._config.prefer_crd:
            try:
                await self._crd_source.collect(apps)
            except Exception as exc:
                discovery_errors_total.labels(source=CRDAppSource.source).inc()
                _log.warning("crd_discovery_failed", error=str(exc))

        if self._config.fallback_workloads and not self._config.crd_only:
            try:
                await self._workload_source.collect(apps)
            except Exception as exc:
                discovery_errors_total.labels(source=WorkloadAppSource.source).inc()
                _log.error("workload_discovery_failed", error=str(exc))
        elif self._config.crd_only:
            _log.debug("crd_only_mode_skipping_workload_discovery")

        return apps.to_apps()
