"""Configuration data structures.

All configuration is immutable once the process has started.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from cluster_reflector.errors import ConfigError
from cluster_reflector.models.cluster import WorkloadKind


@dataclass(frozen=True)
class APIConfig:
    """HTTP server configuration."""

    listen: str = ":8080"


@dataclass(frozen=True)
class CacheConfig:
    """Snapshot cache configuration."""

    ttl_seconds: float = 10.0

    def __post_init__(self) -> None:
        if not math.isfinite(self.ttl_seconds) or self.ttl_seconds <= 0:
            raise ConfigError(f"cache TTL must be positive, got {self.ttl_seconds}s")

    @property
    def refresh_interval_seconds(self) -> float:
        """Refresh period: half the TTL."""
        return self.ttl_seconds / 2


@dataclass(frozen=True)
class DiscoveryConfig:
    """Application discovery toggles.

    ``namespace_selector`` is a literal, comma separated list of namespace
    names (empty means all namespaces). It is not a label selector.
    """

    namespace_selector: str = ""
    prefer_crd: bool = True
    fallback_workloads: bool = True
    crd_only: bool = False
    workload_kinds: tuple[WorkloadKind, ...] = (WorkloadKind.DEPLOYMENT, WorkloadKind.STATEFUL_SET)
    request_timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        if self.crd_only and not self.prefer_crd:
            raise ConfigError("CRD-only mode requires preferCRD to be true")
        if not math.isfinite(self.request_timeout_seconds) or self.request_timeout_seconds <= 0:
            raise ConfigError(f"request timeout must be positive, got {self.request_timeout_seconds}s")


@dataclass(frozen=True)
class HealthConfig:
    """Health check configuration."""

    timeout_seconds: float = 5.0

    def __post_init__(self) -> None:
        if not math.isfinite(self.timeout_seconds) or self.timeout_seconds <= 0:
            raise ConfigError(f"health timeout must be positive, got {self.timeout_seconds}s")


@dataclass(frozen=True)
class MetricsConfig:
    """Prometheus endpoint configuration."""

    enabled: bool = False


@dataclass(frozen=True)
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass(frozen=True)
class ReflectorConfig:
    """Top-level cluster-reflector configuration."""

    api: APIConfig = field(default_factory=APIConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    log: LogConfig = field(default_factory=LogConfig)
