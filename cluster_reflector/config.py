"""Configuration loading from environment variables."""

from __future__ import annotations

import math
import os
import re
from dataclasses import replace

import structlog

from cluster_reflector.errors import ConfigError
from cluster_reflector.models.cluster import WorkloadKind
from cluster_reflector.models.config import (
    APIConfig,
    CacheConfig,
    DiscoveryConfig,
    HealthConfig,
    LogConfig,
    MetricsConfig,
    ReflectorConfig,
)

_log = structlog.get_logger(component="config")

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}

_VALID_LOG_LEVELS = {"debug", "info", "warn", "warning", "error"}


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"REFLECTOR_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def parse_duration(value: str) -> float:
    """Parse a Go-style duration ("500ms", "10s", "1m30s", "2h") into seconds.

    A bare number is taken as seconds. The result must be finite and positive.
    """
    text = value.strip()
    if not text:
        raise ConfigError("empty duration")
    try:
        seconds = float(text)
    except ValueError:
        seconds = _parse_unit_duration(text, value)
    if not math.isfinite(seconds) or seconds <= 0:
        raise ConfigError(f"Invalid duration: {value} (must be positive)")
    return seconds


def _parse_unit_duration(text: str, value: str) -> float:
    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ConfigError(f"Invalid duration: {value}")
    return total


def parse_workload_kinds(value: str | list[str] | tuple[str, ...]) -> tuple[WorkloadKind, ...]:
    """Parse a comma separated (or pre-split) list of workload kinds, keeping order."""
    raw = value.split(",") if isinstance(value, str) else list(value)
    kinds: list[WorkloadKind] = []
    for item in raw:
        token = item.strip()
        if not token:
            continue
        try:
            kind = WorkloadKind(token)
        except ValueError:
            valid = ", ".join(k.value for k in WorkloadKind)
            raise ConfigError(f"Invalid workload kind: {token}. Must be one of {valid}") from None
        if kind not in kinds:
            kinds.append(kind)
    return tuple(kinds)


def parse_listen(listen: str) -> tuple[str, int]:
    """Split a listen address (":8080", "127.0.0.1:9000") into host and port."""
    host, sep, port = listen.rpartition(":")
    if not sep or not port.isdigit():
        raise ConfigError(f"Invalid listen address: {listen}")
    port_num = int(port)
    if not 0 < port_num < 65536:
        raise ConfigError(f"Invalid listen port: {port_num}")
    return host.strip("[]") or "0.0.0.0", port_num


def validate_log_level(value: str) -> str:
    if value.lower() not in _VALID_LOG_LEVELS:
        raise ConfigError(f"Invalid log level: {value}. Must be one of {sorted(_VALID_LOG_LEVELS)}")
    level = value.lower()
    return "warning" if level == "warn" else level


def validate_config(config: ReflectorConfig) -> ReflectorConfig:
    """Cross-field checks that run after every config source has been applied."""
    parse_listen(config.api.listen)
    validate_log_level(config.log.level)
    discovery = config.discovery
    if discovery.crd_only and discovery.fallback_workloads:
        _log.warning("crd_only_overrides_fallback_workloads", detail="workload discovery will be skipped")
    return config


def load_config() -> ReflectorConfig:
    """Load configuration from REFLECTOR_* environment variables."""
    config = ReflectorConfig(
        api=APIConfig(
            listen=_env("LISTEN", ":8080"),
        ),
        cache=CacheConfig(
            ttl_seconds=parse_duration(_env("CACHE_TTL", "10s")),
        ),
        discovery=DiscoveryConfig(
            namespace_selector=_env("NAMESPACE_SELECTOR", ""),
            prefer_crd=_env_bool("PREFER_CRD", True),
            fallback_workloads=_env_bool("FALLBACK_WORKLOADS", True),
            crd_only=_env_bool("CRD_ONLY", False),
            workload_kinds=parse_workload_kinds(_env("WORKLOAD_KINDS", "Deployment,StatefulSet")),
            request_timeout_seconds=parse_duration(_env("REQUEST_TIMEOUT", "10s")),
        ),
        health=HealthConfig(
            timeout_seconds=parse_duration(_env("HEALTH_TIMEOUT", "5s")),
        ),
        metrics=MetricsConfig(
            enabled=_env_bool("METRICS_ENABLED", False),
        ),
        log=LogConfig(
            level=validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
    return validate_config(config)


def with_overrides(
    config: ReflectorConfig,
    *,
    listen: str | None = None,
    cache_ttl: str | None = None,
    namespace_selector: str | None = None,
    prefer_crd: bool | None = None,
    fallback_workloads: bool | None = None,
    crd_only: bool | None = None,
    workload_kinds: str | None = None,
    log_level: str | None = None,
    metrics: bool | None = None,
) -> ReflectorConfig:
    """Return *config* with every non-None override applied (CLI flags beat env)."""
    api = config.api if listen is None else replace(config.api, listen=listen)
    cache = config.cache if cache_ttl is None else replace(config.cache, ttl_seconds=parse_duration(cache_ttl))

    discovery_changes: dict[str, object] = {}
    if namespace_selector is not None:
        discovery_changes["namespace_selector"] = namespace_selector
    if prefer_crd is not None:
        discovery_changes["prefer_crd"] = prefer_crd
    if fallback_workloads is not None:
        discovery_changes["fallback_workloads"] = fallback_workloads
    if crd_only is not None:
        discovery_changes["crd_only"] = crd_only
    if workload_kinds is not None:
        discovery_changes["workload_kinds"] = parse_workload_kinds(workload_kinds)
    discovery = replace(config.discovery, **discovery_changes) if discovery_changes else config.discovery

    log = config.log if log_level is None else replace(config.log, level=validate_log_level(log_level))
    metrics_config = config.metrics if metrics is None else replace(config.metrics, enabled=metrics)

    return validate_config(
        replace(config, api=api, cache=cache, discovery=discovery, log=log, metrics=metrics_config)
    )
