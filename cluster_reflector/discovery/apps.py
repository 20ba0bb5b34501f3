"""Application discovery from AppVersion custom resources and workloads.

Both sources fold (name, version) pairs into one AppAccumulator per refresh.

Precedence for the primary version:
    * AppVersion objects overwrite it (last processed object wins).
    * Workloads only set it for names not seen yet; they never override a
      version declared by an AppVersion or an earlier workload.
Every distinct version from either source is appended to ``variants`` in
first-seen order.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError

from cluster_reflector.cluster import ClusterLister
from cluster_reflector.errors import ClusterAPIError
from cluster_reflector.models.cluster import App, WorkloadKind
from cluster_reflector.observability.logging import get_logger
from cluster_reflector.observability.metrics import discovery_errors_total

_log = get_logger("discovery.apps")

ALL_NAMESPACES = ""

NAME_LABEL = "app.kubernetes.io/name"
VERSION_LABEL = "app.kubernetes.io/version"

DEFAULT_IMAGE_TAG = "latest"
UNKNOWN_VERSION = "unknown"


# ---------------------------------------------------------------------------
# Fold
# ---------------------------------------------------------------------------


@dataclass
class _AppEntry:
    name: str
    version: str
    variants: list[str] = field(default_factory=list)


class AppAccumulator:
    """name -> App map built up during one refresh.

    Iteration order of the result is not stable; callers must not rely on it.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _AppEntry] = {}

    def fold(self, name: str, version: str, *, overwrite: bool = True) -> None:
        """Merge one observation.

        ``overwrite`` controls whether an existing entry's primary version is
        replaced by *version*.
        """
        entry = self._entries.get(name)
        if entry is None:
            self._entries[name] = _AppEntry(name=name, version=version, variants=[version])
            return
        if version not in entry.variants:
            entry.variants.append(version)
        if overwrite:
            entry.version = version

    def get(self, name: str) -> App | None:
        entry = self._entries.get(name)
        if entry is None:
            return None
        return App(name=entry.name, version=entry.version, variants=tuple(entry.variants))

    def to_apps(self) -> list[App]:
        return [App(name=e.name, version=e.version, variants=tuple(e.variants)) for e in self._entries.values()]


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def parse_namespaces(selector: str) -> list[str]:
    """Resolve the namespace selector into the namespaces to list.

    The selector is a literal comma separated list of namespace names, not a
    label selector. ``[ALL_NAMESPACES]`` means one cluster-wide call.
    """
    namespaces = [ns.strip() for ns in selector.split(",")]
    namespaces = [ns for ns in namespaces if ns]
    return namespaces or [ALL_NAMESPACES]


def parse_image_reference(image: str) -> tuple[str, str]:
    """Derive (name, version) from a container image reference.

    ``registry.io/team/app:1.2.3`` -> ("app", "1.2.3")
    ``app@sha256:abcd``            -> ("app", "latest")
    ``app:1.2.3@sha256:abcd``      -> ("app", "1.2.3")
    """
    remainder = image.rsplit("/", 1)[-1]
    remainder = remainder.split("@", 1)[0]
    name, sep, tag = remainder.partition(":")
    if not sep:
        return name, DEFAULT_IMAGE_TAG
    return name, tag


class AppVersionSpec(BaseModel):
    """The two fields read from an AppVersion's ``spec``."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: StrictStr
    version: StrictStr


def parse_app_version(obj: dict[str, Any]) -> AppVersionSpec | None:
    """Validate an AppVersion object; None means skip it."""
    try:
        return AppVersionSpec.model_validate(obj.get("spec"))
    except ValidationError:
        metadata = obj.get("metadata") or {}
        _log.debug(
            "appversion_skipped",
            namespace=metadata.get("namespace", ""),
            name=metadata.get("name", ""),
        )
        return None


def extract_workload_app(workload: dict[str, Any]) -> tuple[str, str] | None:
    """Return (name, version) for a workload, or None if it has no usable name."""
    labels = (workload.get("metadata") or {}).get("labels") or {}
    name = labels.get(NAME_LABEL) or ""
    version = labels.get(VERSION_LABEL) or ""

    pod_spec = (((workload.get("spec") or {}).get("template") or {}).get("spec")) or {}
    containers = pod_spec.get("containers") or []
    if not name and containers:
        name, version = parse_image_reference(str(containers[0].get("image") or ""))

    if not name:
        return None
    return name, version or UNKNOWN_VERSION


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class CRDAppSource:
    """Folds AppVersion custom resources into the accumulator."""

    source = "crd"

    def __init__(self, cluster: ClusterLister, namespace_selector: str = "") -> None:
        self._cluster = cluster
        self._selector = namespace_selector

    async def collect(self, apps: AppAccumulator) -> None:
        """List AppVersions and fold them into *apps*.

        Raises:
            ClusterAPIError: only for the single cluster-wide list call (e.g.
                the CRD is not installed). Per-namespace failures are logged
                and skipped.
        """
        namespaces = parse_namespaces(self._selector)
        if namespaces == [ALL_NAMESPACES]:
            self._fold(await self._cluster.list_app_versions(), apps)
            return

        for namespace in namespaces:
            try:
                objects = await self._cluster.list_app_versions(namespace)
            except ClusterAPIError as exc:
                discovery_errors_total.labels(source=self.source).inc()
                _log.warning("crd_namespace_list_failed", namespace=namespace, error=str(exc))
                continue
            self._fold(objects, apps)

    def _fold(self, objects: Iterable[dict[str, Any]], apps: AppAccumulator) -> None:
        for obj in objects:
            spec = parse_app_version(obj)
            if spec is not None:
                apps.fold(spec.name, spec.version, overwrite=True)


class WorkloadAppSource:
    """Folds workload labels (or their first container image) into the accumulator."""

    source = "workload"

    def __init__(
        self,
        cluster: ClusterLister,
        kinds: Iterable[WorkloadKind],
        namespace_selector: str = "",
    ) -> None:
        self._cluster = cluster
        self._kinds = tuple(kinds)
        self._selector = namespace_selector

    async def collect(self, apps: AppAccumulator) -> None:
        """List every configured kind in every resolved namespace.

        A failing (kind, namespace) unit is logged and skipped; this method
        does not raise ClusterAPIError.
        """
        namespaces = parse_namespaces(self._selector)
        for kind in self._kinds:
            for namespace in namespaces:
                try:
                    workloads = await self._cluster.list_workloads(kind, namespace)
                except ClusterAPIError as exc:
                    discovery_errors_total.labels(source=self.source).inc()
                    _log.warning(
                        "workload_list_failed",
                        kind=kind.value,
                        namespace=namespace or "*",
                        error=str(exc),
                    )
                    continue
                for workload in workloads:
                    extracted = extract_workload_app(workload)
                    if extracted is not None:
                        apps.fold(*extracted, overwrite=False)
