"""List capability over the Kubernetes API.

Every call returns plain dicts using the API's camelCase field names (typed
kubernetes-asyncio models are flattened with ``sanitize_for_serialization``)
so discovery code reads nodes, workloads and custom objects the same way.

Every call is bounded by ``request_timeout``; API errors, transport errors
and timeouts all surface as ClusterAPIError.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import aiohttp
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio import config as k8s_config  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from cluster_reflector.errors import ClusterAPIError
from cluster_reflector.models.cluster import WorkloadKind
from cluster_reflector.observability.logging import get_logger

_log = get_logger("cluster.client")

_Lister = Callable[..., Awaitable[Any]]

APP_VERSION_GROUP = "cluster.grid.sce.com"
APP_VERSION_VERSION = "v1alpha1"
APP_VERSION_PLURAL = "appversions"


class ClusterLister(Protocol):
    """What the discovery engine needs from the cluster.

    ``namespace=""`` means all namespaces.
    """

    async def list_nodes(self, limit: int | None = None) -> list[dict[str, Any]]: ...

    async def list_app_versions(self, namespace: str = "") -> list[dict[str, Any]]: ...

    async def list_workloads(self, kind: WorkloadKind, namespace: str = "") -> list[dict[str, Any]]: ...


class ClusterClient:
    """kubernetes-asyncio implementation of ClusterLister.

    Args:
        api_client:      A configured ``kubernetes_asyncio.client.ApiClient``.
        request_timeout: Upper bound in seconds for any single list call.
    """

    def __init__(self, api_client: Any, request_timeout: float = 10.0) -> None:
        self._api_client = api_client
        self._timeout = request_timeout
        self._core = k8s_client.CoreV1Api(api_client)
        self._custom = k8s_client.CustomObjectsApi(api_client)
        apps = k8s_client.AppsV1Api(api_client)
        # kind -> (all namespaces, single namespace)
        self._workload_listers: dict[WorkloadKind, tuple[_Lister, _Lister]] = {
            WorkloadKind.DEPLOYMENT: (
                apps.list_deployment_for_all_namespaces,
                apps.list_namespaced_deployment,
            ),
            WorkloadKind.STATEFUL_SET: (
                apps.list_stateful_set_for_all_namespaces,
                apps.list_namespaced_stateful_set,
            ),
            WorkloadKind.DAEMON_SET: (
                apps.list_daemon_set_for_all_namespaces,
                apps.list_namespaced_daemon_set,
            ),
        }

    @classmethod
    async def connect(cls, request_timeout: float = 10.0) -> ClusterClient:
        """Build a client from in-cluster config, falling back to kubeconfig."""
        try:
            # load_incluster_config() is synchronous in kubernetes-asyncio
            k8s_config.load_incluster_config()
            _log.info("k8s client configured from in-cluster service account")
        except k8s_config.ConfigException:
            await k8s_config.load_kube_config()
            _log.info("k8s client configured from kubeconfig")
        return cls(k8s_client.ApiClient(), request_timeout=request_timeout)

    async def close(self) -> None:
        await self._api_client.close()

    async def list_nodes(self, limit: int | None = None) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {}
        if limit is not None:
            kwargs["limit"] = limit
        result = await self._call("list nodes", self._core.list_node, **kwargs)
        return self._flatten(result)

    async def list_app_versions(self, namespace: str = "") -> list[dict[str, Any]]:
        if namespace:
            result = await self._call(
                f"list AppVersions in namespace {namespace}",
                self._custom.list_namespaced_custom_object,
                APP_VERSION_GROUP,
                APP_VERSION_VERSION,
                namespace,
                APP_VERSION_PLURAL,
            )
        else:
            result = await self._call(
                "list AppVersions",
                self._custom.list_cluster_custom_object,
                APP_VERSION_GROUP,
                APP_VERSION_VERSION,
                APP_VERSION_PLURAL,
            )
        items = result.get("items") if isinstance(result, dict) else None
        return [item for item in items or [] if isinstance(item, dict)]

    async def list_workloads(self, kind: WorkloadKind, namespace: str = "") -> list[dict[str, Any]]:
        try:
            list_all, list_namespaced = self._workload_listers[kind]
        except KeyError:
            raise ClusterAPIError(f"list {kind}", "unsupported workload kind") from None
        if namespace:
            result = await self._call(f"list {kind} in namespace {namespace}", list_namespaced, namespace)
        else:
            result = await self._call(f"list {kind}", list_all)
        return self._flatten(result)

    async def _call(self, operation: str, fn: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.wait_for(fn(*args, **kwargs), timeout=self._timeout)
        except ApiException as exc:
            raise ClusterAPIError(operation, exc.reason or str(exc), status=exc.status) from exc
        except TimeoutError as exc:
            raise ClusterAPIError(operation, f"timed out after {self._timeout}s") from exc
        except aiohttp.ClientError as exc:
            raise ClusterAPIError(operation, exc) from exc
        except Exception as exc:
            # Auth plugin refreshes (ConfigException) and socket errors surface here.
            raise ClusterAPIError(operation, f"{type(exc).__name__}: {exc}") from exc

    def _flatten(self, result: Any) -> list[dict[str, Any]]:
        items = getattr(result, "items", None) or []
        return [self._api_client.sanitize_for_serialization(item) for item in items]
