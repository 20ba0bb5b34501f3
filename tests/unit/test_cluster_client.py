"""Unit tests for cluster_reflector.cluster.client.ClusterClient.

The kubernetes-asyncio Api classes are patched so each list method is an
AsyncMock; ``sanitize_for_serialization`` passes items through unchanged.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest
from kubernetes_asyncio.client.exceptions import ApiException

from cluster_reflector.cluster import ClusterClient
from cluster_reflector.cluster.client import APP_VERSION_GROUP, APP_VERSION_PLURAL, APP_VERSION_VERSION
from cluster_reflector.errors import ClusterAPIError
from cluster_reflector.models.cluster import WorkloadKind


class _Apis:
    def __init__(self) -> None:
        self.core = MagicMock()
        self.custom = MagicMock()
        self.apps = MagicMock()


@pytest.fixture
def apis() -> Iterator[_Apis]:
    stubs = _Apis()
    with patch("cluster_reflector.cluster.client.k8s_client") as k8s:
        k8s.CoreV1Api.return_value = stubs.core
        k8s.CustomObjectsApi.return_value = stubs.custom
        k8s.AppsV1Api.return_value = stubs.apps
        yield stubs


def _make_client(timeout: float = 10.0) -> ClusterClient:
    api_client = MagicMock()
    api_client.sanitize_for_serialization.side_effect = lambda item: item
    api_client.close = AsyncMock()
    return ClusterClient(api_client, request_timeout=timeout)


def _list_result(*items: dict) -> MagicMock:
    result = MagicMock()
    result.items = list(items)
    return result


class TestListNodes:
    async def test_returns_flattened_items(self, apis: _Apis) -> None:
        apis.core.list_node = AsyncMock(return_value=_list_result({"metadata": {"name": "n1"}}))
        nodes = await _make_client().list_nodes()
        assert nodes == [{"metadata": {"name": "n1"}}]
        apis.core.list_node.assert_awaited_once_with()

    async def test_limit_is_forwarded(self, apis: _Apis) -> None:
        apis.core.list_node = AsyncMock(return_value=_list_result())
        await _make_client().list_nodes(limit=1)
        apis.core.list_node.assert_awaited_once_with(limit=1)


class TestListAppVersions:
    async def test_cluster_wide(self, apis: _Apis) -> None:
        apis.custom.list_cluster_custom_object = AsyncMock(return_value={"items": [{"spec": {}}]})
        assert await _make_client().list_app_versions() == [{"spec": {}}]
        apis.custom.list_cluster_custom_object.assert_awaited_once_with(
            APP_VERSION_GROUP, APP_VERSION_VERSION, APP_VERSION_PLURAL
        )

    async def test_namespaced(self, apis: _Apis) -> None:
        apis.custom.list_namespaced_custom_object = AsyncMock(return_value={"items": []})
        await _make_client().list_app_versions("team-a")
        apis.custom.list_namespaced_custom_object.assert_awaited_once_with(
            APP_VERSION_GROUP, APP_VERSION_VERSION, "team-a", APP_VERSION_PLURAL
        )

    async def test_missing_items_is_empty(self, apis: _Apis) -> None:
        apis.custom.list_cluster_custom_object = AsyncMock(return_value={"kind": "AppVersionList"})
        assert await _make_client().list_app_versions() == []


class TestListWorkloads:
    @pytest.mark.parametrize(
        ("kind", "method"),
        [
            (WorkloadKind.DEPLOYMENT, "list_deployment_for_all_namespaces"),
            (WorkloadKind.STATEFUL_SET, "list_stateful_set_for_all_namespaces"),
            (WorkloadKind.DAEMON_SET, "list_daemon_set_for_all_namespaces"),
        ],
    )
    async def test_all_namespaces(self, apis: _Apis, kind: WorkloadKind, method: str) -> None:
        setattr(apis.apps, method, AsyncMock(return_value=_list_result({"metadata": {"name": "w"}})))
        assert await _make_client().list_workloads(kind) == [{"metadata": {"name": "w"}}]
        getattr(apis.apps, method).assert_awaited_once_with()

    async def test_namespaced(self, apis: _Apis) -> None:
        apis.apps.list_namespaced_stateful_set = AsyncMock(return_value=_list_result())
        await _make_client().list_workloads(WorkloadKind.STATEFUL_SET, "db")
        apis.apps.list_namespaced_stateful_set.assert_awaited_once_with("db")


class TestErrorMapping:
    async def test_api_exception(self, apis: _Apis) -> None:
        apis.core.list_node = AsyncMock(side_effect=ApiException(status=403, reason="Forbidden"))
        with pytest.raises(ClusterAPIError) as exc_info:
            await _make_client().list_nodes()
        assert exc_info.value.status == 403
        assert exc_info.value.operation == "list nodes"
        assert "Forbidden" in str(exc_info.value)

    async def test_transport_error(self, apis: _Apis) -> None:
        apis.apps.list_namespaced_deployment = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))
        with pytest.raises(ClusterAPIError) as exc_info:
            await _make_client().list_workloads(WorkloadKind.DEPLOYMENT, "a")
        assert exc_info.value.status is None
        assert exc_info.value.operation == "list Deployment in namespace a"

    async def test_timeout(self, apis: _Apis) -> None:
        async def _hang(*_: object, **__: object) -> None:
            await asyncio.sleep(10)

        apis.custom.list_cluster_custom_object = AsyncMock(side_effect=_hang)
        with pytest.raises(ClusterAPIError, match="timed out"):
            await _make_client(timeout=0.01).list_app_versions()


class TestClose:
    async def test_closes_api_client(self, apis: _Apis) -> None:
        client = _make_client()
        await client.close()
        client._api_client.close.assert_awaited_once()


class TestUnexpectedErrors:
    async def test_auth_refresh_failure_is_mapped(self, apis: _Apis) -> None:
        from kubernetes_asyncio.config import ConfigException

        apis.core.list_node = AsyncMock(side_effect=ConfigException("exec plugin: token refresh failed"))
        with pytest.raises(ClusterAPIError) as exc_info:
            await _make_client().list_nodes(limit=1)
        assert "token refresh failed" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, ConfigException)

    async def test_os_error_is_mapped(self, apis: _Apis) -> None:
        apis.apps.list_namespaced_deployment = AsyncMock(side_effect=OSError("connection reset"))
        with pytest.raises(ClusterAPIError, match="OSError: connection reset"):
            await _make_client().list_workloads(WorkloadKind.DEPLOYMENT, "a")

    async def test_workload_source_continues_after_unexpected_error(self, apis: _Apis) -> None:
        from cluster_reflector.discovery.apps import AppAccumulator, WorkloadAppSource

        labelled = {"metadata": {"labels": {"app.kubernetes.io/name": "web"}}}
        apis.apps.list_namespaced_deployment = AsyncMock(
            side_effect=[OSError("connection reset"), _list_result(labelled)]
        )
        apis.apps.list_namespaced_stateful_set = AsyncMock(return_value=_list_result())
        acc = AppAccumulator()
        source = WorkloadAppSource(_make_client(), [WorkloadKind.DEPLOYMENT, WorkloadKind.STATEFUL_SET], "a,b")

        await source.collect(acc)

        assert [app.name for app in acc.to_apps()] == ["web"]
        assert apis.apps.list_namespaced_deployment.await_count == 2
        assert apis.apps.list_namespaced_stateful_set.await_count == 2
