"""Process bootstrap for cluster-reflector.

Startup order: config -> logging -> cluster client -> discovery (initial
refresh, then the refresh loop) -> REST.

The REST server only binds once the initial refresh has been installed, so
clients never see the empty placeholder as if it were real data. Shutdown
runs in reverse: REST, refresh loop, cluster client.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from cluster_reflector.config import load_config, parse_listen
from cluster_reflector.errors import ConfigError
from cluster_reflector.models.config import ReflectorConfig
from cluster_reflector.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog
    import uvicorn

    from cluster_reflector.cluster import ClusterClient
    from cluster_reflector.discovery import ClusterReflector

_CLIENT_CLOSE_TIMEOUT_SECONDS = 10


class _ComponentError(Exception):
    """A mandatory component could not start; the process exits non-zero."""

    def __init__(self, component: str, cause: BaseException) -> None:
        super().__init__(f"{component} failed to start: {cause}")
        self.component = component
        self.cause = cause


class ReflectorApp:
    """Owns the cluster client, the reflector and the HTTP server.

    ``stop()`` is idempotent and safe on an app that never started.
    """

    def __init__(self, config: ReflectorConfig | None = None) -> None:
        self.config = config

        self._cluster: ClusterClient | None = None
        self._reflector: ClusterReflector | None = None
        self._server: uvicorn.Server | None = None
        self._refresh_task: asyncio.Task[None] | None = None
        self._server_task: asyncio.Task[None] | None = None

        self._stopped = asyncio.Event()
        self._started = False
        self.failed_component: str | None = None
        self._shutdown_task: asyncio.Task[None] | None = None
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def reflector(self) -> ClusterReflector | None:
        return self._reflector

    @property
    def running(self) -> bool:
        return self._started and not self._stopped.is_set()

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Bring every component up in order.

        Raises:
            _ComponentError: config, cluster client, initial refresh or HTTP
                server setup failed.
        """
        if self.config is None:
            try:
                self.config = load_config()
            except ConfigError as exc:
                raise _ComponentError("config", exc) from exc

        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("cluster_reflector_starting", listen=self.config.api.listen)

        await self._connect_cluster()
        if self._stopped.is_set():
            await self._close_cluster(get_logger("app"))
            return
        await self._start_discovery()
        if self._stopped.is_set():
            return
        self._start_server()

        self._started = True
        self._log.info("cluster_reflector_started")

    async def _connect_cluster(self) -> None:
        assert self.config is not None
        from cluster_reflector.cluster import ClusterClient

        try:
            self._cluster = await ClusterClient.connect(
                request_timeout=self.config.discovery.request_timeout_seconds,
            )
        except Exception as exc:
            raise _ComponentError("cluster_client", exc) from exc

    async def _start_discovery(self) -> None:
        """Start the refresh loop and block until the first snapshot lands."""
        assert self.config is not None
        assert self._cluster is not None
        from cluster_reflector.discovery import ClusterReflector

        reflector = ClusterReflector(self.config, self._cluster)
        self._refresh_task = asyncio.create_task(reflector.start(), name="refresh-loop")
        ready = asyncio.create_task(reflector.wait_ready(), name="refresh-ready")
        try:
            await asyncio.wait({self._refresh_task, ready}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            ready.cancel()
            await asyncio.gather(ready, return_exceptions=True)

        if ready.cancelled():
            if self._stopped.is_set():
                get_logger("app").info("startup_interrupted_by_shutdown")
                return
            cause: BaseException = RuntimeError("refresh loop exited before the initial refresh")
            if self._refresh_task.done() and not self._refresh_task.cancelled():
                cause = self._refresh_task.exception() or cause
            raise _ComponentError("discovery", cause)

        self._reflector = reflector
        self._refresh_task.add_done_callback(self._on_background_exit)

    def _start_server(self) -> None:
        assert self.config is not None
        assert self._reflector is not None
        import uvicorn

        from cluster_reflector.api import build_app

        try:
            host, port = parse_listen(self.config.api.listen)
        except ConfigError as exc:
            raise _ComponentError("rest", exc) from exc

        server = uvicorn.Server(
            uvicorn.Config(
                app=build_app(reflector=self._reflector, config=self.config),
                host=host,
                port=port,
                log_config=None,
                access_log=False,
            )
        )
        self._server = server
        self._server_task = asyncio.create_task(server.serve(), name="rest-server")
        self._server_task.add_done_callback(self._on_background_exit)
        assert self._log is not None
        self._log.info("rest_api_started", host=host, port=port)

    def _on_background_exit(self, task: asyncio.Task[None]) -> None:
        """A long-running task ended on its own; the process cannot keep serving."""
        if self._stopped.is_set() or task.cancelled():
            return
        log = self._log or get_logger("app")
        exc = task.exception()
        log.error("background_task_exited", task=task.get_name(), error=str(exc) if exc else "")
        self.failed_component = task.get_name()
        self._stopped.set()

    async def wait_stopped(self) -> None:
        """Block until ``stop()`` runs or a background task dies."""
        await self._stopped.wait()

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop components in reverse startup order.

        Concurrent callers (a signal handler and the entrypoint's cleanup)
        share one shutdown run.
        """
        if self._shutdown_task is None:
            if self._log is None:
                return
            self._shutdown_task = asyncio.create_task(self._shutdown(), name="shutdown")
        await asyncio.shield(self._shutdown_task)

    async def _shutdown(self) -> None:
        assert self._log is not None
        log = self._log
        log.info("cluster_reflector_shutting_down")
        self._stopped.set()

        if self._server is not None:
            self._server.should_exit = True
        if self._reflector is not None:
            self._reflector.stop()

        tasks = [t for t in (self._server_task, self._refresh_task) if t is not None]
        for task in tasks:
            if not task.done():
                task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._server_task = self._refresh_task = None
        self._server = None
        self._reflector = None

        await self._close_cluster(log)
        self._log = None
        log.info("cluster_reflector_stopped")

    async def _close_cluster(self, log: structlog.stdlib.BoundLogger) -> None:
        cluster, self._cluster = self._cluster, None
        if cluster is None:
            return
        try:
            await asyncio.wait_for(cluster.close(), timeout=_CLIENT_CLOSE_TIMEOUT_SECONDS)
        except TimeoutError:
            log.warning("cluster_client_close_timed_out", timeout=_CLIENT_CLOSE_TIMEOUT_SECONDS)
        except Exception as exc:
            log.debug("cluster_client_close_failed", error=str(exc))


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: ReflectorConfig | None = None) -> None:
    """Run the service until SIGTERM/SIGINT or a fatal component failure."""
    app = ReflectorApp(config)
    loop = asyncio.get_running_loop()

    shutdown_task: asyncio.Task[None] | None = None

    def _request_shutdown() -> None:
        nonlocal shutdown_task
        if shutdown_task is not None:
            return
        shutdown_task = asyncio.create_task(app.stop(), name="shutdown-signal")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        await app.wait_stopped()
        if app.failed_component is not None:
            raise SystemExit(1)
    except _ComponentError as exc:
        get_logger("app").critical("fatal_startup_error", component=exc.component, error=str(exc.cause))
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        await app.stop()
