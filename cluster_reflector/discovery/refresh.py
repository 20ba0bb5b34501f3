"""Timer-driven refresh loop.

``running`` -> ``stopped`` is the only transition, and it is terminal. The
first cycle runs immediately and its failure propagates to the caller;
later cycles run every ``interval`` seconds and their failures are logged.

``stop()`` is observed between ticks: a cycle already in flight finishes
first. Cancelling the task running ``run()`` aborts the in-flight cycle
instead, which then installs nothing.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import StrEnum

from cluster_reflector.observability.logging import get_logger

_log = get_logger("discovery.refresh")


class LoopState(StrEnum):
    """Lifecycle of a RefreshLoop."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class RefreshLoop:
    """Runs *cycle* once, then every *interval* seconds until stopped."""

    def __init__(self, cycle: Callable[[], Awaitable[object]], interval: float) -> None:
        if interval <= 0:
            raise ValueError("refresh interval must be positive")
        self._cycle = cycle
        self._interval = interval
        self._state = LoopState.IDLE
        self._stop_requested = asyncio.Event()
        self._ready = asyncio.Event()

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def interval(self) -> float:
        return self._interval

    def stop(self) -> None:
        """Request the loop to stop. Idempotent; safe before ``run()``."""
        self._stop_requested.set()

    async def wait_ready(self) -> None:
        """Block until the initial cycle has succeeded."""
        await self._ready.wait()

    async def run(self) -> None:
        """Run until stopped or cancelled.

        Raises:
            Exception: whatever the initial cycle raised.
        """
        if self._state is not LoopState.IDLE or self._stop_requested.is_set():
            self._state = LoopState.STOPPED
            return

        self._state = LoopState.RUNNING
        _log.info("refresh_loop_started", interval_seconds=self._interval)
        try:
            await self._cycle()
            self._ready.set()
            await self._tick_forever()
        finally:
            self._state = LoopState.STOPPED
            _log.info("refresh_loop_stopped")

    async def _tick_forever(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self._interval
        while True:
            if await self._wait_until(next_tick - loop.time()):
                return
            try:
                await self._cycle()
            except Exception as exc:
                _log.error("refresh_failed", error=str(exc))
            # Skip ticks missed while a slow cycle was running.
            next_tick += self._interval
            if next_tick <= loop.time():
                next_tick = loop.time() + self._interval

    async def _wait_until(self, delay: float) -> bool:
        """Sleep for *delay* seconds; True if a stop was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stop_requested.wait(), timeout=max(delay, 0.0))
        except TimeoutError:
            return self._stop_requested.is_set()
        return True
