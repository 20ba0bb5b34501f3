"""Single-entry snapshot cache.

The cache owns exactly one mutable slot: a reference to an immutable
CacheEntry. Writers build a complete Snapshot first and only take the lock to
swap the reference; readers take the same lock only to copy it. A reader
therefore sees either the previous entry or the new one, never a mix.

The lock is a plain ``threading.Lock`` so the cache is safe for both
event-loop coroutines and FastAPI's threadpool handlers. Because the critical
sections are a single attribute read or write, readers never queue behind a
discovery cycle.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from cluster_reflector.models.cluster import Snapshot, utcnow
from cluster_reflector.observability.logging import get_logger

_log = get_logger("cache.snapshot")


@dataclass(frozen=True)
class CacheEntry:
    """The cached snapshot plus the bookkeeping needed to judge its age."""

    snapshot: Snapshot | None
    last_write: datetime | None
    ttl: timedelta

    def age(self, now: datetime) -> timedelta | None:
        """Time since the last install, or None if nothing was ever installed."""
        if self.last_write is None:
            return None
        return now - self.last_write

    def is_expired(self, now: datetime) -> bool:
        """True when nothing is cached or the entry is older than its TTL."""
        age = self.age(now)
        return self.snapshot is None or age is None or age > self.ttl

    def is_stale(self, now: datetime, factor: float = 2.0) -> bool:
        """True when the entry is older than ``factor`` x TTL (or never written)."""
        age = self.age(now)
        return age is None or age > self.ttl * factor


class SnapshotCache:
    """Holds the latest snapshot; many readers, one writer at a time.

    Args:
        ttl:   How long an installed snapshot stays servable.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(self, ttl: timedelta, clock: Callable[[], datetime] = utcnow) -> None:
        if ttl <= timedelta(0):
            raise ValueError("cache TTL must be positive")
        self._clock = clock
        self._lock = threading.Lock()
        self._entry = CacheEntry(snapshot=None, last_write=None, ttl=ttl)
        self._installs = 0

    @property
    def ttl(self) -> timedelta:
        return self._entry.ttl

    @property
    def install_count(self) -> int:
        """Number of snapshots installed since construction."""
        return self._installs

    def now(self) -> datetime:
        return self._clock()

    def install(self, snapshot: Snapshot) -> CacheEntry:
        """Atomically replace the cached snapshot with *snapshot*."""
        entry = CacheEntry(snapshot=snapshot, last_write=self._clock(), ttl=self._entry.ttl)
        with self._lock:
            self._entry = entry
            self._installs += 1
        _log.debug(
            "snapshot_installed",
            nodes=len(snapshot.nodes),
            apps=len(snapshot.apps),
        )
        return entry

    def read(self) -> CacheEntry:
        """Return the current entry. The returned object is immutable."""
        with self._lock:
            return self._entry
