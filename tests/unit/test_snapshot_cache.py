"""Unit tests for cluster_reflector.cache.snapshot_cache.SnapshotCache."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from cluster_reflector.cache import CacheEntry, SnapshotCache
from cluster_reflector.models.cluster import App, Snapshot

_START = datetime(2024, 1, 15, 10, 30, 0, tzinfo=UTC)


class _Clock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = _START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def _snapshot(app_name: str = "my-app") -> Snapshot:
    return Snapshot(generated_at=_START, apps=(App(app_name, "1.0.0", ("1.0.0",)),))


class TestEmptyCache:
    def test_initial_entry_is_empty(self) -> None:
        cache = SnapshotCache(ttl=timedelta(seconds=10))
        entry = cache.read()
        assert entry.snapshot is None
        assert entry.last_write is None
        assert entry.ttl == timedelta(seconds=10)

    def test_empty_cache_is_expired_and_stale(self) -> None:
        cache = SnapshotCache(ttl=timedelta(seconds=10))
        entry = cache.read()
        assert entry.is_expired(cache.now()) is True
        assert entry.age(cache.now()) is None
        assert cache.read().is_stale(cache.now()) is True

    def test_non_positive_ttl_rejected(self) -> None:
        with pytest.raises(ValueError):
            SnapshotCache(ttl=timedelta(0))


class TestInstall:
    def test_install_replaces_entry(self) -> None:
        clock = _Clock()
        cache = SnapshotCache(ttl=timedelta(seconds=10), clock=clock)
        first = _snapshot("a")
        second = _snapshot("b")

        cache.install(first)
        assert cache.read().snapshot is first
        cache.install(second)
        assert cache.read().snapshot is second
        assert cache.install_count == 2

    def test_install_records_write_time(self) -> None:
        clock = _Clock()
        cache = SnapshotCache(ttl=timedelta(seconds=10), clock=clock)
        clock.advance(3)
        entry = cache.install(_snapshot())
        assert entry.last_write == _START + timedelta(seconds=3)

    def test_previously_read_entry_is_not_mutated(self) -> None:
        """A reader holding an old entry keeps seeing the old snapshot."""
        cache = SnapshotCache(ttl=timedelta(seconds=10))
        first = _snapshot("a")
        cache.install(first)
        held = cache.read()
        cache.install(_snapshot("b"))
        assert held.snapshot is first


class TestExpiry:
    def test_fresh_entry_not_expired(self) -> None:
        clock = _Clock()
        cache = SnapshotCache(ttl=timedelta(seconds=10), clock=clock)
        cache.install(_snapshot())
        clock.advance(10)
        # age == TTL is still servable; only strictly older expires
        assert cache.read().is_expired(cache.now()) is False

    def test_entry_older_than_ttl_expires(self) -> None:
        clock = _Clock()
        cache = SnapshotCache(ttl=timedelta(seconds=10), clock=clock)
        cache.install(_snapshot())
        clock.advance(10.5)
        entry = cache.read()
        assert entry.is_expired(cache.now()) is True
        assert entry.age(cache.now()) == timedelta(seconds=10.5)

    def test_stale_after_twice_ttl(self) -> None:
        clock = _Clock()
        cache = SnapshotCache(ttl=timedelta(seconds=10), clock=clock)
        cache.install(_snapshot())
        clock.advance(15)
        assert cache.read().is_stale(clock()) is False
        clock.advance(6)
        assert cache.read().is_stale(clock()) is True


class TestCacheEntry:
    def test_entry_is_frozen(self) -> None:
        entry = CacheEntry(snapshot=None, last_write=None, ttl=timedelta(seconds=1))
        with pytest.raises(AttributeError):
            entry.snapshot = _snapshot()  # type: ignore[misc]
