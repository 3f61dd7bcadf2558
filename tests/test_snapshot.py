"""Unit tests for snapshots and handle lifecycle."""

from datetime import timedelta

import pytest

from kvcache.core.cache import CacheSnapshot, CacheStore
from kvcache.core.config import CacheSettings
from kvcache.core.exceptions import (
    AlreadySnapshottedError,
    StoreNotOpenError,
    TransactionConflictError,
)

from conftest import START


class TestEnterSnapshot:
    """Test entering snapshots."""

    def test_returns_snapshot_at_current_time(self, cache):
        """Test the snapshot is frozen at the clock's time."""
        with cache.as_of_now() as snapshot:
            assert isinstance(snapshot, CacheSnapshot)
            assert snapshot.is_snapshot is True
            assert snapshot.now == START
        assert cache.is_snapshot is False

    def test_caller_supplied_instant(self, cache):
        """Test a datetime or Unix seconds can be frozen."""
        cache.set("key", "value", 10)

        with cache.as_of_now(START + timedelta(seconds=20)) as snapshot:
            assert snapshot.has("key") is False

        with cache.as_of_now(START.timestamp() + 5) as snapshot:
            assert snapshot.has("key") is True

    def test_nested_snapshot_fails(self, cache):
        """Test a snapshot cannot take another snapshot."""
        with cache.as_of_now() as snapshot:
            with pytest.raises(AlreadySnapshottedError):
                snapshot.as_of_now()

    def test_second_open_snapshot_conflicts(self, cache):
        """Test only one snapshot can be open at a time."""
        snapshot = cache.as_of_now()
        with pytest.raises(TransactionConflictError):
            cache.as_of_now()

        snapshot.close()
        with cache.as_of_now() as again:
            assert again.has("anything") is False

    def test_typed_getter_conflicts_with_open_snapshot(self, cache):
        """Test typed getters on the base handle need the transaction too."""
        cache.set("a", 1)
        snapshot = cache.as_of_now()

        with pytest.raises(TransactionConflictError):
            cache.get_int("a")

        assert snapshot.get_int("a") == 1
        snapshot.close()
        assert cache.get_int("a") == 1


class TestFrozenTime:
    """Test operations inside a snapshot see one instant."""

    def test_reads_do_not_drift(self, cache, clock):
        """Test a snapshot keeps seeing items that expired since."""
        cache.set("key", "value", 5)

        with cache.as_of_now() as snapshot:
            clock.advance(10)
            assert snapshot.has("key") is True
            assert snapshot.get("key") == "value"
            assert cache.has("key") is False

    def test_writes_use_frozen_time(self, cache, clock):
        """Test expiry and set_at are computed from the frozen instant."""
        with cache.as_of_now() as snapshot:
            clock.advance(100)
            snapshot.set("key", "value", 10)

        clock.current = START + timedelta(seconds=9)
        assert cache.has("key") is True
        assert cache.has("key", max_age=10) is True

        clock.current = START + timedelta(seconds=10)
        assert cache.has("key") is False

    def test_clear_expired_uses_frozen_time(self, cache, clock):
        """Test clear_expired inside a snapshot ignores later time."""
        cache.set("key", "value", 5)

        with cache.as_of_now() as snapshot:
            clock.advance(10)
            snapshot.clear_expired()
            assert snapshot.has("key") is True

        clock.current = START
        assert cache.has("key") is True


class TestSnapshotClose:
    """Test committing, rolling back and detaching snapshots."""

    def test_close_commits(self, cache):
        """Test writes are kept when the snapshot closes."""
        snapshot = cache.as_of_now()
        snapshot.set("key", "value")
        snapshot.close()

        assert snapshot.is_closed is True
        assert cache.get("key") == "value"

    def test_close_is_idempotent(self, cache):
        """Test closing twice is harmless."""
        snapshot = cache.as_of_now()
        snapshot.close()
        snapshot.close()

    def test_closed_snapshot_is_detached(self, cache):
        """Test a closed snapshot can no longer be used."""
        snapshot = cache.as_of_now()
        snapshot.close()

        with pytest.raises(StoreNotOpenError):
            snapshot.get("key")

    def test_error_in_block_rolls_back(self, cache):
        """Test an exception inside the block discards the snapshot's writes."""
        cache.set("kept", 1)

        with pytest.raises(RuntimeError):
            with cache.as_of_now() as snapshot:
                snapshot.set("discarded", 2)
                snapshot.delete("kept")
                raise RuntimeError("boom")

        assert cache.has("discarded") is False
        assert cache.get("kept") == 1
        with cache.as_of_now() as snapshot:
            assert snapshot.get_item_count() == 1


class TestStoreClose:
    """Test closing the base handle."""

    def test_close_removes_expired_items(self, db_file, clock, settings):
        """Test expired items are deleted relative to the current time."""
        with CacheStore(db_file, clock=clock, settings=settings) as cache:
            cache.set("short", 1, 5)
            cache.set("forever", 2)
            clock.advance(10)

        clock.current = START
        with CacheStore(db_file, clock=clock, settings=settings) as cache:
            assert cache.get_all_keys() == ["forever"]

    def test_close_without_gc(self, db_file, clock):
        """Test gc_on_close can be disabled."""
        settings = CacheSettings(CACHE_GC_ON_CLOSE=False)
        with CacheStore(db_file, clock=clock, settings=settings) as cache:
            cache.set("short", 1, 5)
            clock.advance(10)

        clock.current = START
        with CacheStore(db_file, clock=clock, settings=settings) as cache:
            assert cache.get_all_keys() == ["short"]

    def test_close_commits_open_snapshot(self, db_file, clock, settings):
        """Test closing the base handle keeps an open snapshot's writes."""
        cache = CacheStore(db_file, clock=clock, settings=settings)
        snapshot = cache.as_of_now()
        snapshot.set("key", "value")
        cache.close()

        snapshot.close()
        with CacheStore(db_file, clock=clock, settings=settings) as reopened:
            assert reopened.get("key") == "value"

    def test_operations_after_close_fail(self, clock, settings):
        """Test a closed cache fails fast."""
        cache = CacheStore(":memory:", clock=clock, settings=settings)
        cache.close()

        assert cache.is_open is False
        with pytest.raises(StoreNotOpenError):
            cache.get("key")
        with pytest.raises(StoreNotOpenError):
            cache.as_of_now()

    def test_close_is_idempotent(self, clock, settings):
        """Test closing twice is harmless."""
        cache = CacheStore(":memory:", clock=clock, settings=settings)
        cache.close()
        cache.close()
