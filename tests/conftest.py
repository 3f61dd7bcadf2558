"""Shared fixtures for cache tests."""

from datetime import datetime, timedelta, timezone

import pytest

from kvcache.core.cache import CacheStore
from kvcache.core.config import CacheSettings

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> datetime:
        self.current += timedelta(seconds=seconds)
        return self.current


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def settings():
    return CacheSettings(CACHE_DB_PATH=":memory:", CACHE_GC_ON_CLOSE=True)


@pytest.fixture
def cache(clock, settings):
    store = CacheStore(":memory:", clock=clock, settings=settings)
    yield store
    store.close()


@pytest.fixture
def db_file(tmp_path):
    return str(tmp_path / "cache.db")
