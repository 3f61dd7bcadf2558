"""Unit tests for cache settings."""

from kvcache.core.cache import CacheStore
from kvcache.core.config import CacheSettings


class TestCacheSettings:
    """Test settings defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("CACHE_DB_PATH", raising=False)
        monkeypatch.delenv("CACHE_GC_ON_CLOSE", raising=False)
        monkeypatch.delenv("CACHE_SQL_ECHO", raising=False)

        settings = CacheSettings()

        assert settings.db_path == ":memory:"
        assert settings.gc_on_close is True
        assert settings.sql_echo is False

    def test_environment_overrides(self, monkeypatch, db_file):
        monkeypatch.setenv("CACHE_DB_PATH", db_file)
        monkeypatch.setenv("CACHE_GC_ON_CLOSE", "false")

        settings = CacheSettings()

        assert settings.db_path == db_file
        assert settings.gc_on_close is False

    def test_store_uses_settings_path(self, monkeypatch, db_file, clock):
        """Test CacheStore falls back to settings.db_path."""
        monkeypatch.setenv("CACHE_DB_PATH", db_file)

        with CacheStore(clock=clock, settings=CacheSettings()) as cache:
            assert cache.filename == db_file
            cache.set("key", "value")

        with CacheStore(db_file, clock=clock) as cache:
            assert cache.get("key") == "value"
