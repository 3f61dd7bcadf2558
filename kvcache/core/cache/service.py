"""
SQLite-backed key-value cache with TTL and max-age support.
"""

import logging
from typing import Optional

from kvcache.core.cache.operations import CacheOperations
from kvcache.core.cache.snapshot import CacheSnapshot, enter_snapshot
from kvcache.core.config import CacheSettings, config
from kvcache.core.db.base import Base
from kvcache.core.db.engine import CacheDatabase, database_url
from kvcache.utils.datetime import Clock, Instant, SystemClock, to_timestamp

logger = logging.getLogger(__name__)


class CacheStore(CacheOperations):
    """Durable cache handle reading the time from its clock."""

    def __init__(
        self,
        filename: Optional[str] = None,
        *,
        clock: Optional[Clock] = None,
        settings: Optional[CacheSettings] = None,
    ):
        """
        Open the cache database and create its table if needed.

        Args:
            filename: SQLite file path, or ":memory:" (default: settings.db_path)
            clock: Source of the current time (default: wall clock in UTC)
            settings: Cache settings (default: settings from the environment)
        """
        self.settings = settings or config
        self.filename = filename if filename is not None else self.settings.db_path
        self.clock = clock or SystemClock()
        self._db = CacheDatabase(
            database_url(self.filename),
            metadata=Base.metadata,
            echo=self.settings.sql_echo,
        ).open()

    @property
    def is_open(self) -> bool:
        return self._db.is_open

    def _now(self) -> float:
        return to_timestamp(self.clock.now())

    def as_of_now(self, now: Optional[Instant] = None) -> CacheSnapshot:
        """
        Get a handle where every operation sees the same instant.

        Args:
            now: Instant to freeze (default: the clock's current time)

        Returns:
            CacheSnapshot: Handle sharing this cache's database. Close it, or
                use it as a context manager, before taking another one.

        Raises:
            TransactionConflictError: If a previous snapshot is still open
        """
        frozen = to_timestamp(now) if now is not None else self._now()
        return enter_snapshot(self._db, frozen)

    def close(self) -> None:
        """
        Remove expired items and release the database.

        A snapshot still open at this point is committed first.
        """
        if not self._db.is_open:
            return

        if self._db.has_open_transaction():
            logger.debug("Committing open snapshot before closing cache")
            self._db.commit_transaction()

        if self.settings.gc_on_close:
            self.clear_expired()

        self._db.close()
