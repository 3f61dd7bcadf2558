"""
Snapshots: cache handles with a frozen "now".

A snapshot owns the database's only open transaction from ``enter_snapshot``
until it is closed, so a ``has`` followed by a ``get`` cannot straddle an
expiry boundary.
"""

import logging
from datetime import datetime
from typing import Optional

from kvcache.core.cache.operations import CacheOperations
from kvcache.core.db.engine import CacheDatabase
from kvcache.core.exceptions import (
    AlreadySnapshottedError,
    StoreNotOpenError,
    TransactionConflictError,
)
from kvcache.utils.datetime import Instant, from_timestamp

logger = logging.getLogger(__name__)


class CacheSnapshot(CacheOperations):
    """Cache handle evaluated against one instant inside one transaction."""

    is_snapshot = True

    def __init__(self, database: CacheDatabase, now: float):
        self._database: Optional[CacheDatabase] = database
        self._frozen_now = now

    @property
    def _db(self) -> CacheDatabase:
        if self._database is None:
            raise StoreNotOpenError("snapshot is closed")
        return self._database

    @property
    def now(self) -> datetime:
        return from_timestamp(self._frozen_now)

    @property
    def is_closed(self) -> bool:
        return self._database is None

    def _now(self) -> float:
        return self._frozen_now

    def as_of_now(self, now: Optional[Instant] = None) -> "CacheSnapshot":
        raise AlreadySnapshottedError()

    def close(self) -> None:
        """Commit the snapshot's transaction and detach from the database."""
        if self._database is None:
            return
        database, self._database = self._database, None
        if database.is_open and database.has_open_transaction():
            database.commit_transaction()
        logger.debug(f"Snapshot at {self._frozen_now} closed")

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None or self._database is None:
            self.close()
            return

        database, self._database = self._database, None
        if database.is_open and database.has_open_transaction():
            logger.warning(f"Rolling back snapshot at {self._frozen_now}: {exc}")
            database.rollback_transaction()


def enter_snapshot(database: CacheDatabase, now: float) -> CacheSnapshot:
    """
    Begin a transaction and return a handle frozen at ``now``.

    Raises:
        TransactionConflictError: If another snapshot's transaction is still open
        StoreNotOpenError: If the database is closed
    """
    if database.has_open_transaction():
        raise TransactionConflictError()

    database.begin_transaction()
    logger.debug(f"Snapshot at {now} entered")
    return CacheSnapshot(database, now)
