"""
SQLite storage for the cache.

Holds one connection for the life of the cache and exposes the small set of
statement and transaction primitives the cache is built on.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Connection, Engine, RootTransaction
from sqlalchemy.pool import NullPool

from kvcache.core.exceptions import StoreNotOpenError

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


def database_url(filename: str) -> str:
    """Build a SQLAlchemy URL for a SQLite file or an in-memory database."""
    if filename in ("", MEMORY):
        return "sqlite://"
    if "://" in filename:
        return filename
    return f"sqlite:///{filename}"


def create_cache_engine(url: str, echo: bool = False) -> Engine:
    """
    Create a SQLite engine whose transactions are real SQLite transactions.

    pysqlite's own BEGIN handling is switched off and BEGIN is emitted when
    SQLAlchemy starts a transaction instead.
    """
    engine = create_engine(
        url,
        echo=echo,
        poolclass=NullPool,  # The cache holds its single connection itself
        future=True,
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


@dataclass
class ResultSet:
    """Rows of a statement, buffered before its transaction ends."""

    rows: List[Any] = field(default_factory=list)
    rowcount: int = -1

    def scalar(self) -> Any:
        if not self.rows:
            return None
        return self.rows[0][0]

    def scalars(self) -> List[Any]:
        return [row[0] for row in self.rows]


class CacheDatabase:
    """Single-connection SQLite database with explicit transactions."""

    def __init__(
        self,
        url: str,
        metadata: Optional[MetaData] = None,
        echo: bool = False,
    ):
        """
        Args:
            url: SQLAlchemy database URL
            metadata: Tables to create when the database is opened
            echo: Log every SQL statement
        """
        self.url = url
        self._metadata = metadata
        self._echo = echo
        self._engine: Optional[Engine] = None
        self._connection: Optional[Connection] = None
        self._transaction: Optional[RootTransaction] = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def open(self) -> "CacheDatabase":
        """Connect and create any missing tables."""
        if self.is_open:
            return self

        self._engine = create_cache_engine(self.url, echo=self._echo)
        try:
            self._connection = self._engine.connect()
            if self._metadata is not None:
                with self._connection.begin():
                    self._metadata.create_all(self._connection)
        except Exception:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
            self._engine.dispose()
            self._engine = None
            raise

        logger.info(f"Cache database opened at {self.url}")
        return self

    def close(self) -> None:
        """Commit any open transaction and release the connection."""
        if not self.is_open:
            return

        try:
            if self.has_open_transaction():
                self.commit_transaction()
            self._connection.close()
        finally:
            self._connection = None
            self._transaction = None
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None

        logger.info(f"Cache database closed at {self.url}")

    def _require_connection(self) -> Connection:
        if self._connection is None:
            raise StoreNotOpenError(self.url)
        return self._connection

    def execute(self, statement, params: Optional[Mapping[str, Any]] = None) -> ResultSet:
        """
        Execute a statement.

        Outside an explicit transaction the statement is committed on its own.

        Args:
            statement: SQLAlchemy Core statement
            params: Values for bound parameters

        Returns:
            ResultSet: Buffered rows and the affected row count
        """
        connection = self._require_connection()
        if self.has_open_transaction():
            return self._collect(connection.execute(statement, params or {}))

        with connection.begin():
            return self._collect(connection.execute(statement, params or {}))

    def raw_exec(self, sql: str) -> int:
        """Execute literal SQL, returning the affected row count."""
        connection = self._require_connection()
        if self.has_open_transaction():
            return connection.exec_driver_sql(sql).rowcount

        with connection.begin():
            return connection.exec_driver_sql(sql).rowcount

    @staticmethod
    def _collect(result) -> ResultSet:
        rows = list(result.all()) if result.returns_rows else []
        return ResultSet(rows=rows, rowcount=result.rowcount)

    def begin_transaction(self) -> None:
        connection = self._require_connection()
        self._transaction = connection.begin()

    def commit_transaction(self) -> None:
        self._require_connection()
        if self._transaction is None:
            return
        try:
            self._transaction.commit()
        finally:
            self._transaction = None

    def rollback_transaction(self) -> None:
        self._require_connection()
        if self._transaction is None:
            return
        try:
            self._transaction.rollback()
        finally:
            self._transaction = None

    def has_open_transaction(self) -> bool:
        return self._transaction is not None and self._transaction.is_active
