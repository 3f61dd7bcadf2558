"""
Cache operations shared by the base handle and its snapshots.

Every operation reads the current instant from ``_now()``: the clock for the
base handle, the frozen instant for a snapshot.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from sqlalchemy import delete, func, select

from kvcache.core.cache.expiry import expired_condition, visibility_conditions
from kvcache.core.cache.models import CacheItem
from kvcache.core.cache.serializer import serialize, unserialize
from kvcache.core.cache.upsert import Ttl, build_upsert, is_expired_on_write, resolve_expiry
from kvcache.core.db.engine import CacheDatabase, ResultSet
from kvcache.utils.datetime import Instant

logger = logging.getLogger(__name__)

T = TypeVar("T")


def glob_to_like(pattern: str) -> str:
    """Convert a glob pattern ("user:*") to a SQL LIKE pattern ("user:%")."""
    escaped = pattern.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return escaped.replace("*", "%").replace("?", "_")


class CacheOperations(ABC):
    """Get/set/has/delete and typed accessors over a ``CacheDatabase``."""

    _db: CacheDatabase
    is_snapshot = False

    @abstractmethod
    def _now(self) -> float:
        """Current instant in Unix seconds."""
        pass

    @abstractmethod
    def as_of_now(self, now: Optional[Instant] = None) -> "CacheOperations":
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _query_items(
        self,
        columns,
        key: Optional[str] = None,
        max_age: Optional[int] = None,
        pattern: Optional[str] = None,
        ordered: bool = False,
    ) -> ResultSet:
        stmt = select(*columns).select_from(CacheItem)
        if key is not None:
            stmt = stmt.where(CacheItem.item_key == key)
        if pattern is not None:
            stmt = stmt.where(CacheItem.item_key.like(glob_to_like(pattern), escape="\\"))
        stmt = stmt.where(*visibility_conditions(self._now(), max_age))
        if ordered:
            stmt = stmt.order_by(CacheItem.item_key)
        return self._db.execute(stmt)

    def set(self, key: str, value: Any, ttl: Ttl = None) -> bool:
        """
        Store a value under a key.

        Args:
            key: Cache key
            value: Any picklable value
            ttl: None (never expires), seconds, a ``timedelta`` or an absolute
                ``datetime``. An expiry that is not in the future deletes the key.

        Returns:
            bool: True

        Raises:
            SerializationError: If the value cannot be encoded
        """
        now = self._now()
        expires_at = resolve_expiry(ttl, now)
        if is_expired_on_write(expires_at, now):
            logger.debug(f"TTL for cache key {key} is not in the future, deleting")
            return self.delete(key)

        self._db.execute(build_upsert(key, serialize(value), expires_at, now))
        return True

    def has(self, key: str, max_age: Optional[int] = None) -> bool:
        """Check if a key is present and, with ``max_age``, fresh enough."""
        result = self._query_items([func.count()], key, max_age)
        return bool(result.scalar())

    def get(self, key: str, default: Any = None, max_age: Optional[int] = None) -> Any:
        """
        Get a value from cache.

        Args:
            key: Cache key
            default: Returned when the key is absent, expired or stale
            max_age: Ignore items last written more than this many seconds ago

        Returns:
            Any: The stored value or ``default``
        """
        result = self._query_items([CacheItem.item_value], key, max_age)
        if not result.rows:
            return default
        return unserialize(result.scalar())

    def delete(self, key: str) -> bool:
        self._db.execute(delete(CacheItem).where(CacheItem.item_key == key))
        return True

    def clear(self) -> bool:
        self._db.raw_exec(f"DELETE FROM {CacheItem.__tablename__}")
        return True

    def clear_expired(self) -> bool:
        """Delete items whose absolute expiry has passed."""
        result = self._db.execute(delete(CacheItem).where(expired_condition(self._now())))
        logger.debug(f"Removed {max(result.rowcount, 0)} expired cache items")
        return True

    def get_multiple(
        self,
        keys: Iterable[str],
        default: Any = None,
        max_age: Optional[int] = None,
    ) -> Dict[str, Any]:
        return {key: self.get(key, default, max_age) for key in keys}

    def set_multiple(
        self,
        values: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]],
        ttl: Ttl = None,
    ) -> bool:
        items = values.items() if isinstance(values, Mapping) else values
        for key, value in items:
            self.set(key, value, ttl)
        return True

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        for key in keys:
            self.delete(key)
        return True

    def get_item_count(self, max_age: Optional[int] = None) -> int:
        result = self._query_items([func.count()], max_age=max_age)
        return int(result.scalar() or 0)

    def get_all_keys(
        self,
        max_age: Optional[int] = None,
        pattern: Optional[str] = None,
    ) -> List[str]:
        """
        Get the keys of all visible items.

        Args:
            max_age: Ignore items last written more than this many seconds ago
            pattern: Optional glob pattern (e.g., "user:*")

        Returns:
            List[str]: Matching keys
        """
        result = self._query_items(
            [CacheItem.item_key], max_age=max_age, pattern=pattern, ordered=True
        )
        return result.scalars()

    # Typed accessors: the existence check and the read share one instant

    @contextmanager
    def _maybe_as_of_now(self) -> Iterator["CacheOperations"]:
        if self.is_snapshot:
            yield self
            return
        with self.as_of_now() as snapshot:
            yield snapshot

    def _get_checked(self, key: str, default, max_age: Optional[int], check) -> Any:
        with self._maybe_as_of_now() as cache:
            if not cache.has(key, max_age):
                return default
            item = cache.get(key, default, max_age)
        return item if check(item) else default

    def get_instance_of(
        self,
        key: str,
        cls: Type[T],
        default: Optional[T] = None,
        max_age: Optional[int] = None,
    ) -> Optional[T]:
        return self._get_checked(key, default, max_age, lambda item: isinstance(item, cls))

    def get_array(
        self,
        key: str,
        default: Optional[Union[list, dict]] = None,
        max_age: Optional[int] = None,
    ) -> Optional[Union[list, dict]]:
        return self._get_checked(
            key, default, max_age, lambda item: isinstance(item, (list, dict))
        )

    def get_int(
        self,
        key: str,
        default: Optional[int] = None,
        max_age: Optional[int] = None,
    ) -> Optional[int]:
        return self._get_checked(
            key,
            default,
            max_age,
            lambda item: isinstance(item, int) and not isinstance(item, bool),
        )

    def get_string(
        self,
        key: str,
        default: Optional[str] = None,
        max_age: Optional[int] = None,
    ) -> Optional[str]:
        return self._get_checked(key, default, max_age, lambda item: isinstance(item, str))
