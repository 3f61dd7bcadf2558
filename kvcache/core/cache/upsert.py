"""
Expiry resolution and the conditional insert-or-update write.
"""

from datetime import datetime, timedelta
from typing import Optional, Union

from sqlalchemy import case, or_
from sqlalchemy.dialects.sqlite import insert

from kvcache.core.cache.models import CacheItem
from kvcache.utils.datetime import to_timestamp

Ttl = Union[None, int, timedelta, datetime]


def resolve_expiry(ttl: Ttl, now: float) -> Optional[float]:
    """
    Turn a TTL into an absolute expiry.

    Args:
        ttl: None (never expires), seconds, a duration or an absolute instant
        now: Current time in Unix seconds

    Returns:
        Optional[float]: Expiry in Unix seconds, or None if the item never expires
    """
    if ttl is None:
        return None
    if isinstance(ttl, timedelta):
        return now + ttl.total_seconds()
    if isinstance(ttl, datetime):
        return to_timestamp(ttl)
    if isinstance(ttl, int) and not isinstance(ttl, bool):
        return now + ttl
    raise TypeError(f"Invalid TTL type: {type(ttl).__name__}")


def is_expired_on_write(expires_at: Optional[float], now: float) -> bool:
    """A write whose expiry is not in the future is a delete."""
    return expires_at is not None and expires_at <= now


def build_upsert(key: str, payload: bytes, expires_at: Optional[float], now: float):
    """
    Insert an item, or update it only if its value or expiry differ.

    ``added_at`` is written on insert only. ``set_at`` moves with the update,
    never below ``added_at`` (a snapshot may be frozen before the insert), and
    an identical rewrite matches no row, so it stays put.
    """
    stmt = insert(CacheItem).values(
        item_key=key,
        item_value=payload,
        expires_at=expires_at,
        added_at=now,
        set_at=now,
    )
    excluded = stmt.excluded
    return stmt.on_conflict_do_update(
        index_elements=["item_key"],
        set_={
            "item_value": excluded.item_value,
            "expires_at": excluded.expires_at,
            "set_at": case(
                (CacheItem.added_at > excluded.set_at, CacheItem.added_at),
                else_=excluded.set_at,
            ),
        },
        where=or_(
            CacheItem.item_value.is_distinct_from(excluded.item_value),
            CacheItem.expires_at.is_distinct_from(excluded.expires_at),
        ),
    )
