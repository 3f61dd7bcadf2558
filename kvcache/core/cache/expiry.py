"""
Visibility of cache items.

An item is visible when its absolute expiry, if any, is still in the future
and, when a ``max_age`` window is given, it was last written less than
``max_age`` seconds ago. The window only ever narrows what the expiry allows.
"""

from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.sql.elements import ColumnElement

from kvcache.core.cache.models import CacheItem


def _check_max_age(max_age: Optional[int]) -> None:
    if max_age is not None and max_age < 0:
        raise ValueError(f"max_age must not be negative, got {max_age}")


def is_visible(item: CacheItem, now: float, max_age: Optional[int] = None) -> bool:
    """
    Check whether an item is present at ``now``.

    Args:
        item: Stored item
        now: Evaluation time in Unix seconds
        max_age: Staleness window in seconds; None or 0 applies no window

    Returns:
        bool: True if the item is visible
    """
    _check_max_age(max_age)

    if item.expires_at is not None and item.expires_at <= now:
        return False
    if max_age:
        return item.set_at + max_age > now
    return True


def visibility_conditions(now: float, max_age: Optional[int] = None) -> List[ColumnElement]:
    """Build the WHERE clauses equivalent to ``is_visible``."""
    _check_max_age(max_age)

    conditions = [
        or_(CacheItem.expires_at.is_(None), CacheItem.expires_at > now),
    ]
    if max_age:
        conditions.append(CacheItem.set_at > now - max_age)
    return conditions


def expired_condition(now: float) -> ColumnElement:
    """Items whose absolute expiry has passed. Items without one never match."""
    return CacheItem.expires_at <= now
