from .service import CacheStore
from .snapshot import CacheSnapshot
from .models import CacheItem

__all__ = ["CacheStore", "CacheSnapshot", "CacheItem"]
