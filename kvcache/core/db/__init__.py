# Export base classes only to avoid circular imports
# Models should be imported from their respective modules, not from here

from kvcache.core.db.base import Base
from kvcache.core.db.engine import CacheDatabase, ResultSet, database_url

__all__ = ["Base", "CacheDatabase", "ResultSet", "database_url"]
