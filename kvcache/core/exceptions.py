"""
Simple exception classes for the cache.
"""


class CacheError(Exception):
    """Base class for all cache errors."""


class SerializationError(CacheError):
    """Raised when a value cannot be encoded or decoded."""

    def __init__(self, message: str):
        super().__init__(f"Serialization failed: {message}")


class AlreadySnapshottedError(CacheError):
    """Raised when a snapshot is requested from a handle that is already one."""

    def __init__(self):
        super().__init__("Calls to as_of_now() cannot be nested")


class TransactionConflictError(CacheError):
    """Raised when a snapshot transaction is already open on the store."""

    def __init__(self):
        super().__init__(
            "as_of_now() cannot be called until the snapshot returned "
            "previously is closed"
        )


class StoreNotOpenError(CacheError):
    """Raised when the database is used before it is opened or after it is closed."""

    def __init__(self, location: str = ""):
        detail = f": {location}" if location else ""
        super().__init__(f"Cache database is not open{detail}")
