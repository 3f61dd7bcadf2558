"""Cache model for SQLAlchemy"""
from sqlalchemy import Float, Index, LargeBinary, Text
from sqlalchemy.orm import Mapped, mapped_column
from typing import Optional

from kvcache.core.db.base import Base


class CacheItem(Base):
    """Cache table for key-value storage with TTL support

    Timestamps are Unix seconds.
    """

    __tablename__ = "cache_item"

    item_key: Mapped[str] = mapped_column(Text, primary_key=True)
    item_value: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)
    expires_at: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    added_at: Mapped[float] = mapped_column(Float, nullable=False)
    set_at: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (
        Index("idx_cache_item_expires_at", "expires_at"),
        {"sqlite_with_rowid": False},
    )

    def __repr__(self) -> str:
        return f"<CacheItem(key={self.item_key})>"
