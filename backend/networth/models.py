# backend/networth/models.py
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class KeyValueEntry(Base):
    """
    One document in the key-value persistence substrate.

    The engine stores three documents: user preferences, the holdings list
    and the price-history blob (ticker -> {currency, prices}). Values are
    JSON; the engine treats the table as an opaque get/set store.
    """
    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[dict | list] = mapped_column(JSON)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
