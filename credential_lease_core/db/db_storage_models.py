"""
SQLAlchemy model backing SQLStorage.

One row per storage key; the value is the record's JSON text.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from .db_config import Base


def utc_now():
    """Return current UTC time with timezone info attached."""
    return datetime.now(timezone.utc)


class TimestampMixin:
    """Simple mixin for created_at/updated_at timestamps."""

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)


class StorageRecord(Base, TimestampMixin):
    __tablename__ = "storage_records"

    key = Column(String(512), primary_key=True)
    value = Column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<StorageRecord(key='{self.key}')>"
