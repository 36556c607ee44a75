"""
Database schema definitions for the Project Tracker.

Projects are persisted in a single key-value table: one row holds the
project registry (a JSON list of ids) and one row per project holds the
project document.
"""

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class StorageItem(Base):
    """A JSON document stored under a string key."""

    __tablename__ = "storage_items"

    key = Column(String(64), primary_key=True, doc="Storage key (projectRegistry or project_<id>)")
    value = Column(Text, nullable=False, doc="JSON-encoded document")
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), doc="Last write time")

    def __repr__(self) -> str:
        return f"<StorageItem(key='{self.key}', size={len(self.value or '')})>"
