"""
Database tables: a single key/value table of JSON snapshots.

Design:
  - One row per collection (links, accounts, session), keyed by name
  - Rows are overwritten whole on every mutation; there is no row-per-link
"""

from sqlalchemy import Column, DateTime, String, Text, func
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class Blob(Base):
    __tablename__ = "blobs"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self):
        return f"<Blob {self.key} ({len(self.value or '')} bytes)>"
