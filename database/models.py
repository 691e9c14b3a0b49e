"""
SQLAlchemy ORM models for the connections table.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class ProviderConnection(Base):
    __tablename__ = "connections"

    provider = Column(String(32), primary_key=True)
    token = Column(Text, nullable=False, default="")  # Fernet ciphertext when a key is set
    token_label = Column(String(64))
    status = Column(String(16), nullable=False, default="disconnected")
    account_info = Column(JSON)
    connected_at = Column(DateTime(timezone=True))
    last_tested_at = Column(DateTime(timezone=True))
    error = Column(Text)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
