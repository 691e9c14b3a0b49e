"""
Pydantic models for connection state.

``Connection`` is the in-memory record owned by the ConnectionStore;
``ConnectionRecord`` is the shape mirrored to durable storage.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

_MASK = "•"


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    EXPIRED = "expired"  # credential positively known to be stale


class AccountInfo(BaseModel):
    """Normalized subset of a provider's profile data."""

    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None
    plan: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict)

    def display_label(self) -> str:
        return self.name or self.email or ""


class Connection(BaseModel):
    provider: str
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    token: str = ""
    token_label: Optional[str] = None
    account_info: Optional[AccountInfo] = None
    connected_at: Optional[datetime] = None
    last_tested_at: Optional[datetime] = None
    error: Optional[str] = None

    def public_view(self) -> Dict[str, Any]:
        """Everything except the raw credential."""
        return self.model_dump(mode="json", exclude={"token"})


class ConnectionRecord(BaseModel):
    """Persisted row shape, one per provider."""

    provider: str
    token: str = ""
    token_label: Optional[str] = None
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    account_info: Optional[AccountInfo] = None
    connected_at: Optional[datetime] = None
    last_tested_at: Optional[datetime] = None
    error: Optional[str] = None

    @classmethod
    def from_connection(cls, conn: Connection) -> "ConnectionRecord":
        return cls(**conn.model_dump())

    def to_connection(self) -> Connection:
        status = self.status
        # A verification cannot survive a restart.
        if status == ConnectionStatus.CONNECTING:
            status = ConnectionStatus.DISCONNECTED
        return Connection(**self.model_dump(exclude={"status"}), status=status)


def mask_token(token: str) -> str:
    """Show the first and last 4 characters; fully mask short tokens."""
    if len(token) <= 8:
        return _MASK * 8
    return token[:4] + _MASK * 4 + token[-4:]
