"""
Connection persistence — durable mirror of the connection store.

``BaseConnectionRepository`` is the collaborator the store writes through;
``SqlConnectionRepository`` implements it on SQLAlchemy's async engine and
encrypts credentials with ``TokenCipher`` before they touch the database.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from connectors.encryption import TokenCipher
from connectors.models import AccountInfo, ConnectionRecord, ConnectionStatus
from database.models import ProviderConnection

logger = logging.getLogger(__name__)


class BaseConnectionRepository(ABC):
    """Durable storage for one connection record per provider."""

    @abstractmethod
    async def load_all(self) -> List[ConnectionRecord]:
        ...

    @abstractmethod
    async def save(self, record: ConnectionRecord) -> None:
        """Insert or replace the record for ``record.provider``."""
        ...

    @abstractmethod
    async def delete(self, provider: str) -> None:
        ...

    @abstractmethod
    async def update_status(
        self,
        provider: str,
        status: ConnectionStatus,
        error: Optional[str] = None,
        last_tested_at: Optional[datetime] = None,
    ) -> None:
        ...


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlConnectionRepository(BaseConnectionRepository):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cipher: Optional[TokenCipher] = None,
    ) -> None:
        self._session_factory = session_factory
        self._cipher = cipher or TokenCipher(None)

    def _to_record(self, row: ProviderConnection) -> ConnectionRecord:
        return ConnectionRecord(
            provider=row.provider,
            token=self._cipher.decrypt(row.token or ""),
            token_label=row.token_label,
            status=ConnectionStatus(row.status),
            account_info=AccountInfo(**row.account_info) if row.account_info else None,
            connected_at=_aware(row.connected_at),
            last_tested_at=_aware(row.last_tested_at),
            error=row.error,
        )

    async def load_all(self) -> List[ConnectionRecord]:
        async with self._session_factory() as session:
            result = await session.execute(select(ProviderConnection))
            rows = result.scalars().all()
        records = []
        for row in rows:
            try:
                records.append(self._to_record(row))
            except ValueError as exc:
                logger.warning("Skipping unreadable connection row %s: %s", row.provider, exc)
        return records

    async def save(self, record: ConnectionRecord) -> None:
        row = ProviderConnection(
            provider=record.provider,
            token=self._cipher.encrypt(record.token),
            token_label=record.token_label,
            status=record.status.value,
            account_info=record.account_info.model_dump(mode="json") if record.account_info else None,
            connected_at=record.connected_at,
            last_tested_at=record.last_tested_at,
            error=record.error,
        )
        async with self._session_factory() as session:
            await session.merge(row)
            await session.commit()

    async def delete(self, provider: str) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(ProviderConnection).where(ProviderConnection.provider == provider))
            await session.commit()

    async def update_status(
        self,
        provider: str,
        status: ConnectionStatus,
        error: Optional[str] = None,
        last_tested_at: Optional[datetime] = None,
    ) -> None:
        values = {"status": status.value, "error": error}
        if last_tested_at is not None:
            values["last_tested_at"] = last_tested_at
        async with self._session_factory() as session:
            await session.execute(
                update(ProviderConnection).where(ProviderConnection.provider == provider).values(**values)
            )
            await session.commit()
