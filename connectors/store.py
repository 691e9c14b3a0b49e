"""
ConnectionStore — authoritative in-memory connection state.

Every mutator updates the map synchronously and schedules a write to the
repository.  Writes for one provider run one at a time, in the order the
mutations happened.  A failed write is logged and never rolls back memory;
the database is a mirror, not the source of truth.

Mutators return the scheduled write task (or ``None`` when nothing was
scheduled) so a caller that needs the write to be durable can await it.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from connectors.models import (
    AccountInfo,
    Connection,
    ConnectionRecord,
    ConnectionStatus,
    mask_token,
)
from connectors.persistence import BaseConnectionRepository

logger = logging.getLogger(__name__)

WriteTask = Optional["asyncio.Task[bool]"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionStore:
    def __init__(self, repository: Optional[BaseConnectionRepository] = None) -> None:
        self._repo = repository
        self._connections: Dict[str, Connection] = {}
        self._generations: Dict[str, int] = defaultdict(int)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._pending: Set[asyncio.Task] = set()

    # ── Persistence plumbing ────────────────────────────────────────────

    def _schedule(self, provider: str, what: str, write: Callable[[], Awaitable[None]]) -> WriteTask:
        if self._repo is None:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, %s for %s not persisted", what, provider)
            return None
        task = loop.create_task(self._write(provider, what, write))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _write(self, provider: str, what: str, write: Callable[[], Awaitable[None]]) -> bool:
        lock = self._locks.setdefault(provider, asyncio.Lock())
        async with lock:
            try:
                await write()
            except Exception as exc:
                logger.warning("Failed to persist %s for %s: %s", what, provider, exc)
                return False
        return True

    def _save(self, conn: Connection, what: str) -> WriteTask:
        record = ConnectionRecord.from_connection(conn)
        return self._schedule(conn.provider, what, lambda: self._repo.save(record))

    # ── Mutators ────────────────────────────────────────────────────────

    def set_connecting(self, provider: str) -> WriteTask:
        existing = self._connections.get(provider)
        if existing:
            conn = existing.model_copy(update={"status": ConnectionStatus.CONNECTING, "error": None})
        else:
            conn = Connection(provider=provider, status=ConnectionStatus.CONNECTING)
        self._connections[provider] = conn
        return self._save(conn, "connecting state")

    def set_connected(self, provider: str, token: str, account_info: AccountInfo) -> WriteTask:
        now = _now()
        existing = self._connections.get(provider)
        conn = Connection(
            provider=provider,
            status=ConnectionStatus.CONNECTED,
            token=token,
            token_label=mask_token(token),
            account_info=account_info,
            connected_at=(existing.connected_at if existing else None) or now,
            last_tested_at=now,
            error=None,
        )
        self._connections[provider] = conn
        return self._save(conn, "connection")

    def set_error(self, provider: str, error: str) -> WriteTask:
        existing = self._connections.get(provider)
        if existing is None:
            conn = Connection(provider=provider, status=ConnectionStatus.ERROR, error=error)
            self._connections[provider] = conn
            return self._save(conn, "error state")
        self._connections[provider] = existing.model_copy(
            update={"status": ConnectionStatus.ERROR, "error": error}
        )
        return self._schedule(
            provider,
            "error state",
            lambda: self._repo.update_status(provider, ConnectionStatus.ERROR, error),
        )

    def disconnect(self, provider: str) -> WriteTask:
        self._connections.pop(provider, None)
        self._generations[provider] += 1
        return self._schedule(provider, "disconnect", lambda: self._repo.delete(provider))

    def update_account_info(self, provider: str, info: Dict[str, Any]) -> WriteTask:
        """Merge ``info`` into the stored account info; no-op if not stored."""
        existing = self._connections.get(provider)
        if existing is None:
            return None
        current = existing.account_info.model_dump() if existing.account_info else {}
        merged = AccountInfo(**{**current, **info})
        conn = existing.model_copy(update={"account_info": merged})
        self._connections[provider] = conn
        return self._save(conn, "account info")

    # ── Queries ─────────────────────────────────────────────────────────

    def get_connection(self, provider: str) -> Optional[Connection]:
        return self._connections.get(provider)

    def get_status(self, provider: str) -> ConnectionStatus:
        conn = self._connections.get(provider)
        return conn.status if conn else ConnectionStatus.DISCONNECTED

    def is_connected(self, provider: str) -> bool:
        return self.get_status(provider) == ConnectionStatus.CONNECTED

    def get_connected_providers(self) -> List[str]:
        return [p for p, c in self._connections.items() if c.status == ConnectionStatus.CONNECTED]

    def get_token(self, provider: str) -> Optional[str]:
        """The credential, only while the provider is connected."""
        conn = self._connections.get(provider)
        if conn and conn.status == ConnectionStatus.CONNECTED and conn.token:
            return conn.token
        return None

    def generation(self, provider: str) -> int:
        """Counter bumped by every disconnect of ``provider``."""
        return self._generations[provider]

    def snapshot(self) -> List[Dict[str, Any]]:
        """Token-free view of every stored connection."""
        return [conn.public_view() for conn in self._connections.values()]

    # ── Lifecycle ───────────────────────────────────────────────────────

    async def load_from_db(self) -> int:
        """Hydrate the map from the repository. Returns the number loaded."""
        if self._repo is None:
            return 0
        try:
            records = await self._repo.load_all()
        except Exception as exc:
            logger.error("Failed to load connections from database: %s", exc)
            return 0
        loaded = 0
        for record in records:
            if record.provider in self._connections:
                continue
            self._connections[record.provider] = record.to_connection()
            loaded += 1
        logger.info("Loaded %d stored connection(s)", loaded)
        return loaded

    async def drain(self) -> None:
        """Wait for every outstanding write."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
