"""
Shared fakes: an in-memory repository and a scriptable adapter.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest

from config.settings import Settings
from connectors.base import ActionParams, BaseConnector, action
from connectors.manager import ConnectionManager
from connectors.models import AccountInfo, ConnectionRecord, ConnectionStatus
from connectors.persistence import BaseConnectionRepository
from connectors.registry import ConnectorRegistry
from connectors.store import ConnectionStore
from tools.connection_tool import ConnectionTool


class MemoryRepository(BaseConnectionRepository):
    def __init__(self, records: Optional[List[ConnectionRecord]] = None):
        self.records: Dict[str, ConnectionRecord] = {r.provider: r for r in records or []}
        self.calls: List[tuple] = []

    async def load_all(self) -> List[ConnectionRecord]:
        return list(self.records.values())

    async def save(self, record: ConnectionRecord) -> None:
        self.calls.append(("save", record.provider, record.status))
        self.records[record.provider] = record

    async def delete(self, provider: str) -> None:
        self.calls.append(("delete", provider))
        self.records.pop(provider, None)

    async def update_status(
        self,
        provider: str,
        status: ConnectionStatus,
        error: Optional[str] = None,
        last_tested_at: Optional[datetime] = None,
    ) -> None:
        self.calls.append(("update_status", provider, status))
        if provider in self.records:
            self.records[provider] = self.records[provider].model_copy(
                update={"status": status, "error": error}
            )


class FailingRepository(BaseConnectionRepository):
    async def load_all(self):
        raise RuntimeError("database is locked")

    async def save(self, record):
        raise RuntimeError("database is locked")

    async def delete(self, provider):
        raise RuntimeError("database is locked")

    async def update_status(self, provider, status, error=None, last_tested_at=None):
        raise RuntimeError("database is locked")


class Echo(ActionParams):
    message: str
    count: int = 1


class FakeConnector(BaseConnector):
    """Adapter whose verification and action outcomes are set by the test."""

    def __init__(self, provider: str = "github", display: str = "GitHub"):
        super().__init__(Settings(network_max_retries=0, network_backoff_seconds=0))
        self._provider = provider
        self._display = display
        self.account = AccountInfo(id="1", name="octo", email="octo@example.com")
        self.verify_error: Optional[Exception] = None
        self.action_error: Optional[Exception] = None
        self.result: Any = None
        self.gate: Optional[asyncio.Event] = None
        self.verify_calls: List[str] = []

    @property
    def provider_name(self) -> str:
        return self._provider

    @property
    def display_name(self) -> str:
        return self._display

    async def test_connection(self, token: str) -> AccountInfo:
        self.verify_calls.append(token)
        if self.gate is not None:
            await self.gate.wait()
        if self.verify_error is not None:
            raise self.verify_error
        return self.account

    @action(Echo)
    async def echo(self, params: Echo, token: str) -> Any:
        """Echo the message back."""
        if self.action_error is not None:
            raise self.action_error
        if self.result is not None:
            return self.result
        return {"message": params.message, "count": params.count}


@pytest.fixture
def settings():
    return Settings(
        acknowledge_status_writes=True,
        network_max_retries=0,
        network_backoff_seconds=0,
        retest_on_startup=False,
    )


@pytest.fixture
def repo():
    return MemoryRepository()


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def store(repo):
    return ConnectionStore(repo)


@pytest.fixture
def manager(connector, store, settings):
    return ConnectionManager(ConnectorRegistry([connector]), store, settings)


@pytest.fixture
def tool(manager, settings):
    return ConnectionTool(manager, settings)
