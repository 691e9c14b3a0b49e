"""
ConnectionHub — builds and owns the hub's object graph.

    registry ─┐
              ├─▶ manager ─▶ tool
    store ────┘      ▲
      ▲              │
    repository ──────┘ (via store)

``build_hub`` is the one place the graph is assembled; tests pass their own
registry and repository.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from config.settings import Settings, config
from connectors.encryption import TokenCipher
from connectors.manager import ConnectionManager
from connectors.persistence import BaseConnectionRepository, SqlConnectionRepository
from connectors.registry import ConnectorRegistry
from connectors.store import ConnectionStore
from database.session import init_db, make_engine, make_session_factory
from tools.connection_tool import ConnectionTool

logger = logging.getLogger(__name__)


@dataclass
class ConnectionHub:
    settings: Settings
    registry: ConnectorRegistry
    store: ConnectionStore
    manager: ConnectionManager
    tool: ConnectionTool
    engine: Optional[AsyncEngine] = None

    async def start(self) -> Dict[str, bool]:
        """Create tables, hydrate the store and health-check stored credentials."""
        if self.engine is not None:
            await init_db(self.engine)
        await self.store.load_from_db()
        if not self.settings.retest_on_startup:
            return {}
        return await self.manager.retest_all_connections()

    async def close(self) -> None:
        await self.store.drain()
        if self.engine is not None:
            await self.engine.dispose()
        logger.info("Connection hub closed")


def build_hub(
    settings: Optional[Settings] = None,
    repository: Optional[BaseConnectionRepository] = None,
    registry: Optional[ConnectorRegistry] = None,
) -> ConnectionHub:
    settings = settings or config
    engine = None
    if repository is None:
        engine = make_engine(settings)
        repository = SqlConnectionRepository(
            make_session_factory(engine),
            TokenCipher(settings.token_encryption_key),
        )
    registry = registry or ConnectorRegistry.default(settings)
    store = ConnectionStore(repository)
    manager = ConnectionManager(registry, store, settings)
    tool = ConnectionTool(manager, settings)
    logger.info("Connection hub built with %d adapter(s)", len(registry))
    return ConnectionHub(
        settings=settings,
        registry=registry,
        store=store,
        manager=manager,
        tool=tool,
        engine=engine,
    )
