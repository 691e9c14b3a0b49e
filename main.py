"""
Connections Hub — application entry point.

Builds the hub, mounts the settings router and runs the startup health
check.  The host decides how to serve ``app``.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from config.settings import Settings, config
from connectors.hub import ConnectionHub, build_hub
from connectors.routes import router as connections_router

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "aiosqlite", "sqlalchemy.engine"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, hub: ConnectionHub | None = None) -> FastAPI:
    settings = settings or config
    hub = hub or build_hub(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Loading stored connections…")
        results = await hub.start()
        failed = [p for p, ok in results.items() if not ok]
        if failed:
            logger.warning("Connections needing attention: %s", ", ".join(failed))
        logger.info("Connections hub ready.")
        yield
        await hub.close()

    app = FastAPI(
        title="Connections Hub",
        version="1.0.0",
        description="External service connections for the agent.",
        lifespan=lifespan,
    )
    app.state.hub = hub
    app.include_router(connections_router, prefix="/api/v1/connections")
    return app


app = create_app()
