"""
Connection API routes — catalog, connect, retest, disconnect.

Backs the Settings > Connections screen.  The host app mounts the router
(e.g. under /api/v1/connections) and puts the hub on ``app.state.hub``.
Responses never contain a raw credential.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from connectors.catalog import get_provider, providers_by_category
from connectors.errors import (
    ConnectionCancelled,
    NetworkError,
    ProviderError,
    UnimplementedProvider,
)
from connectors.hub import ConnectionHub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["connections"])


class ConnectRequest(BaseModel):
    token: str


def get_hub(request: Request) -> ConnectionHub:
    return request.app.state.hub


def _known(provider: str) -> None:
    if get_provider(provider) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Provider '{provider}' not found",
        )


def _connection_view(hub: ConnectionHub, provider: str) -> Dict[str, Any]:
    conn = hub.store.get_connection(provider)
    if conn is None:
        return {"provider": provider, "status": hub.store.get_status(provider).value}
    return conn.public_view()


# ── Routes ─────────────────────────────────────────────────────────────


@router.get("/providers")
async def list_providers(hub: ConnectionHub = Depends(get_hub)) -> List[Dict[str, Any]]:
    """Catalog grouped by category, with implementation flag and status."""
    return [
        {
            "category": label,
            "providers": [
                {
                    **p.model_dump(mode="json"),
                    "implemented": hub.manager.is_service_available(p.id),
                    "status": hub.store.get_status(p.id).value,
                }
                for p in descriptors
            ],
        }
        for label, descriptors in providers_by_category()
    ]


@router.get("/connections")
async def list_connections(hub: ConnectionHub = Depends(get_hub)) -> List[Dict[str, Any]]:
    """Masked connection snapshots."""
    return hub.store.snapshot()


@router.get("/capabilities")
async def capabilities(hub: ConnectionHub = Depends(get_hub)) -> Dict[str, str]:
    return {"prompt": hub.tool.tool_prompt(), "summary": hub.tool.connections_summary()}


@router.post("/retest-all")
async def retest_all(hub: ConnectionHub = Depends(get_hub)) -> Dict[str, bool]:
    return await hub.manager.retest_all_connections()


@router.post("/{provider}/connect")
async def connect(
    provider: str,
    body: ConnectRequest,
    hub: ConnectionHub = Depends(get_hub),
) -> Dict[str, Any]:
    """
    Verify and store a credential.

    404 unknown provider · 501 no adapter · 400 credential rejected ·
    502 provider unreachable · 409 disconnected mid-verification
    """
    _known(provider)
    token = body.token.strip()
    if not token:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Token must not be empty")
    try:
        await hub.manager.connect_provider(provider, token)
    except UnimplementedProvider as exc:
        raise HTTPException(status.HTTP_501_NOT_IMPLEMENTED, exc.message)
    except ConnectionCancelled as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, exc.message)
    except NetworkError as exc:
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, exc.message)
    except ProviderError as exc:
        logger.error("Connect failed for %s: %s", provider, exc.message)
        raise HTTPException(status.HTTP_400_BAD_REQUEST, exc.message)
    logger.info("Connected: provider=%s", provider)
    return _connection_view(hub, provider)


@router.post("/{provider}/retest")
async def retest(provider: str, hub: ConnectionHub = Depends(get_hub)) -> Dict[str, Any]:
    _known(provider)
    ok = await hub.manager.retest_connection(provider)
    return {"ok": ok, "connection": _connection_view(hub, provider)}


@router.delete("/{provider}")
async def disconnect(provider: str, hub: ConnectionHub = Depends(get_hub)) -> Dict[str, str]:
    _known(provider)
    await hub.manager.disconnect_provider(provider)
    logger.info("Disconnected: provider=%s", provider)
    return {"status": "disconnected", "provider": provider}
