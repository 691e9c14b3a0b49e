"""
ConnectionManager — connect, disconnect, retest and execute.

The only component that drives status transitions:

    disconnected ──connect ok──▶ connected ──retest fail / 401──▶ error
    error | expired ──connect──▶ connecting ──▶ connected | error
    any ──disconnect──▶ disconnected

``expired`` is handled exactly like ``error``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from config.settings import Settings, config
from connectors.base import AUTH_STATUSES, BaseConnector
from connectors.catalog import display_name
from connectors.errors import (
    AuthError,
    ConnectionCancelled,
    ConnectionHubError,
    NotConnected,
    ProviderError,
    UnimplementedProvider,
)
from connectors.models import AccountInfo
from connectors.registry import ConnectorRegistry
from connectors.store import ConnectionStore, WriteTask

logger = logging.getLogger(__name__)

RETEST_AUTH_FAILED = "Token expired or invalid"
EXECUTE_AUTH_FAILED = "Token expired or revoked"


def _is_auth_failure(exc: BaseException) -> bool:
    return isinstance(exc, AuthError) or (
        isinstance(exc, ProviderError) and exc.status in AUTH_STATUSES
    )


class ConnectionManager:
    def __init__(
        self,
        registry: ConnectorRegistry,
        store: ConnectionStore,
        settings: Optional[Settings] = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.settings = settings or config

    async def _acknowledge(self, task: WriteTask) -> None:
        if task is None or not self.settings.acknowledge_status_writes:
            return
        if not await task:
            logger.warning("Status write was not acknowledged by the database")

    def _require(self, provider: str) -> BaseConnector:
        connector = self.registry.get(provider)
        if connector is None:
            raise UnimplementedProvider(provider)
        return connector

    # ── Connect / disconnect ────────────────────────────────────────────

    async def connect_provider(self, provider: str, token: str) -> AccountInfo:
        """
        Verify ``token`` and store it.

        Raises
        ------
        UnimplementedProvider – no adapter for ``provider``
        ConnectionCancelled   – disconnected while verification was in flight
        AuthError / ProviderError / NetworkError – verification failed
        """
        connector = self._require(provider)
        generation = self.store.generation(provider)
        self.store.set_connecting(provider)

        try:
            account_info = await connector.test_connection(token)
        except asyncio.CancelledError:
            # Caller went away; never leave the provider in ``connecting``.
            if self.store.generation(provider) == generation:
                self.store.set_error(provider, "Connection cancelled")
            raise
        except Exception as exc:
            if self.store.generation(provider) != generation:
                raise ConnectionCancelled(provider) from exc
            message = str(exc) or "Connection failed"
            await self._acknowledge(self.store.set_error(provider, message))
            logger.info("Connection to %s failed: %s", display_name(provider), message)
            raise

        if self.store.generation(provider) != generation:
            logger.info("Discarding %s verification, provider was disconnected", provider)
            raise ConnectionCancelled(provider)

        await self._acknowledge(self.store.set_connected(provider, token, account_info))
        logger.info(
            "Connected to %s as %s",
            display_name(provider),
            account_info.display_label() or "unknown",
        )
        return account_info

    async def disconnect_provider(self, provider: str) -> None:
        self.store.disconnect(provider)
        logger.info("Disconnected from %s", display_name(provider))

    # ── Health checks ───────────────────────────────────────────────────

    async def retest_connection(self, provider: str) -> bool:
        """Re-verify a stored credential. Never raises."""
        conn = self.store.get_connection(provider)
        connector = self.registry.get(provider)
        if conn is None or not conn.token or connector is None:
            return False

        generation = self.store.generation(provider)
        try:
            account_info = await connector.test_connection(conn.token)
        except Exception as exc:
            if self.store.generation(provider) != generation:
                return False
            message = RETEST_AUTH_FAILED if _is_auth_failure(exc) else (str(exc) or RETEST_AUTH_FAILED)
            logger.warning("Retest of %s failed: %s", provider, message)
            await self._acknowledge(self.store.set_error(provider, message))
            return False

        if self.store.generation(provider) != generation:
            return False
        await self._acknowledge(self.store.set_connected(provider, conn.token, account_info))
        return True

    async def retest_all_connections(self) -> Dict[str, bool]:
        """Retest every connected provider concurrently."""
        providers = self.store.get_connected_providers()
        if not providers:
            return {}
        results = await asyncio.gather(
            *(self.retest_connection(p) for p in providers),
            return_exceptions=True,
        )
        outcome: Dict[str, bool] = {}
        for provider, result in zip(providers, results):
            if isinstance(result, BaseException):
                logger.error("Retest of %s raised: %s", provider, result)
                outcome[provider] = False
            else:
                outcome[provider] = result
        logger.info(
            "Retested %d connection(s), %d healthy",
            len(outcome),
            sum(outcome.values()),
        )
        return outcome

    # ── Agent path ──────────────────────────────────────────────────────

    async def execute_provider_action(
        self,
        provider: str,
        action: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Run one adapter action with the stored credential.

        A 401/403 from the provider downgrades the connection to ``error``
        before the failure is re-raised.
        """
        connector = self._require(provider)
        token = self.store.get_token(provider)
        if not token:
            raise NotConnected(provider, display_name(provider))

        generation = self.store.generation(provider)
        try:
            return await connector.execute(action, params or {}, token)
        except ConnectionHubError as exc:
            if _is_auth_failure(exc) and self.store.generation(provider) == generation:
                await self._acknowledge(self.store.set_error(provider, EXECUTE_AUTH_FAILED))
                logger.warning("%s rejected the stored credential, marked as error", provider)
            raise

    # ── Introspection ───────────────────────────────────────────────────

    def get_connector(self, provider: str) -> Optional[BaseConnector]:
        return self.registry.get(provider)

    def is_service_available(self, provider: str) -> bool:
        return self.registry.has(provider)
