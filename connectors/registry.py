"""
ConnectorRegistry — provider id → adapter instance.

Built once at process start and handed to the manager and the connection
tool.  Tests construct their own registry with fake adapters.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

import httpx

from config.settings import Settings, config
from connectors.base import ActionSpec, BaseConnector
from connectors.cloudflare import CloudflareConnector
from connectors.github import GitHubConnector
from connectors.namecheap import NamecheapConnector
from connectors.netlify import NetlifyConnector
from connectors.sendgrid import SendGridConnector
from connectors.stripe import StripeConnector
from connectors.supabase import SupabaseConnector
from connectors.vercel import VercelConnector

logger = logging.getLogger(__name__)

# ── All implemented adapters, add new ones here ──────────────────────────

_ALL_CONNECTORS = (
    GitHubConnector,
    VercelConnector,
    NetlifyConnector,
    SupabaseConnector,
    StripeConnector,
    SendGridConnector,
    NamecheapConnector,
    CloudflareConnector,
)


class ConnectorRegistry:
    """Registry of service adapters keyed by provider id."""

    def __init__(self, connectors: Iterable[BaseConnector] = ()) -> None:
        self._connectors: Dict[str, BaseConnector] = {}
        for conn in connectors:
            self.register(conn)

    @classmethod
    def default(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ConnectorRegistry":
        """Build the registry with every implemented adapter."""
        settings = settings or config
        return cls(conn_cls(settings, transport) for conn_cls in _ALL_CONNECTORS)

    def register(self, connector: BaseConnector) -> None:
        self._connectors[connector.provider_name] = connector
        logger.debug(
            "Connector registered: %s (%s, %d actions)",
            connector.display_name,
            connector.provider_name,
            len(connector.action_names()),
        )

    def get(self, provider: str) -> Optional[BaseConnector]:
        """Get a connector by provider name."""
        return self._connectors.get(provider)

    def has(self, provider: str) -> bool:
        return provider in self._connectors

    def providers(self) -> List[str]:
        """Return provider ids in registration order."""
        return list(self._connectors)

    def capabilities(self, provider: str) -> List[ActionSpec]:
        conn = self._connectors.get(provider)
        return list(conn.actions().values()) if conn else []

    def __len__(self) -> int:
        return len(self._connectors)
