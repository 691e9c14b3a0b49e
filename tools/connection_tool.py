"""
ConnectionTool — the single ``connection`` meta-tool handed to the agent.

Instead of one tool per provider operation, the agent gets one tool taking
``{provider, action, params}``.  ``run`` always returns a string: the
JSON-serialized result, or ``"Error: …"``.  Nothing raised below this
boundary reaches the agent, and the stored credential never does.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from config.settings import Settings, config
from connectors.catalog import ENABLED_PROVIDERS, display_name
from connectors.errors import ConnectionHubError
from connectors.manager import ConnectionManager
from connectors.models import mask_token
from tools.prompts import ConnectionPrompts

logger = logging.getLogger(__name__)

TOOL_NAME = "connection"
TRUNCATION_MARKER = "\n... (truncated)"


class ConnectionTool:
    def __init__(self, manager: ConnectionManager, settings: Optional[Settings] = None) -> None:
        self.manager = manager
        self.settings = settings or config

    @property
    def store(self):
        return self.manager.store

    async def run(
        self,
        provider: str,
        action: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> str:
        if not provider or not action:
            return (
                'Error: Missing provider or action. Use: {"provider": "vercel", '
                '"action": "list_projects", "params": {}}'
            )

        if provider not in ENABLED_PROVIDERS:
            return f'Error: Unknown provider "{provider}". Available: {", ".join(ENABLED_PROVIDERS)}'

        name = display_name(provider)
        if not self.manager.is_service_available(provider):
            return f"Error: {name} service is not yet implemented."

        if not self.store.is_connected(provider):
            return (
                f"Error: Not connected to {name}. "
                "Please ask the user to connect it in Settings > Connections."
            )

        try:
            result = await self.manager.execute_provider_action(provider, action, params or {})
        except ConnectionHubError as exc:
            logger.info("connection %s.%s failed: %s", provider, action, exc.code)
            return self._scrub(provider, f"Error: {exc.message or 'Action failed'}")
        except Exception as exc:
            logger.exception("connection %s.%s raised unexpectedly", provider, action)
            return self._scrub(provider, f"Error: {str(exc) or 'Action failed'}")

        return self._serialize(result)

    def _serialize(self, result: Any) -> str:
        text = json.dumps(result, indent=2, default=str)
        limit = self.settings.connection_tool_max_chars
        if len(text) > limit:
            return text[:limit] + TRUNCATION_MARKER
        return text

    def _scrub(self, provider: str, text: str) -> str:
        conn = self.store.get_connection(provider)
        if conn and conn.token and conn.token in text:
            text = text.replace(conn.token, mask_token(conn.token))
        return text

    # ── Prompt material ─────────────────────────────────────────────────

    def tool_prompt(self) -> str:
        return ConnectionPrompts.capability_listing(self.manager.registry)

    def connections_summary(self) -> str:
        return ConnectionPrompts.connections_summary(self.store)

    @staticmethod
    def definition() -> Dict[str, Any]:
        """JSON-schema description of the tool for function-calling models."""
        return {
            "name": TOOL_NAME,
            "description": (
                "Interact with connected external services. "
                "Specify provider, action, and action-specific params."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "provider": {"type": "string", "enum": list(ENABLED_PROVIDERS)},
                    "action": {"type": "string"},
                    "params": {"type": "object"},
                },
                "required": ["provider", "action"],
            },
        }
