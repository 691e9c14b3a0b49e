"""
Connection tool prompts — capability listing and connected-services summary.

Both are generated from live state: the listing from the adapters' action
tables, the summary from the connection store.
"""

from __future__ import annotations

from typing import List

from connectors.catalog import ENABLED_PROVIDERS, display_name
from connectors.registry import ConnectorRegistry
from connectors.store import ConnectionStore

NO_CONNECTIONS = "No external services connected. User can connect services in Settings > Connections."


class ConnectionPrompts:

    @staticmethod
    def capability_listing(registry: ConnectorRegistry) -> str:
        sections: List[str] = []
        for provider in ENABLED_PROVIDERS:
            specs = registry.capabilities(provider)
            if not specs:
                continue
            lines = [f"### {provider}"]
            for spec in specs:
                signature = spec.signature()
                params = f" Params: {signature}" if signature != "none" else ""
                lines.append(f"- {spec.name}: {spec.summary}{params}")
            sections.append("\n".join(lines))
        actions = "\n\n".join(sections)

        return f"""## connection
Use this tool to interact with connected external services (hosting, source control, databases, payments, email, domains).
This is a meta-tool — specify the provider, action, and parameters.

**Parameters:**
- provider: string (required) — The service name: {", ".join(ENABLED_PROVIDERS)}
- action: string (required) — The action to perform (varies by provider)
- params: object (optional) — Action-specific parameters

**Available actions by provider:**

{actions}

**IMPORTANT:** Before using any provider, check if it's connected. If not, tell the user to connect it in Settings > Connections.
"""

    @staticmethod
    def connections_summary(store: ConnectionStore) -> str:
        connected = store.get_connected_providers()
        if not connected:
            return NO_CONNECTIONS

        lines = []
        for provider in connected:
            conn = store.get_connection(provider)
            label = conn.account_info.display_label() if conn and conn.account_info else ""
            lines.append(f"- {display_name(provider)}: Connected" + (f" ({label})" if label else ""))

        return (
            "Connected services:\n"
            + "\n".join(lines)
            + '\n\nUse the "connection" tool to interact with these services.'
        )
