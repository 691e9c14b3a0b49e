"""
Connection hub error hierarchy.

Every failure the hub raises derives from ``ConnectionHubError`` so callers
(the settings router, the connection tool) can catch one type and render it.
Messages must never contain a raw credential.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ConnectionHubError(Exception):
    """Base error for all connection hub failures."""

    code = "CONNECTION_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class UnimplementedProvider(ConnectionHubError):
    """The provider is in the catalog but has no adapter."""

    code = "UNIMPLEMENTED_PROVIDER"

    def __init__(self, provider: str):
        super().__init__(f"Service not implemented: {provider}", {"provider": provider})
        self.provider = provider


class NotConnected(ConnectionHubError):
    """An action was attempted with no stored credential."""

    code = "NOT_CONNECTED"

    def __init__(self, provider: str, display_name: Optional[str] = None):
        name = display_name or provider
        super().__init__(
            f"Not connected to {name}. Please connect in Settings > Connections.",
            {"provider": provider},
        )
        self.provider = provider


class ProviderError(ConnectionHubError):
    """The provider rejected a well-formed call. Its own message is kept verbatim."""

    code = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        provider_code: Optional[str] = None,
    ):
        super().__init__(message, {"status": status, "provider_code": provider_code})
        self.status = status
        self.provider_code = provider_code


class AuthError(ProviderError):
    """The provider rejected the credential (HTTP 401/403 or equivalent)."""

    code = "AUTH_ERROR"


class NetworkError(ConnectionHubError):
    """The provider could not be reached (connect failure, timeout)."""

    code = "NETWORK_ERROR"


class UnknownAction(ConnectionHubError):
    """The action name is absent from the adapter's action table."""

    code = "UNKNOWN_ACTION"

    def __init__(self, display_name: str, action: str, available: List[str]):
        super().__init__(
            f'Unknown {display_name} action: "{action}". Available: {", ".join(available)}',
            {"action": action, "available": available},
        )
        self.action = action
        self.available = available


class InvalidActionParams(ConnectionHubError):
    """The parameter bag did not match the action's declared shape."""

    code = "INVALID_ACTION_PARAMS"


class ConnectionCancelled(ConnectionHubError):
    """The provider was disconnected while its verification was in flight."""

    code = "CONNECTION_CANCELLED"

    def __init__(self, provider: str):
        super().__init__(
            f"Connection to {provider} was cancelled by a disconnect",
            {"provider": provider},
        )
        self.provider = provider
