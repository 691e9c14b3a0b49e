"""
BaseConnector — the two-method contract every provider adapter implements.

    test_connection(token)            → AccountInfo
    execute(action, params, token)    → JSON-serializable result

Each subclass owns its base URL, signing convention, envelope unwrapping and
an action table.  Actions are coroutine methods tagged with ``@action`` and a
pydantic parameter model, so the capability listing handed to the agent is
generated from the same table ``execute`` dispatches on.

Adapters open one ``httpx.AsyncClient`` per request and keep no mutable
state, so concurrent calls against the same provider are safe.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from config.settings import Settings, config
from connectors.errors import (
    AuthError,
    InvalidActionParams,
    NetworkError,
    ProviderError,
    UnknownAction,
)
from connectors.models import AccountInfo

logger = logging.getLogger(__name__)

AUTH_STATUSES = frozenset({401, 403})


# ── Typed action model ──────────────────────────────────────────────────


class ActionParams(BaseModel):
    """Base for every action's parameter record."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class NoParams(ActionParams):
    pass


@dataclass(frozen=True)
class ActionSpec:
    name: str
    params: Type[ActionParams]
    summary: str
    handler: Callable[..., Awaitable[Any]]

    def signature(self) -> str:
        """Render the parameter shape, e.g. ``{ owner, repo, ref? }``."""
        keys = [
            (field.alias or name) + ("" if field.is_required() else "?")
            for name, field in self.params.model_fields.items()
        ]
        return "{ " + ", ".join(keys) + " }" if keys else "none"


def action(params: Type[ActionParams] = NoParams, summary: str = "") -> Callable:
    """
    Tag an adapter coroutine as an agent-callable action.

    The handler receives the validated parameter record and the credential:
    ``async def list_repos(self, params: ListRepos, token: str)``.
    """

    def decorator(func: Callable) -> Callable:
        func.is_action = True  # type: ignore[attr-defined]
        func.action_params = params  # type: ignore[attr-defined]
        func.action_summary = summary or (inspect.getdoc(func) or "").split("\n")[0]  # type: ignore[attr-defined]
        return func

    return decorator


def drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


def safe_json(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return {}


def _summarize_validation(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'params'}: {err['msg']}"
        for err in exc.errors()
    )


# ── Base adapter ────────────────────────────────────────────────────────


class BaseConnector(ABC):
    """Abstract base for all provider adapters."""

    base_url: str = ""
    _actions: Dict[str, ActionSpec] = {}

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or config
        self._transport = transport

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        table: Dict[str, ActionSpec] = {}
        for klass in reversed(cls.__mro__):
            for name, fn in vars(klass).items():
                if getattr(fn, "is_action", False):
                    table[name] = ActionSpec(name, fn.action_params, fn.action_summary, fn)
        cls._actions = table

    # ── Identity ────────────────────────────────────────────────────────

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Catalog id: 'github', 'stripe', 'namecheap', …"""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable: 'GitHub', 'Stripe', 'Namecheap', …"""
        ...

    # ── Contract ────────────────────────────────────────────────────────

    @abstractmethod
    async def test_connection(self, token: str) -> AccountInfo:
        """
        Verify the credential against the provider's profile endpoint.

        Raises
        ------
        AuthError    – credential rejected
        NetworkError – provider unreachable
        """
        ...

    async def execute(self, action: str, params: Optional[Dict[str, Any]], token: str) -> Any:
        """
        Run one entry of the action table.

        Raises
        ------
        UnknownAction       – name not in the table
        InvalidActionParams – parameter bag does not match the action's model
        ProviderError       – provider rejected the call (AuthError on 401/403)
        NetworkError        – provider unreachable
        """
        spec = self._actions.get(action)
        if spec is None:
            raise UnknownAction(self.display_name, action, list(self._actions))
        try:
            parsed = spec.params.model_validate(params or {})
        except ValidationError as exc:
            raise InvalidActionParams(
                f"Invalid params for {self.provider_name}.{action}: {_summarize_validation(exc)}",
                {"action": action, "expected": spec.signature()},
            ) from exc
        logger.debug("Executing %s.%s", self.provider_name, action)
        return await spec.handler(self, parsed, token)

    @classmethod
    def actions(cls) -> Dict[str, ActionSpec]:
        return dict(cls._actions)

    # ── HTTP plumbing ───────────────────────────────────────────────────

    def _headers(self, token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "User-Agent": self.settings.user_agent,
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.settings.http_timeout_seconds),
            transport=self._transport,
        )

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Issue one request, retrying transport failures with exponential backoff.

        Only ``NetworkError`` is retried; any HTTP response is returned as-is.
        The URL is never put in the error text (some providers sign via query).
        """
        max_retries = self.settings.network_max_retries
        for attempt in range(max_retries + 1):
            try:
                async with self._client() as client:
                    return await client.request(method, url, **kwargs)
            except httpx.TransportError as exc:
                if attempt >= max_retries:
                    raise NetworkError(
                        f"Could not reach {self.display_name} ({exc.__class__.__name__})",
                        {"provider": self.provider_name, "attempts": attempt + 1},
                    ) from exc
                delay = self.settings.backoff_delay(attempt)
                logger.warning(
                    "%s request failed (%s), retry %d/%d in %.2fs",
                    self.provider_name,
                    exc.__class__.__name__,
                    attempt + 1,
                    max_retries,
                    delay,
                )
                await asyncio.sleep(delay)
        raise AssertionError("unreachable")

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        content: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        request_headers = self._headers(token)
        if headers:
            request_headers.update(headers)
        resp = await self._send(
            method,
            path,
            headers=request_headers,
            json=json,
            params=drop_none(params) if params else None,
            content=content,
        )
        return self._handle(resp)

    def _handle(self, resp: httpx.Response) -> Any:
        if resp.is_success:
            return self._unwrap(resp)
        raise self._error_for(resp)

    def _unwrap(self, resp: httpx.Response) -> Any:
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            raise ProviderError(
                f"{self.display_name} returned a non-JSON response", status=resp.status_code
            ) from None

    def _error_for(self, resp: httpx.Response) -> ProviderError:
        body = safe_json(resp)
        message = self._error_message(body) or f"{self.display_name} API error: {resp.status_code}"
        error_cls = AuthError if resp.status_code in AUTH_STATUSES else ProviderError
        return error_cls(message, status=resp.status_code, provider_code=self._error_code(body))

    def _error_message(self, body: Any) -> Optional[str]:
        """Pull the provider's own error text out of an error body."""
        if isinstance(body, dict):
            return body.get("message")
        return None

    def _error_code(self, body: Any) -> Optional[str]:
        return None

    def action_names(self) -> List[str]:
        return list(self._actions)
