"""
CloudflareConnector — zones, DNS records, cache and Pages.

Token: scoped API token (bearer header).  Every response is wrapped in
``{"success": bool, "errors": [...], "result": ...}``; success is decided
by the envelope, not the HTTP status.
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import Field

from connectors.base import AUTH_STATUSES, ActionParams, BaseConnector, NoParams, action, safe_json
from connectors.errors import AuthError, ProviderError
from connectors.models import AccountInfo

_CF_API = "https://api.cloudflare.com/client/v4"


class ZoneRef(ActionParams):
    zone_id: str = Field(alias="zoneId")


class DnsRecord(ZoneRef):
    type: str
    name: str
    content: str
    ttl: int = 1  # 1 = automatic
    proxied: bool = True


class UpdateDnsRecord(DnsRecord):
    record_id: str = Field(alias="recordId")


class RecordRef(ZoneRef):
    record_id: str = Field(alias="recordId")


class PurgeCache(ZoneRef):
    purge_everything: bool = True


class AccountRef(ActionParams):
    account_id: str = Field(alias="accountId")


class CloudflareConnector(BaseConnector):
    base_url = _CF_API

    @property
    def provider_name(self) -> str:
        return "cloudflare"

    @property
    def display_name(self) -> str:
        return "Cloudflare"

    def _handle(self, resp: httpx.Response) -> Any:
        body = safe_json(resp)
        if isinstance(body, dict) and body.get("success"):
            return body.get("result")
        errors = body.get("errors") if isinstance(body, dict) else None
        first = errors[0] if errors else {}
        message = first.get("message") or f"Cloudflare API error: {resp.status_code}"
        code = str(first["code"]) if first.get("code") is not None else None
        error_cls = AuthError if resp.status_code in AUTH_STATUSES else ProviderError
        raise error_cls(message, status=resp.status_code, provider_code=code)

    async def test_connection(self, token: str) -> AccountInfo:
        verify = await self._request("GET", "/user/tokens/verify", token)
        user = await self._request("GET", "/user", token)
        full_name = f"{user.get('first_name') or ''} {user.get('last_name') or ''}".strip()
        return AccountInfo(
            id=user.get("id"),
            name=full_name or user.get("email"),
            email=user.get("email"),
            extra={
                "tokenStatus": (verify or {}).get("status"),
                "organizations": user.get("organizations"),
            },
        )

    # ── Actions ────────────────────────────────────────────────────────

    @action(NoParams)
    async def list_zones(self, params: NoParams, token: str) -> Any:
        """List all zones."""
        return await self._request("GET", "/zones", token)

    @action(ZoneRef)
    async def get_zone(self, params: ZoneRef, token: str) -> Any:
        """Get a zone."""
        return await self._request("GET", f"/zones/{params.zone_id}", token)

    @action(ZoneRef)
    async def list_dns_records(self, params: ZoneRef, token: str) -> Any:
        """List a zone's DNS records."""
        return await self._request("GET", f"/zones/{params.zone_id}/dns_records", token)

    @action(DnsRecord)
    async def create_dns_record(self, params: DnsRecord, token: str) -> Any:
        """Create a DNS record."""
        return await self._request(
            "POST",
            f"/zones/{params.zone_id}/dns_records",
            token,
            json=params.model_dump(include={"type", "name", "content", "ttl", "proxied"}),
        )

    @action(UpdateDnsRecord)
    async def update_dns_record(self, params: UpdateDnsRecord, token: str) -> Any:
        """Replace a DNS record."""
        return await self._request(
            "PUT",
            f"/zones/{params.zone_id}/dns_records/{params.record_id}",
            token,
            json=params.model_dump(include={"type", "name", "content", "ttl", "proxied"}),
        )

    @action(RecordRef)
    async def delete_dns_record(self, params: RecordRef, token: str) -> Any:
        """Delete a DNS record."""
        return await self._request(
            "DELETE", f"/zones/{params.zone_id}/dns_records/{params.record_id}", token
        )

    @action(PurgeCache)
    async def purge_cache(self, params: PurgeCache, token: str) -> Any:
        """Purge a zone's cache."""
        return await self._request(
            "POST",
            f"/zones/{params.zone_id}/purge_cache",
            token,
            json={"purge_everything": params.purge_everything},
        )

    @action(AccountRef)
    async def list_pages_projects(self, params: AccountRef, token: str) -> Any:
        """List Pages projects for an account."""
        return await self._request("GET", f"/accounts/{params.account_id}/pages/projects", token)

