"""
NetlifyConnector — sites, deploys, forms and environment variables.

Token: personal access token (bearer header).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field

from connectors.base import ActionParams, BaseConnector, NoParams, action
from connectors.models import AccountInfo

_NETLIFY_API = "https://api.netlify.com/api/v1"


class SiteRef(ActionParams):
    site_id: str = Field(alias="siteId")


class CreateSite(ActionParams):
    name: Optional[str] = None
    custom_domain: Optional[str] = None


class DeploySite(SiteRef):
    files: Dict[str, str]  # path → sha1 digest


class FormRef(ActionParams):
    form_id: str = Field(alias="formId")


class SetEnv(SiteRef):
    key: str
    values: List[Dict[str, Any]]  # [{value, context}]


class NetlifyConnector(BaseConnector):
    base_url = _NETLIFY_API

    @property
    def provider_name(self) -> str:
        return "netlify"

    @property
    def display_name(self) -> str:
        return "Netlify"

    async def test_connection(self, token: str) -> AccountInfo:
        user = await self._request("GET", "/user", token)
        sites = await self._request("GET", "/sites", token)
        return AccountInfo(
            id=user.get("id"),
            name=user.get("full_name") or user.get("email"),
            email=user.get("email"),
            avatar=user.get("avatar_url"),
            extra={
                "slug": user.get("slug"),
                "site_count": len(sites) if isinstance(sites, list) else 0,
            },
        )

    @action(NoParams)
    async def list_sites(self, params: NoParams, token: str) -> Any:
        """List all sites."""
        return await self._request("GET", "/sites", token)

    @action(SiteRef)
    async def get_site(self, params: SiteRef, token: str) -> Any:
        """Get a site."""
        return await self._request("GET", f"/sites/{params.site_id}", token)

    @action(CreateSite)
    async def create_site(self, params: CreateSite, token: str) -> Any:
        """Create a site."""
        return await self._request("POST", "/sites", token, json=params.model_dump(exclude_none=True))

    @action(DeploySite)
    async def deploy_site(self, params: DeploySite, token: str) -> Any:
        """Start a digest deploy ({path: sha1})."""
        return await self._request(
            "POST", f"/sites/{params.site_id}/deploys", token, json={"files": params.files}
        )

    @action(SiteRef)
    async def list_deploys(self, params: SiteRef, token: str) -> Any:
        """List a site's deploys."""
        return await self._request("GET", f"/sites/{params.site_id}/deploys", token)

    @action(SiteRef)
    async def list_forms(self, params: SiteRef, token: str) -> Any:
        """List a site's forms."""
        return await self._request("GET", f"/sites/{params.site_id}/forms", token)

    @action(FormRef)
    async def list_submissions(self, params: FormRef, token: str) -> Any:
        """List form submissions."""
        return await self._request("GET", f"/forms/{params.form_id}/submissions", token)

    @action(SetEnv)
    async def set_env(self, params: SetEnv, token: str) -> Any:
        """Set an env var for a site."""
        return await self._request(
            "PUT",
            f"/accounts/me/env/{params.key}",
            token,
            params={"site_id": params.site_id},
            json={"key": params.key, "values": params.values},
        )

    @action(SiteRef)
    async def list_env(self, params: SiteRef, token: str) -> Any:
        """List a site's env vars."""
        return await self._request("GET", "/accounts/me/env", token, params={"site_id": params.site_id})

    @action(NoParams)
    async def get_dns_zones(self, params: NoParams, token: str) -> Any:
        """List DNS zones."""
        return await self._request("GET", "/dns_zones", token)
