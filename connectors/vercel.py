"""
VercelConnector — projects, deployments, env vars and domains.

Token: access token from https://vercel.com/account/tokens (bearer header).
Verification: ``GET /v2/user``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from connectors.base import ActionParams, BaseConnector, NoParams, action
from connectors.models import AccountInfo

_VERCEL_API = "https://api.vercel.com"


class DeployFile(BaseModel):
    file: str
    data: str


class EnvVar(BaseModel):
    key: str
    value: str
    target: List[str] = Field(default_factory=lambda: ["production", "preview", "development"])
    type: str = "encrypted"


class ListProjects(ActionParams):
    limit: int = 20


class ProjectRef(ActionParams):
    project_id: str = Field(alias="projectId")


class CreateProject(ActionParams):
    name: str
    framework: Optional[str] = None
    git_repository: Optional[Dict[str, Any]] = Field(default=None, alias="gitRepository")


class Deploy(ActionParams):
    name: str
    files: List[DeployFile]
    project_settings: Optional[Dict[str, Any]] = Field(default=None, alias="projectSettings")
    target: str = "production"


class DeploymentRef(ActionParams):
    deployment_id: str = Field(alias="deploymentId")


class ListDeployments(ProjectRef):
    limit: int = 10
    target: Optional[str] = None


class SetEnv(ProjectRef):
    env_vars: List[EnvVar] = Field(alias="envVars")


class DeleteEnv(ProjectRef):
    env_id: str = Field(alias="envId")


class ProjectDomain(ProjectRef):
    domain: str


class DomainRef(ActionParams):
    domain: str


class VercelConnector(BaseConnector):
    base_url = _VERCEL_API

    @property
    def provider_name(self) -> str:
        return "vercel"

    @property
    def display_name(self) -> str:
        return "Vercel"

    def _error_message(self, body: Any) -> Optional[str]:
        if isinstance(body, dict):
            return (body.get("error") or {}).get("message")
        return None

    def _error_code(self, body: Any) -> Optional[str]:
        if isinstance(body, dict):
            return (body.get("error") or {}).get("code")
        return None

    async def test_connection(self, token: str) -> AccountInfo:
        data = await self._request("GET", "/v2/user", token)
        user = data.get("user") or data
        return AccountInfo(
            id=user.get("id"),
            name=user.get("name") or user.get("username"),
            email=user.get("email"),
            avatar=user.get("avatar"),
            extra={
                "username": user.get("username"),
                "softBlock": user.get("softBlock"),
            },
        )

    # ── Actions ────────────────────────────────────────────────────────

    @action(ListProjects)
    async def list_projects(self, params: ListProjects, token: str) -> Any:
        """List projects."""
        return await self._request("GET", "/v9/projects", token, params={"limit": params.limit})

    @action(ProjectRef)
    async def get_project(self, params: ProjectRef, token: str) -> Any:
        """Get a project."""
        return await self._request("GET", f"/v9/projects/{params.project_id}", token)

    @action(CreateProject)
    async def create_project(self, params: CreateProject, token: str) -> Any:
        """Create a project, optionally linked to a git repo."""
        body = params.model_dump(by_alias=True, exclude_none=True)
        return await self._request("POST", "/v10/projects", token, json=body)

    @action(Deploy)
    async def deploy(self, params: Deploy, token: str) -> Any:
        """Deploy inline files ({file, data})."""
        body = {
            "name": params.name,
            "files": [f.model_dump() for f in params.files],
            "target": params.target,
        }
        if params.project_settings:
            body["projectSettings"] = params.project_settings
        return await self._request("POST", "/v13/deployments", token, json=body)

    @action(DeploymentRef)
    async def get_deployment(self, params: DeploymentRef, token: str) -> Any:
        """Get deployment status."""
        return await self._request("GET", f"/v13/deployments/{params.deployment_id}", token)

    @action(ListDeployments)
    async def list_deployments(self, params: ListDeployments, token: str) -> Any:
        """List deployments for a project."""
        return await self._request(
            "GET",
            "/v6/deployments",
            token,
            params={"projectId": params.project_id, "limit": params.limit, "target": params.target},
        )

    @action(SetEnv)
    async def set_env(self, params: SetEnv, token: str) -> Any:
        """Set env vars ({key, value, target})."""
        return await self._request(
            "POST",
            f"/v10/projects/{params.project_id}/env",
            token,
            json=[e.model_dump() for e in params.env_vars],
        )

    @action(ProjectRef)
    async def list_env(self, params: ProjectRef, token: str) -> Any:
        """List env vars."""
        return await self._request("GET", f"/v9/projects/{params.project_id}/env", token)

    @action(DeleteEnv)
    async def delete_env(self, params: DeleteEnv, token: str) -> Any:
        """Delete an env var."""
        return await self._request(
            "DELETE", f"/v9/projects/{params.project_id}/env/{params.env_id}", token
        )

    @action(ProjectRef)
    async def list_domains(self, params: ProjectRef, token: str) -> Any:
        """List a project's domains."""
        return await self._request("GET", f"/v9/projects/{params.project_id}/domains", token)

    @action(ProjectDomain)
    async def add_domain(self, params: ProjectDomain, token: str) -> Any:
        """Add a domain to a project."""
        return await self._request(
            "POST",
            f"/v10/projects/{params.project_id}/domains",
            token,
            json={"name": params.domain},
        )

    @action(ProjectDomain)
    async def remove_domain(self, params: ProjectDomain, token: str) -> Any:
        """Remove a domain from a project."""
        return await self._request(
            "DELETE", f"/v9/projects/{params.project_id}/domains/{params.domain}", token
        )

    @action(DomainRef)
    async def check_domain(self, params: DomainRef, token: str) -> Any:
        """Check a domain's DNS configuration."""
        return await self._request("GET", f"/v6/domains/{params.domain}/config", token)

    @action(NoParams)
    async def list_teams(self, params: NoParams, token: str) -> Any:
        """List the user's teams."""
        return await self._request("GET", "/v2/teams", token)
