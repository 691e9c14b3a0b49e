"""
SupabaseConnector — Supabase Management API (projects, orgs, SQL).

Token: account access token from https://supabase.com/dashboard/account/tokens.
Table and RLS actions run SQL through ``/database/query``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from connectors.base import ActionParams, BaseConnector, NoParams, action
from connectors.errors import AuthError, ProviderError
from connectors.models import AccountInfo

logger = logging.getLogger(__name__)

_SUPABASE_API = "https://api.supabase.com"

_LIST_TABLES_SQL = (
    "SELECT table_name, table_schema FROM information_schema.tables "
    "WHERE table_schema = 'public' ORDER BY table_name;"
)
_LIST_BUCKETS_SQL = "SELECT * FROM storage.buckets ORDER BY name;"


class ColumnDef(BaseModel):
    model_config = {"populate_by_name": True}

    name: str
    type: str
    primary_key: bool = Field(default=False, alias="primaryKey")
    default: Optional[str] = None
    not_null: bool = Field(default=False, alias="notNull")
    unique: bool = False

    def to_sql(self) -> str:
        sql = f'"{self.name}" {self.type}'
        if self.primary_key:
            sql += " PRIMARY KEY"
        if self.default:
            sql += f" DEFAULT {self.default}"
        if self.not_null:
            sql += " NOT NULL"
        if self.unique:
            sql += " UNIQUE"
        return sql


class ProjectRef(ActionParams):
    project_ref: str = Field(alias="projectRef")


class CreateProject(ActionParams):
    name: str
    organization_id: str
    db_pass: str
    region: str = "us-east-1"
    plan: str = "free"


class RunSql(ProjectRef):
    query: str


class CreateTable(ProjectRef):
    table_name: str = Field(alias="tableName")
    columns: List[ColumnDef]


class TableRef(ProjectRef):
    table_name: str = Field(alias="tableName")


class SupabaseConnector(BaseConnector):
    base_url = _SUPABASE_API

    @property
    def provider_name(self) -> str:
        return "supabase"

    @property
    def display_name(self) -> str:
        return "Supabase"

    def _error_message(self, body: Any) -> Optional[str]:
        if isinstance(body, dict):
            return body.get("message") or body.get("msg")
        return None

    async def test_connection(self, token: str) -> AccountInfo:
        projects = await self._request("GET", "/v1/projects", token)
        try:
            orgs = await self._request("GET", "/v1/organizations", token)
        except AuthError:
            raise
        except ProviderError as exc:
            logger.info("Supabase organizations unavailable during verification: %s", exc)
            orgs = []
        projects = projects if isinstance(projects, list) else []
        orgs = orgs if isinstance(orgs, list) else []
        first_org = orgs[0] if orgs else {}
        return AccountInfo(
            id=first_org.get("id"),
            name=first_org.get("name") or "Supabase User",
            extra={
                "projectCount": len(projects),
                "organizations": orgs,
                "projects": [
                    {"ref": p.get("id"), "name": p.get("name"), "region": p.get("region"), "status": p.get("status")}
                    for p in projects
                ],
            },
        )

    async def _query(self, project_ref: str, sql: str, token: str) -> Any:
        return await self._request(
            "POST", f"/v1/projects/{project_ref}/database/query", token, json={"query": sql}
        )

    # ── Actions ────────────────────────────────────────────────────────

    @action(NoParams)
    async def list_projects(self, params: NoParams, token: str) -> Any:
        """List all projects."""
        return await self._request("GET", "/v1/projects", token)

    @action(ProjectRef)
    async def get_project(self, params: ProjectRef, token: str) -> Any:
        """Get a project."""
        return await self._request("GET", f"/v1/projects/{params.project_ref}", token)

    @action(CreateProject)
    async def create_project(self, params: CreateProject, token: str) -> Any:
        """Create a project."""
        return await self._request("POST", "/v1/projects", token, json=params.model_dump())

    @action(ProjectRef)
    async def get_api_keys(self, params: ProjectRef, token: str) -> Any:
        """Get the anon and service-role keys."""
        return await self._request("GET", f"/v1/projects/{params.project_ref}/api-keys", token)

    @action(NoParams)
    async def list_organizations(self, params: NoParams, token: str) -> Any:
        """List organizations."""
        return await self._request("GET", "/v1/organizations", token)

    @action(RunSql)
    async def run_sql(self, params: RunSql, token: str) -> Any:
        """Execute SQL."""
        return await self._query(params.project_ref, params.query, token)

    @action(ProjectRef)
    async def list_tables(self, params: ProjectRef, token: str) -> Any:
        """List public tables."""
        return await self._query(params.project_ref, _LIST_TABLES_SQL, token)

    @action(CreateTable)
    async def create_table(self, params: CreateTable, token: str) -> Any:
        """Create a table ({name, type, primaryKey?, default?, notNull?, unique?})."""
        columns = ", ".join(col.to_sql() for col in params.columns)
        sql = f'CREATE TABLE IF NOT EXISTS public."{params.table_name}" ({columns});'
        return await self._query(params.project_ref, sql, token)

    @action(TableRef)
    async def enable_rls(self, params: TableRef, token: str) -> Any:
        """Enable row level security on a table."""
        sql = f'ALTER TABLE public."{params.table_name}" ENABLE ROW LEVEL SECURITY;'
        return await self._query(params.project_ref, sql, token)

    @action(ProjectRef)
    async def list_buckets(self, params: ProjectRef, token: str) -> Any:
        """List storage buckets."""
        return await self._query(params.project_ref, _LIST_BUCKETS_SQL, token)

    @action(ProjectRef)
    async def get_settings(self, params: ProjectRef, token: str) -> Any:
        """Get the project URL and keys."""
        project, keys = await asyncio.gather(
            self._request("GET", f"/v1/projects/{params.project_ref}", token),
            self._request("GET", f"/v1/projects/{params.project_ref}/api-keys", token),
        )
        return {
            **(project or {}),
            "api_keys": keys,
            "url": f"https://{params.project_ref}.supabase.co",
        }

    @action(ProjectRef)
    async def pause_project(self, params: ProjectRef, token: str) -> Any:
        """Pause a project."""
        return await self._request("POST", f"/v1/projects/{params.project_ref}/pause", token)

    @action(ProjectRef)
    async def resume_project(self, params: ProjectRef, token: str) -> Any:
        """Resume a paused project."""
        return await self._request("POST", f"/v1/projects/{params.project_ref}/resume", token)
