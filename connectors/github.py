"""
GitHubConnector — personal access token access to the GitHub REST API.

Token: fine-grained or classic PAT, sent as a bearer header.
Verification: ``GET /user``.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional

from connectors.base import ActionParams, BaseConnector, action
from connectors.models import AccountInfo

logger = logging.getLogger(__name__)

_GH_API = "https://api.github.com"


class ListRepos(ActionParams):
    sort: str = "updated"
    per_page: int = 30
    page: int = 1


class RepoRef(ActionParams):
    owner: str
    repo: str


class CreateRepo(ActionParams):
    name: str
    description: str = ""
    private: bool = True
    auto_init: bool = True


class CreateBranch(RepoRef):
    branch: str
    from_branch: str = "main"


class GetFile(RepoRef):
    path: str
    ref: Optional[str] = None


class PutFile(RepoRef):
    path: str
    content: str
    message: Optional[str] = None
    branch: Optional[str] = None
    sha: Optional[str] = None  # required when updating an existing file


class ListCommits(RepoRef):
    per_page: int = 10
    sha: Optional[str] = None


class CreatePR(RepoRef):
    title: str
    head: str
    body: str = ""
    base: str = "main"


class ListPRs(RepoRef):
    state: str = "open"


class GetTree(RepoRef):
    branch: str = "main"


class GitHubConnector(BaseConnector):
    """Bearer-token connector for GitHub."""

    base_url = _GH_API

    @property
    def provider_name(self) -> str:
        return "github"

    @property
    def display_name(self) -> str:
        return "GitHub"

    def _headers(self, token: str) -> dict:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": self.settings.user_agent,
        }

    async def test_connection(self, token: str) -> AccountInfo:
        user = await self._request("GET", "/user", token)
        return AccountInfo(
            id=str(user["id"]),
            name=user.get("name") or user.get("login"),
            email=user.get("email"),
            avatar=user.get("avatar_url"),
            plan=(user.get("plan") or {}).get("name"),
            extra={
                "login": user.get("login"),
                "public_repos": user.get("public_repos"),
                "private_repos": user.get("total_private_repos"),
                "url": user.get("html_url"),
            },
        )

    # ── Actions ────────────────────────────────────────────────────────

    @action(ListRepos)
    async def list_repos(self, params: ListRepos, token: str) -> Any:
        """List the authenticated user's repos."""
        return await self._request(
            "GET",
            "/user/repos",
            token,
            params={"sort": params.sort, "per_page": params.per_page, "page": params.page},
        )

    @action(RepoRef)
    async def get_repo(self, params: RepoRef, token: str) -> Any:
        """Get repo details."""
        return await self._request("GET", f"/repos/{params.owner}/{params.repo}", token)

    @action(CreateRepo)
    async def create_repo(self, params: CreateRepo, token: str) -> Any:
        """Create a repo on the user's account."""
        data = await self._request("POST", "/user/repos", token, json=params.model_dump())
        logger.info("create_repo → %s (private=%s)", data.get("full_name"), data.get("private"))
        return data

    @action(RepoRef)
    async def list_branches(self, params: RepoRef, token: str) -> Any:
        """List branches."""
        return await self._request("GET", f"/repos/{params.owner}/{params.repo}/branches", token)

    @action(CreateBranch)
    async def create_branch(self, params: CreateBranch, token: str) -> Any:
        """Create a branch from an existing one."""
        repo_path = f"/repos/{params.owner}/{params.repo}"
        ref = await self._request("GET", f"{repo_path}/git/ref/heads/{params.from_branch}", token)
        return await self._request(
            "POST",
            f"{repo_path}/git/refs",
            token,
            json={"ref": f"refs/heads/{params.branch}", "sha": ref["object"]["sha"]},
        )

    @action(GetFile)
    async def get_file(self, params: GetFile, token: str) -> Any:
        """Get file contents."""
        return await self._request(
            "GET",
            f"/repos/{params.owner}/{params.repo}/contents/{params.path}",
            token,
            params={"ref": params.ref},
        )

    @action(PutFile)
    async def put_file(self, params: PutFile, token: str) -> Any:
        """Create or update a file."""
        body = {
            "message": params.message or f"Update {params.path}",
            "content": base64.b64encode(params.content.encode("utf-8")).decode("ascii"),
        }
        if params.branch:
            body["branch"] = params.branch
        if params.sha:
            body["sha"] = params.sha
        return await self._request(
            "PUT",
            f"/repos/{params.owner}/{params.repo}/contents/{params.path}",
            token,
            json=body,
        )

    @action(ListCommits)
    async def list_commits(self, params: ListCommits, token: str) -> Any:
        """List recent commits."""
        return await self._request(
            "GET",
            f"/repos/{params.owner}/{params.repo}/commits",
            token,
            params={"per_page": params.per_page, "sha": params.sha},
        )

    @action(CreatePR)
    async def create_pr(self, params: CreatePR, token: str) -> Any:
        """Create a pull request."""
        data = await self._request(
            "POST",
            f"/repos/{params.owner}/{params.repo}/pulls",
            token,
            json={"title": params.title, "body": params.body, "head": params.head, "base": params.base},
        )
        logger.info("create_pr → %s/%s#%s", params.owner, params.repo, data.get("number"))
        return data

    @action(ListPRs)
    async def list_prs(self, params: ListPRs, token: str) -> Any:
        """List pull requests."""
        return await self._request(
            "GET",
            f"/repos/{params.owner}/{params.repo}/pulls",
            token,
            params={"state": params.state},
        )

    @action(GetTree)
    async def get_tree(self, params: GetTree, token: str) -> Any:
        """Full recursive file tree."""
        return await self._request(
            "GET",
            f"/repos/{params.owner}/{params.repo}/git/trees/{params.branch}",
            token,
            params={"recursive": 1},
        )
