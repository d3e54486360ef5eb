from __future__ import annotations

import base64
from collections.abc import Sequence
from urllib.parse import quote

import httpx

from codeer.adapters.base import RepositoryInfo, WebsiteFile
from codeer.config import GitHubSettings
from codeer.errors import UpstreamUnavailable
from codeer.observability import get_logger, log_event

logger = get_logger("codeer.adapters.github")


class GitHubPagesClient:
    """Repository host backed by GitHub repositories and GitHub Pages."""

    def __init__(self, settings: GitHubSettings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self.owner = settings.owner
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.settings.token:
            headers["Authorization"] = f"Bearer {self.settings.token}"
        return httpx.AsyncClient(
            base_url=self.settings.api_url,
            headers=headers,
            timeout=self.settings.timeout_seconds,
            transport=self._transport,
        )

    def _identity(self) -> dict[str, str]:
        return {"name": self.settings.committer_name, "email": self.settings.committer_email}

    async def create_repository(self, name: str, description: str) -> RepositoryInfo | None:
        payload = {
            "name": name,
            "description": description or "Personal website created with Codeer",
            # GitHub Pages on free plans requires a public repository.
            "private": False,
            "auto_init": False,
            "has_issues": False,
            "has_projects": False,
            "has_wiki": False,
        }
        try:
            async with self._client() as client:
                response = await client.post("/user/repos", json=payload)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Failed to create repository: {exc}") from exc

        if response.status_code == 422:
            raise UpstreamUnavailable("Repository name already exists or is invalid")
        if response.is_error:
            raise UpstreamUnavailable(f"Failed to create repository: HTTP {response.status_code}")

        data = response.json()
        return RepositoryInfo(name=data["name"], full_name=data["full_name"], html_url=data["html_url"])

    async def _put_file(self, client: httpx.AsyncClient, repo_name: str, path: str, content: bytes, message: str) -> None:
        response = await client.put(
            f"/repos/{self.owner}/{repo_name}/contents/{quote(path)}",
            json={
                "message": message,
                "content": base64.b64encode(content).decode("ascii"),
                "committer": self._identity(),
                "author": self._identity(),
            },
        )
        response.raise_for_status()

    async def upload_files(self, repo_name: str, files: Sequence[WebsiteFile]) -> list[str]:
        """Upload files one by one; returns the paths that made it.

        A failing file is logged and skipped.
        """
        uploaded: list[str] = []
        async with self._client() as client:
            for file in files:
                try:
                    await self._put_file(client, repo_name, file.path, file.content, f"Add {file.path}")
                except httpx.HTTPError as exc:
                    log_event(logger, "github.upload_failed", repo=repo_name, path=file.path, error=str(exc))
                    continue
                uploaded.append(file.path)

        log_event(logger, "github.uploaded", repo=repo_name, uploaded=len(uploaded), total=len(files))
        return uploaded

    async def enable_hosting(self, repo_name: str, custom_domain: str | None = None) -> str | None:
        """Enable Pages for the repository and return its URL.

        Pages that already exist are not an error: the existing URL is returned.
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    f"/repos/{self.owner}/{repo_name}/pages",
                    json={"source": {"branch": "main", "path": "/"}},
                )
                if response.is_error:
                    log_event(logger, "github.pages_enable_failed", repo=repo_name, status_code=response.status_code)
                    existing = await client.get(f"/repos/{self.owner}/{repo_name}/pages")
                    if existing.is_error:
                        return None
                    return existing.json().get("html_url") or None
                pages_url = response.json().get("html_url") or None
        except httpx.HTTPError as exc:
            log_event(logger, "github.pages_enable_failed", repo=repo_name, error=str(exc))
            return None

        if custom_domain:
            await self.add_custom_domain(repo_name, custom_domain)
        return pages_url

    async def add_custom_domain(self, repo_name: str, domain: str) -> bool:
        try:
            async with self._client() as client:
                await self._put_file(client, repo_name, "CNAME", domain.encode("utf-8"), "Add custom domain")
                response = await client.put(f"/repos/{self.owner}/{repo_name}/pages", json={"cname": domain})
                response.raise_for_status()
        except httpx.HTTPError as exc:
            log_event(logger, "github.custom_domain_failed", repo=repo_name, domain=domain, error=str(exc))
            return False

        log_event(logger, "github.custom_domain_added", repo=repo_name, domain=domain)
        return True
