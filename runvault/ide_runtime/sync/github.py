"""Repository sync against the GitHub REST API.

Two one-shot operations:

- ``push`` creates a new public repository under the token owner and
  uploads every non-empty workspace file as its own commit.
- ``pull`` walks a repository's contents depth-first and downloads every
  file into fresh ``FileRecord`` objects.

Requests run sequentially on one ``httpx.AsyncClient`` with no timeout,
matching a browser ``fetch``.
"""

from __future__ import annotations

import base64
import re
from collections.abc import Iterable
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from runvault.ide_runtime.errors import (
    AuthRequired,
    CreateRejected,
    RateLimited,
    RepositoryNotFound,
    SyncTransportError,
)
from runvault.ide_runtime.languages import language_for
from runvault.ide_runtime.models.workspace import FileRecord, now_ms

GITHUB_API_URL = "https://api.github.com"
REPO_DESCRIPTION = "Deployed from a RunVault workspace"

_REPO_PATH = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


class PushResult(BaseModel):
    url: str
    name: str
    uploaded: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list, description="Files the remote refused; upload is partial")


def slugify(name: str) -> str:
    """Repository name for *name*: whitespace runs become ``-``, lower-cased."""
    slug = re.sub(r"\s+", "-", name.strip()).lower()
    return slug or f"workspace-{now_ms()}"


class GitHubSync:
    """Push and pull workspace files to and from GitHub."""

    def __init__(
        self,
        token: str | None = None,
        *,
        api_url: str = GITHUB_API_URL,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._token = token or None
        self._api_url = api_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=None)

    async def __aenter__(self) -> GitHubSync:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def has_token(self) -> bool:
        return self._token is not None

    # -- Push ------------------------------------------------------------------

    async def push(self, files: Iterable[FileRecord], target_name: str) -> PushResult:
        """Create a repository and upload *files* into it.

        Raises ``AuthRequired`` before any request when no token is set,
        ``CreateRejected`` when the remote refuses the repository and
        ``SyncTransportError`` on network failure.  Per-file refusals are
        logged and listed in ``PushResult.failed``.
        """
        if self._token is None:
            msg = "A GitHub access token is required to push"
            raise AuthRequired(msg)

        repo_name = slugify(target_name)
        resp = await self._request(
            "POST",
            f"{self._api_url}/user/repos",
            json={"name": repo_name, "description": REPO_DESCRIPTION, "private": False, "auto_init": True},
        )
        if not resp.is_success:
            message = _json_field(resp, "message") or f"Repository creation rejected ({resp.status_code})"
            raise CreateRejected(message)

        repo = resp.json()
        owner = repo["owner"]["login"]
        # GitHub may rewrite the requested name; uploads go to the one it created
        repo_name = repo.get("name") or repo_name
        result = PushResult(url=repo["html_url"], name=repo_name)
        logger.info("Created repository {}/{}", owner, repo_name)

        for record in files:
            if not record.content:
                continue
            encoded = base64.b64encode(record.content.encode("utf-8")).decode("ascii")
            put = await self._request(
                "PUT",
                f"{self._api_url}/repos/{owner}/{repo_name}/contents/{quote(record.name)}",
                json={"message": f"Sync: {record.name}", "content": encoded},
            )
            if put.is_success:
                result.uploaded.append(record.name)
            else:
                detail = _json_field(put, "message")
                logger.warning("Upload of {} rejected ({}): {}", record.name, put.status_code, detail)
                result.failed.append(record.name)

        return result

    # -- Pull ------------------------------------------------------------------

    async def pull(self, repo_path: str) -> list[FileRecord]:
        """Download every file of ``owner/name``.

        Raises ``ValueError`` for a malformed path, ``RepositoryNotFound``,
        ``RateLimited`` or ``SyncTransportError``.  An empty repository
        yields ``[]``.
        """
        repo_path = repo_path.strip().strip("/")
        if not _REPO_PATH.match(repo_path):
            msg = f"Repository must be given as 'owner/name', got {repo_path!r}"
            raise ValueError(msg)

        records: list[FileRecord] = []
        await self._walk(repo_path, "", records)
        logger.info("Pulled {} files from {}", len(records), repo_path)
        return records

    async def _walk(self, repo_path: str, path: str, records: list[FileRecord]) -> None:
        url = f"{self._api_url}/repos/{repo_path}/contents/{quote(path)}"
        resp = await self._get_ok(url, repo_path)
        try:
            listing = resp.json()
        except ValueError as exc:
            msg = "GitHub returned a malformed contents listing"
            raise SyncTransportError(msg) from exc
        items: list[dict[str, Any]] = listing if isinstance(listing, list) else [listing]

        for item in items:
            kind = item.get("type")
            if kind == "file":
                resp = await self._get_ok(item["download_url"], repo_path)
                name = item["path"]
                records.append(FileRecord(name=name, language=language_for(name), content=resp.text, is_open=True))
            elif kind == "dir":
                await self._walk(repo_path, item["path"], records)

    # -- HTTP helpers ----------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self._token is not None:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            raise SyncTransportError(str(exc) or type(exc).__name__) from exc

    async def _get_ok(self, url: str, repo_path: str) -> httpx.Response:
        resp = await self._request("GET", url)
        if resp.status_code == httpx.codes.NOT_FOUND:
            msg = f"{repo_path}: not found or not accessible"
            raise RepositoryNotFound(msg)
        if resp.status_code in (httpx.codes.FORBIDDEN, httpx.codes.TOO_MANY_REQUESTS):
            msg = _json_field(resp, "message") or f"GitHub refused the request ({resp.status_code})"
            raise RateLimited(msg)
        if not resp.is_success:
            msg = f"GitHub answered {resp.status_code} for {url}"
            raise SyncTransportError(msg)
        return resp


def _json_field(resp: httpx.Response, key: str) -> str | None:
    try:
        data = resp.json()
    except ValueError:
        return None
    if isinstance(data, dict) and data.get(key):
        return str(data[key])
    return None
