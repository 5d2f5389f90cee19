"""HTTP client for the optional same-origin execution service.

The service is optional: when nothing answers on ``GET /api/files`` the
router treats the backend as absent and falls back to in-process
interpreters.  See ``runvault.exec_service`` for the server side.
"""

from __future__ import annotations

from types import TracebackType

import httpx
from loguru import logger
from pydantic import ValidationError

from runvault.ide_runtime.errors import BackendTransportError, BackendUnreachable, ToolchainUnsupported
from runvault.ide_runtime.languages import language_for
from runvault.ide_runtime.models.api import FileEntry, RunRequest, RunResponse, SaveFileRequest
from runvault.ide_runtime.models.workspace import FileRecord


class RemoteBackendClient:
    """Thin async wrapper over the execution service HTTP API.

    Pass an existing ``httpx.AsyncClient`` (tests use ``MockTransport`` or
    ``ASGITransport``) or let the client create and own one.
    """

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        probe_timeout: float = 2.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()
        self._probe_timeout = probe_timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> RemoteBackendClient:
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

    # -- Files -----------------------------------------------------------------

    async def list_files(self) -> list[FileRecord]:
        """List the service's shared folder.  Raises ``BackendUnreachable``."""
        try:
            resp = await self._client.get(f"{self._base_url}/api/files", timeout=self._probe_timeout)
        except httpx.HTTPError as exc:
            raise BackendUnreachable(str(exc) or type(exc).__name__) from exc
        if not resp.is_success:
            msg = f"Execution service answered {resp.status_code}"
            raise BackendUnreachable(msg)

        try:
            entries = [FileEntry.model_validate(item) for item in resp.json()]
        except (ValueError, TypeError, ValidationError) as exc:
            msg = "Execution service returned a malformed file listing"
            raise BackendUnreachable(msg) from exc

        return [
            FileRecord(
                id=entry.id,
                name=entry.name,
                language=entry.language or language_for(entry.name),
                content=entry.content,
            )
            for entry in entries
        ]

    async def is_reachable(self) -> bool:
        """Lightweight probe used by the router before routing a run."""
        try:
            await self.list_files()
        except BackendUnreachable as exc:
            logger.debug("Execution service not reachable at {}: {}", self._base_url, exc)
            return False
        return True

    async def save_file(self, name: str, content: str) -> bool:
        body = SaveFileRequest(name=name, content=content).model_dump()
        try:
            resp = await self._client.post(f"{self._base_url}/api/files/save", json=body)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise BackendTransportError(str(exc) or type(exc).__name__) from exc
        return bool(resp.json().get("success", False))

    # -- Run -------------------------------------------------------------------

    async def run(self, code: str, language: str, file_name: str) -> RunResponse:
        """Execute code natively on the service.

        Raises ``ToolchainUnsupported`` when the service has no command for
        the language (HTTP 400), ``BackendTransportError`` on any other
        failure.
        """
        body = RunRequest(code=code, language=language, file_name=file_name).model_dump(by_alias=True)
        try:
            resp = await self._client.post(f"{self._base_url}/api/run", json=body, timeout=None)
        except httpx.HTTPError as exc:
            raise BackendTransportError(str(exc) or type(exc).__name__) from exc

        if resp.status_code == httpx.codes.BAD_REQUEST:
            raise ToolchainUnsupported(_error_detail(resp) or f"No local toolchain for {language}")
        if not resp.is_success:
            detail = _error_detail(resp) or resp.reason_phrase
            msg = f"Execution service answered {resp.status_code}: {detail}"
            raise BackendTransportError(msg)

        try:
            return RunResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            msg = "Execution service returned a malformed run result"
            raise BackendTransportError(msg) from exc


def _error_detail(resp: httpx.Response) -> str | None:
    """Extract ``error`` / ``detail`` from a JSON error body, if any."""
    try:
        data = resp.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        detail = data.get("error") or data.get("detail")
        return str(detail) if detail else None
    return None
