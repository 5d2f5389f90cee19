"""Workspace session -- the user-facing actions of the shell.

Each action reports progress and outcome as terminal lines and never raises
to its caller: failures end up as an ``error`` line in the session log.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from loguru import logger

from runvault.ide_runtime.assistant import Assistant, code_blocks
from runvault.ide_runtime.errors import ArchiveError, RouterBusyError, RunVaultError
from runvault.ide_runtime.execution.backend_client import RemoteBackendClient
from runvault.ide_runtime.execution.router import ExecutionRouter
from runvault.ide_runtime.execution.simulation import AISimulator
from runvault.ide_runtime.store.local import LocalKeyValueStore
from runvault.ide_runtime.sync import archive
from runvault.ide_runtime.sync.github import GitHubSync, PushResult
from runvault.ide_runtime.terminal import TerminalLog
from runvault.ide_runtime.workspace.store import WorkspaceStore

if TYPE_CHECKING:
    from runvault.ide_runtime.models.terminal import TerminalLine
    from runvault.ide_runtime.models.workspace import FileRecord
    from runvault.ide_runtime.settings import RunVaultSettings

DEFAULT_PROJECT_NAME = "runvault-deployment"


class WorkspaceSession:
    def __init__(
        self,
        store: WorkspaceStore,
        router: ExecutionRouter,
        *,
        sync: GitHubSync | None = None,
        log: TerminalLog | None = None,
        assistant: Assistant | None = None,
    ) -> None:
        self.store = store
        self.router = router
        self.sync = sync
        self.log = log or TerminalLog()
        self.assistant = assistant
        if assistant is not None:
            assistant.attach(self.log, lambda: self.store.active_file)

    # -- Execution -------------------------------------------------------------

    async def run_active_file(self) -> list[TerminalLine]:
        """Route the active file through the execution cascade."""
        active = self.store.active_file
        if active is None:
            self.log.error("No active file to run.")
            return []
        try:
            return await self.router.run(active.content, active.language, active.name, self.log)
        except RouterBusyError as exc:
            self.log.error(f"Execution failed: {exc}")
        except RunVaultError as exc:
            logger.opt(exception=exc).warning("Run of {} failed", active.name)
            self.log.error(f"Execution failed: {exc}")
        return []

    async def fix_last_error(self) -> str | None:
        """Send the most recent error line to the assistant."""
        line = next((ln for ln in reversed(self.log.lines) if ln.type == "error"), None)
        if line is None:
            return None
        reply = self.log.request_fix(line)
        if reply is None:
            self.log.error("Fix request ignored: no assistant is configured.")
            return None
        return await reply

    # -- Assistant -------------------------------------------------------------

    async def ask(self, request: str, *, insert: bool = False) -> str | None:
        """Ask the assistant about the active file.

        With *insert*, fenced code blocks of the reply are appended to the
        active file.
        """
        if self.assistant is None:
            self.log.error("Assistant is not configured.")
            return None
        active = self.store.active_file
        reply = await self.assistant.ask(request, active)
        if insert and active is not None:
            blocks = code_blocks(reply)
            for block in blocks:
                self.store.append_content(active.id, block)
            if blocks:
                self.log.success(f"[AI] Inserted {len(blocks)} code blocks into {active.name}.")
        return reply

    # -- GitHub ----------------------------------------------------------------

    async def deploy(self, project_name: str = DEFAULT_PROJECT_NAME) -> PushResult | None:
        """Push every file to a new repository and record a timeline snapshot."""
        if self.sync is None or not self.sync.has_token:
            self.log.error("Deployment Failed: a GitHub access token is required.")
            return None

        self.log.info("[Git] Handshaking with GitHub API...")
        try:
            result = await self.sync.push(self.store.files, project_name)
        except RunVaultError as exc:
            self.log.error(f"Deployment Failed: {exc}")
            return None

        self.log.success(f"[System] Repository deployed: {result.url}")
        if result.failed:
            self.log.error(f"[Git] {len(result.failed)} files were not uploaded: {', '.join(result.failed)}")
        self.store.record_snapshot(f"Pushed to GitHub: {result.name}", branch="main")
        return result

    async def import_repository(self, repo_path: str) -> list[FileRecord]:
        """Pull ``owner/name`` and append its files to the workspace."""
        if "/" not in repo_path:
            self.log.error("Import Failed: enter the repository as 'owner/name'.")
            return []
        self.log.info(f"[Git] PULL: Initiating recursive fetch for {repo_path}...")
        try:
            if self.sync is None:
                async with GitHubSync() as anonymous:
                    imported = await anonymous.pull(repo_path)
            else:
                imported = await self.sync.pull(repo_path)
        except (RunVaultError, ValueError) as exc:
            self.log.error(f"Import Failed: {exc}")
            return []
        if not imported:
            self.log.error("Import Failed: Repository appears empty or inaccessible.")
            return []

        self.store.bulk_append(imported)
        self.log.success(f"[System] Successfully imported {len(imported)} modules from GitHub.")
        return imported

    # -- Archives --------------------------------------------------------------

    def export_archive(self) -> bytes | None:
        """Bundle every file into a ZIP.  ``None`` when the workspace is empty."""
        files = self.store.files
        if not files:
            return None
        self.log.info("[System] Compressing workspace modules into a bundle...")
        try:
            data = archive.pack(files)
        except (OSError, ValueError) as exc:
            self.log.error(f"Export Failed: {exc}")
            return None
        self.log.success("[System] Workspace bundle exported successfully.")
        return data

    def import_files(self, uploads: Iterable[tuple[str, bytes]]) -> list[FileRecord]:
        """Add uploaded files (ZIP archives are expanded) to the workspace."""
        try:
            records = archive.import_uploads(uploads)
        except ArchiveError as exc:
            self.log.error(f"Import Failed: {exc}")
            return []
        if records:
            self.store.bulk_append(records)
            self.log.success(f"[System] Imported {len(records)} local files.")
        return records


@asynccontextmanager
async def open_session(settings: RunVaultSettings) -> AsyncIterator[WorkspaceSession]:
    """Build a session from settings, restore the workspace and flush it on exit."""
    kv = LocalKeyValueStore(settings.data_root, prefix=settings.data_prefix)
    store = WorkspaceStore(kv, debounce=settings.persist_debounce)
    await store.restore()

    async with (
        RemoteBackendClient(settings.backend_url) as backend,
        GitHubSync(settings.resolve_github_token(), api_url=settings.github_api_url) as sync,
    ):
        router = ExecutionRouter(backend=backend, simulator=AISimulator(settings.simulation_model))
        assistant = Assistant(settings.assistant_model)
        session = WorkspaceSession(store, router, sync=sync, assistant=assistant)
        try:
            yield session
        finally:
            await store.flush()
