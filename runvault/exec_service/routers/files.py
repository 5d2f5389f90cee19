"""Shared-folder file endpoints.

The listing is flat: only regular text files directly inside the workspace
folder are returned, with the file name as id.  Build artifacts and files
that are not UTF-8 are left out.
"""

from __future__ import annotations

from functools import partial
from pathlib import Path

from anyio import to_thread
from fastapi import APIRouter, HTTPException, status
from loguru import logger

from runvault.exec_service.deps import WorkspaceDir, resolve_in_workspace
from runvault.ide_runtime.languages import language_for
from runvault.ide_runtime.models.api import FileEntry, SaveFileRequest, SaveFileResponse

router = APIRouter(prefix="/files", tags=["files"])

# Outputs of the compile steps in toolchains.plan
_BUILD_ARTIFACTS = frozenset({".out", ".class", ".o", ".exe", ".pyc"})


@router.get("", response_model=list[FileEntry])
async def list_files(workspace: WorkspaceDir) -> list[FileEntry]:
    """List every file in the shared folder with its content."""
    try:
        return await to_thread.run_sync(partial(_read_listing, workspace))
    except OSError as exc:
        logger.exception("Listing {} failed", workspace)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


@router.post("/save", response_model=SaveFileResponse)
async def save_file(body: SaveFileRequest, workspace: WorkspaceDir) -> SaveFileResponse:
    """Write a file into the shared folder, replacing any previous content."""
    target = resolve_in_workspace(workspace, body.name)
    try:
        await to_thread.run_sync(partial(write_text, target, body.content))
    except OSError as exc:
        logger.exception("Saving {} failed", target)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return SaveFileResponse(success=True)


# -- Sync helpers (run in thread pool) -----------------------------------------


def _read_listing(workspace: Path) -> list[FileEntry]:
    entries = []
    for path in sorted(workspace.iterdir()):
        if not path.is_file() or path.suffix.lower() in _BUILD_ARTIFACTS:
            continue
        try:
            content = path.read_bytes().decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("Skipping binary file {}", path.name)
            continue
        entries.append(FileEntry(id=path.name, name=path.name, language=language_for(path.name), content=content))
    return entries


def write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
