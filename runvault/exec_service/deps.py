"""FastAPI dependencies for settings and the shared workspace folder.

Usage in route handlers::

    @router.get("/files")
    async def list_files(workspace: WorkspaceDir) -> list[FileEntry]:
        ...

Tests override ``get_settings`` through ``app.dependency_overrides`` to point
the service at a temporary folder.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from fastapi import Depends, HTTPException, status

from runvault.ide_runtime.settings import RunVaultSettings, get_settings

Settings = Annotated[RunVaultSettings, Depends(get_settings)]


def get_workspace_dir(settings: Settings) -> Path:
    """Resolve the shared folder, creating it on first use."""
    workspace = Path(settings.workspace_dir).resolve()
    workspace.mkdir(parents=True, exist_ok=True)
    return workspace


WorkspaceDir = Annotated[Path, Depends(get_workspace_dir)]


def resolve_in_workspace(workspace: Path, name: str) -> Path:
    """Map a client-supplied file name into *workspace*.

    Raises HTTP 400 when the name is empty or escapes the folder.
    """
    if not name or not name.strip():
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="File name is required.")
    target = (workspace / name).resolve()
    if target == workspace or not target.is_relative_to(workspace):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=f"Path '{name}' escapes the workspace.")
    return target
