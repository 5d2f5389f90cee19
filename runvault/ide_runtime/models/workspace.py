"""Workspace data model.

A workspace is an ordered collection of in-memory files plus the editor's
tab order, the active selection and a newest-first timeline of push
snapshots.  The whole state is serialised as a single JSON blob::

    {"files": [...], "activeId": "...", "openIds": [...], "snapshots": [...]}
"""

from __future__ import annotations

import time
import uuid

from pydantic import BaseModel, ConfigDict, Field


def new_id() -> str:
    """Return a short opaque identifier for files and snapshots."""
    return uuid.uuid4().hex[:9]


def now_ms() -> int:
    return int(time.time() * 1000)


class FileRecord(BaseModel):
    """One workspace file.  ``name`` may encode folders with ``/``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    name: str
    language: str = "plaintext"
    content: str = ""
    is_open: bool = Field(default=True, alias="isOpen")


class CommitSnapshot(BaseModel):
    """Audit entry recorded after a successful push.

    Carries no file content: it labels an event on the timeline and cannot be
    used to restore an earlier workspace.
    """

    id: str = Field(default_factory=new_id)
    message: str
    timestamp: int = Field(default_factory=now_ms, description="Epoch milliseconds")
    branch: str = "main"


class WorkspaceState(BaseModel):
    """Serializable workspace snapshot owned by ``WorkspaceStore``."""

    model_config = ConfigDict(populate_by_name=True)

    files: list[FileRecord] = Field(default_factory=list)
    active_file_id: str | None = Field(default=None, alias="activeId")
    open_file_ids: list[str] = Field(default_factory=list, alias="openIds")
    snapshots: list[CommitSnapshot] = Field(default_factory=list, description="Newest first")
