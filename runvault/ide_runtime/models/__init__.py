"""Data models for the IDE runtime."""

from runvault.ide_runtime.models.api import (
    FileEntry,
    RunRequest,
    RunResponse,
    SaveFileRequest,
    SaveFileResponse,
)
from runvault.ide_runtime.models.enums import (
    ExecutionStrategy,
    RouterState,
    TemplateKind,
    TerminalLineType,
)
from runvault.ide_runtime.models.terminal import TerminalLine
from runvault.ide_runtime.models.workspace import CommitSnapshot, FileRecord, WorkspaceState, new_id, now_ms

__all__ = [
    # Workspace
    "CommitSnapshot",
    # Enums
    "ExecutionStrategy",
    # API schemas
    "FileEntry",
    "FileRecord",
    "RouterState",
    "RunRequest",
    "RunResponse",
    "SaveFileRequest",
    "SaveFileResponse",
    "TemplateKind",
    # Terminal
    "TerminalLine",
    "TerminalLineType",
    "WorkspaceState",
    "new_id",
    "now_ms",
]
