"""Workspace state: the file store, starter templates and the session actions."""

from runvault.ide_runtime.workspace.session import WorkspaceSession, open_session
from runvault.ide_runtime.workspace.store import FileNotInWorkspaceError, WorkspaceStore
from runvault.ide_runtime.workspace.templates import starter_files

__all__ = ["FileNotInWorkspaceError", "WorkspaceSession", "WorkspaceStore", "open_session", "starter_files"]
