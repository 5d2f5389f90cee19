"""Workspace store -- the single owner of the file collection.

All mutations go through this class.  Every mutation marks the state dirty
and schedules a debounced write of the whole ``WorkspaceState`` to the
key-value store; rapid edits coalesce into one write.  ``restore`` reads the
blob once at startup and falls back to a starter template when the blob is
missing or cannot be parsed.
"""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING

from loguru import logger
from pydantic import ValidationError

from runvault.ide_runtime.languages import language_for
from runvault.ide_runtime.models.enums import TemplateKind
from runvault.ide_runtime.models.workspace import CommitSnapshot, FileRecord, WorkspaceState
from runvault.ide_runtime.workspace.templates import starter_files

if TYPE_CHECKING:
    from collections.abc import Iterable

    from runvault.ide_runtime.store.base import KeyValueStore

STATE_KEY = "workspace_state"
THEME_KEY = "workspace_theme"


class FileNotInWorkspaceError(LookupError):
    """Raised when an operation references an unknown file id."""


class WorkspaceStore:
    """In-memory workspace with debounced persistence."""

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        debounce: float = 0.8,
        state: WorkspaceState | None = None,
    ) -> None:
        self._kv = kv
        self._debounce = debounce
        self._state = state or WorkspaceState()
        self._dirty = False
        self._timer: asyncio.TimerHandle | None = None
        self._writes: set[asyncio.Task[None]] = set()

    # -- Query -----------------------------------------------------------------

    @property
    def state(self) -> WorkspaceState:
        return self._state

    @property
    def files(self) -> list[FileRecord]:
        return list(self._state.files)

    @property
    def active_file_id(self) -> str | None:
        return self._state.active_file_id

    @property
    def open_file_ids(self) -> list[str]:
        return list(self._state.open_file_ids)

    @property
    def snapshots(self) -> list[CommitSnapshot]:
        return list(self._state.snapshots)

    @property
    def active_file(self) -> FileRecord | None:
        if self._state.active_file_id is None:
            return None
        return self._find(self._state.active_file_id)

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def get_file(self, file_id: str) -> FileRecord:
        """Return a file by id.  Raises ``FileNotInWorkspaceError`` if missing."""
        record = self._find(file_id)
        if record is None:
            raise FileNotInWorkspaceError(file_id)
        return record

    def _find(self, file_id: str) -> FileRecord | None:
        for record in self._state.files:
            if record.id == file_id:
                return record
        return None

    # -- Mutation --------------------------------------------------------------

    def create_file(self, name: str, language: str | None = None) -> FileRecord:
        """Add an empty file, open it in a new tab and make it active."""
        record = FileRecord(name=name, language=language or language_for(name), content="")
        self._state.files.append(record)
        self._state.open_file_ids.append(record.id)
        self._state.active_file_id = record.id
        self._changed()
        return record

    def edit_content(self, file_id: str, content: str) -> FileRecord:
        record = self.get_file(file_id)
        record.content = content
        self._changed()
        return record

    def append_content(self, file_id: str, snippet: str) -> FileRecord:
        """Append a code snippet on a new line (assistant "insert code")."""
        record = self.get_file(file_id)
        record.content = f"{record.content}\n{snippet}"
        self._changed()
        return record

    def delete_file(self, file_id: str) -> None:
        """Remove a file and its tab.  Clears the active id if it pointed here."""
        self.get_file(file_id)
        self._state.files = [f for f in self._state.files if f.id != file_id]
        self._state.open_file_ids = [i for i in self._state.open_file_ids if i != file_id]
        if self._state.active_file_id == file_id:
            self._state.active_file_id = None
        self._changed()

    def bulk_append(self, records: Iterable[FileRecord]) -> list[FileRecord]:
        """Append imported files, activate the first one and open all of them.

        A record whose id is already present replaces the existing record
        (last write wins).  ``open_file_ids`` keeps first-seen order with no
        duplicates.
        """
        added = list(records)
        if not added:
            return added

        index = {f.id: pos for pos, f in enumerate(self._state.files)}
        for record in added:
            pos = index.get(record.id)
            if pos is None:
                index[record.id] = len(self._state.files)
                self._state.files.append(record)
            else:
                self._state.files[pos] = record

        self._state.active_file_id = added[0].id
        merged = [*self._state.open_file_ids, *(r.id for r in added)]
        self._state.open_file_ids = list(dict.fromkeys(merged))
        self._changed()
        return added

    def select_file(self, file_id: str) -> FileRecord:
        """Make a file active, opening a tab for it if needed."""
        record = self.get_file(file_id)
        self._state.active_file_id = file_id
        if file_id not in self._state.open_file_ids:
            self._state.open_file_ids.append(file_id)
        self._changed()
        return record

    def close_tab(self, file_id: str) -> None:
        self._state.open_file_ids = [i for i in self._state.open_file_ids if i != file_id]
        if self._state.active_file_id == file_id:
            self._state.active_file_id = self._state.open_file_ids[-1] if self._state.open_file_ids else None
        self._changed()

    def record_snapshot(self, message: str, branch: str = "main") -> CommitSnapshot:
        """Prepend a timeline entry (newest first)."""
        snapshot = CommitSnapshot(message=message, branch=branch)
        self._state.snapshots.insert(0, snapshot)
        self._changed()
        return snapshot

    def load_template(self, kind: TemplateKind | str = TemplateKind.HTML) -> list[FileRecord]:
        """Replace the file collection with a starter template."""
        files = starter_files(kind)
        self._state.files = files
        self._state.open_file_ids = [f.id for f in files]
        self._state.active_file_id = files[0].id
        self._changed()
        return files

    # -- Persistence -----------------------------------------------------------

    async def persist(self) -> None:
        """Write the whole state to the key-value store now."""
        data = self._state.model_dump_json(by_alias=True)
        self._dirty = False
        await self._kv.set(STATE_KEY, data)
        logger.debug("Workspace persisted ({} files)", len(self._state.files))

    async def restore(self) -> WorkspaceState:
        """Load the stored state, or a starter template if absent or corrupt."""
        raw = await self._kv.get(STATE_KEY)
        if raw is None:
            logger.info("No stored workspace -- loading starter template")
            self.load_template(TemplateKind.HTML)
            return self._state

        try:
            state = WorkspaceState.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Stored workspace is corrupt ({} errors) -- loading starter template", exc.error_count())
            self.load_template(TemplateKind.HTML)
            return self._state

        if state.active_file_id is not None and not any(f.id == state.active_file_id for f in state.files):
            state.active_file_id = None
        self._state = state
        self._dirty = False
        return self._state

    async def flush(self) -> None:
        """Cancel any pending debounce and write pending changes immediately."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._writes:
            await asyncio.gather(*self._writes, return_exceptions=True)
        if self._dirty:
            await self.persist()

    async def save_theme(self, theme_id: str) -> None:
        await self._kv.set(THEME_KEY, json.dumps(theme_id))

    async def load_theme(self) -> str | None:
        raw = await self._kv.get(THEME_KEY)
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored theme is not valid JSON, ignoring")
            return None
        return value if isinstance(value, str) else None

    # -- Debounce --------------------------------------------------------------

    def _changed(self) -> None:
        """Mark dirty and (re)arm the debounce timer when a loop is running."""
        self._dirty = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self._debounce, self._start_write)

    def _start_write(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._background_write())
        self._writes.add(task)
        task.add_done_callback(self._writes.discard)

    async def _background_write(self) -> None:
        try:
            await self.persist()
        except Exception:
            self._dirty = True
            logger.exception("Debounced workspace write failed")
