"""Local filesystem key-value store.

Stores each key as a file under a unified data root with optional namespace
prefix::

    {data_root}/{prefix}/kv/{key}.json

When prefix is None, the path collapses to::

    {data_root}/kv/{key}.json

Uses ``anyio.to_thread.run_sync`` for non-blocking file I/O.

Writes are atomic: data is written to a temporary file in the same directory,
then renamed to the target path.  A debounced writer may replace an
in-flight write with a newer one, but a reader never sees a torn file.
"""

from __future__ import annotations

import contextlib
import os
import re
import tempfile
from functools import partial
from pathlib import Path

from anyio import to_thread

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalKeyValueStore:
    """Local filesystem implementation of the KeyValueStore protocol."""

    def __init__(self, data_root: str | Path, prefix: str | None = None) -> None:
        base = Path(data_root)
        if prefix:
            base = base / prefix
        self._base = base / "kv"

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            msg = f"Invalid store key: {key!r}"
            raise ValueError(msg)
        return self._base / f"{key}.json"

    async def get(self, key: str) -> str | None:
        path = self._path(key)
        return await to_thread.run_sync(partial(_read_file, path))

    async def set(self, key: str, value: str) -> None:
        path = self._path(key)
        await to_thread.run_sync(partial(_atomic_write, path, value))

    async def exists(self, key: str) -> bool:
        path = self._path(key)
        return await to_thread.run_sync(path.exists)

    async def delete(self, key: str) -> None:
        path = self._path(key)
        await to_thread.run_sync(partial(path.unlink, missing_ok=True))


# -- Sync helpers (run in thread pool) -----------------------------------------


def _atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + rename.

    The temp file is created in the same directory so ``os.replace`` is
    atomic on POSIX.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def _read_file(path: Path) -> str | None:
    """Read file contents, or ``None`` if the file does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
