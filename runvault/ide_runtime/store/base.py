"""Key-value store interface for workspace persistence.

The workspace is persisted as one JSON blob under a fixed key, and the
active theme under a second key -- the same shape as a browser's local
storage.  The interface is async so file-backed implementations never block
the event loop.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Async protocol for reading and writing string values by key."""

    async def get(self, key: str) -> str | None:
        """Return the stored value, or ``None`` if the key is absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...

    async def exists(self, key: str) -> bool:
        ...

    async def delete(self, key: str) -> None:
        """Remove *key*.  No-op if absent."""
        ...
