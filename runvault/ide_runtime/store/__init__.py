"""Key-value store implementations for workspace persistence."""

from runvault.ide_runtime.store.base import KeyValueStore
from runvault.ide_runtime.store.local import LocalKeyValueStore
from runvault.ide_runtime.store.memory import MemoryKeyValueStore

__all__ = ["KeyValueStore", "LocalKeyValueStore", "MemoryKeyValueStore"]
