"""
Key-value blob stores backing local persistence.

The record store and the pending queue each own one fixed key. Values are
opaque bytes; encoding is the caller's concern.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from pathlib import Path

from .file_ops import ensure_directory, read_bytes, remove_file, write_bytes_atomic

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class KeyValueStore(ABC):
    """Abstract async key-value blob store."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the value for key, or None if absent."""

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        """Replace the value for key."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove key. Returns True if it existed."""


class FileKeyValueStore(KeyValueStore):
    """Stores each key as one file under a data directory.

    Writes are atomic (temp file + rename) so a value is always either
    the previous or the new one, never a partial write.
    """

    def __init__(self, base_dir: Path | str):
        self.base_dir = Path(base_dir).expanduser()

    def path_for(self, key: str) -> Path:
        """Map a key to its backing file."""
        return self.base_dir / f"{_SAFE_KEY.sub('_', key)}.json"

    async def initialize(self) -> None:
        await ensure_directory(self.base_dir)

    async def get(self, key: str) -> bytes | None:
        return await read_bytes(self.path_for(key))

    async def set(self, key: str, value: bytes) -> None:
        await write_bytes_atomic(self.path_for(key), value)

    async def delete(self, key: str) -> bool:
        return await remove_file(self.path_for(key))


class MemoryKeyValueStore(KeyValueStore):
    """In-process store, used for tests and ephemeral embeddings."""

    def __init__(self, initial: dict[str, bytes] | None = None):
        self.values: dict[str, bytes] = dict(initial or {})

    async def get(self, key: str) -> bytes | None:
        return self.values.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self.values[key] = bytes(value)

    async def delete(self, key: str) -> bool:
        return self.values.pop(key, None) is not None
