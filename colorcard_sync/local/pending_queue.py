"""
Pending operation queue.

Holds the set of unsynced mutations that still need to reach the remote
store, persisted in the same key-value substrate as the record store so
it survives restarts.

The queue stores at most one operation per record identity. It is a
flattened view of "what is not yet on the remote", not a replayable log:
a delete of a record whose create never left the device cancels the
create instead of being recorded.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable

from ..exceptions import CorruptDataError
from ..records import PendingOperation
from .kv_store import KeyValueStore

logger = logging.getLogger(__name__)

PENDING_KEY = "pending_sync_colors"


def encode_operations(operations: Iterable[PendingOperation]) -> bytes:
    return json.dumps([op.to_dict() for op in operations]).encode("utf-8")


def decode_operations(blob: bytes, key: str = PENDING_KEY) -> list[PendingOperation]:
    """Decode a persisted operation list.

    Raises:
        CorruptDataError: If the blob is not a JSON list of valid operations
    """
    try:
        data = json.loads(blob.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise CorruptDataError(key, e) from e
    if not isinstance(data, list):
        raise CorruptDataError(key, TypeError(f"expected list, got {type(data).__name__}"))
    try:
        return [PendingOperation.from_dict(item) for item in data]
    except CorruptDataError as e:
        raise CorruptDataError(key, e.cause) from e


class PendingOperationQueue:
    """Durable queue of remote operations awaiting a successful flush.

    Operations are kept in enqueue order. Every mutation bumps
    ``generation`` so a flush can tell whether the queue changed while
    its remote call was outstanding.
    """

    def __init__(self, kv: KeyValueStore, key: str = PENDING_KEY):
        self.kv = kv
        self.key = key
        self._operations: dict[str, PendingOperation] = {}
        self._loaded = False
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending_count(self) -> int:
        return len(self._operations)

    async def load(self) -> None:
        """Load operations from the store if not already loaded."""
        if self._loaded:
            return

        blob = await self.kv.get(self.key)
        operations: list[PendingOperation] = []
        if blob is not None:
            try:
                operations = decode_operations(blob, self.key)
            except CorruptDataError as e:
                # If queue is corrupted, start fresh
                logger.warning(f"Discarding unreadable pending queue under '{self.key}': {e.cause}")

        operations.sort(key=lambda op: op.enqueued_at)
        self._operations = {op.record_id: op for op in operations}
        self._loaded = True

    async def _persist(self) -> None:
        if self._operations:
            await self.kv.set(self.key, encode_operations(self._operations.values()))
        else:
            await self.kv.delete(self.key)

    async def enqueue(self, operations: Iterable[PendingOperation]) -> None:
        """Persist operations for later retry, coalescing per identity."""
        await self.load()

        for op in operations:
            existing = self._operations.pop(op.record_id, None)
            if op.is_delete and existing is not None and existing.is_upsert:
                # The create never reached the remote; nothing to delete there
                logger.debug(f"Cancelled pending upsert for {op.record_id}")
                continue
            self._operations[op.record_id] = op

        self._generation += 1
        await self._persist()

    async def drain(self) -> list[PendingOperation]:
        """Return all pending operations in enqueue order without removing them."""
        await self.load()
        return sorted(self._operations.values(), key=lambda op: op.enqueued_at)

    async def clear(self) -> None:
        """Remove all pending operations after a confirmed successful flush."""
        await self.load()
        self._operations = {}
        self._generation += 1
        await self._persist()

    async def discard(self, operations: Iterable[PendingOperation]) -> int:
        """Remove exactly the given operations, keeping newer ones for the same ids.

        Returns:
            Number of operations removed
        """
        await self.load()

        removed = 0
        for op in operations:
            if self._operations.get(op.record_id) == op:
                del self._operations[op.record_id]
                removed += 1

        if removed:
            self._generation += 1
            await self._persist()
        return removed

    async def is_empty(self) -> bool:
        await self.load()
        return not self._operations
