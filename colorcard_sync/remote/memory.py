"""
In-memory remote store.

Keeps documents in process memory. Used for tests and for running the
engine without a cloud account. Failures can be injected to exercise
the engine's retry paths.
"""

from __future__ import annotations

import copy
from collections.abc import Sequence
from typing import Any

from .base import RemoteStore


class InMemoryRemoteStore(RemoteStore):
    """Remote store backed by nested dicts: collection -> id -> document.

    Attributes:
        collections: Stored documents
        calls: Log of (operation, collection, payload) for every call made
        fail_with: If set, every call raises this exception (after logging)
    """

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str, Any]] = []
        self.fail_with: Exception | None = None
        self.closed = False

    def documents(self, collection: str) -> dict[str, dict[str, Any]]:
        return self.collections.get(collection, {})

    def calls_of(self, operation: str) -> list[tuple[str, str, Any]]:
        return [call for call in self.calls if call[0] == operation]

    async def batch_set(self, collection: str, documents: Sequence[dict[str, Any]]) -> None:
        self.calls.append(("batch_set", collection, [doc["id"] for doc in documents]))
        if self.fail_with is not None:
            raise self.fail_with

        # Stored copies are independent of the caller's dicts
        staged = {doc["id"]: copy.deepcopy(doc) for doc in documents}
        self.collections.setdefault(collection, {}).update(staged)

    async def delete(self, collection: str, document_id: str) -> bool:
        self.calls.append(("delete", collection, document_id))
        if self.fail_with is not None:
            raise self.fail_with
        return self.collections.get(collection, {}).pop(document_id, None) is not None

    async def close(self) -> None:
        self.closed = True
