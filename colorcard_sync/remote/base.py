"""
Abstract remote document store interface.

Defines the contract the sync engine requires of the remote side: a
document store addressed by collection name and document id that
supports an atomic multi-document set and a single-document delete.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any


class RemoteStore(ABC):
    """Abstract interface for remote document stores.

    Implementations raise ``RemoteUnreachableError`` for transport
    failures and ``RemoteRejectedError`` when the store answers with an
    error. Any other exception is treated as a rejection by the client.
    """

    @abstractmethod
    async def batch_set(self, collection: str, documents: Sequence[dict[str, Any]]) -> None:
        """Atomically set every document (keyed by its "id") in collection.

        Either all documents are written or none are.
        """

    @abstractmethod
    async def delete(self, collection: str, document_id: str) -> bool:
        """Delete one document.

        Returns:
            True if it existed, False if it was already absent (not an error)
        """

    async def close(self) -> None:
        """Release connections. Default: nothing to release."""
        return None
