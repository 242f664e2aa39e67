"""
Remote sync client.

Performs batched upserts and single deletes of color records against a
remote store, failing fast when the engine knows it is offline and
classifying every failure as unreachable or rejected.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from ..config import DEFAULT_COLLECTION
from ..exceptions import RemoteRejectedError, RemoteUnreachableError, SyncError
from ..records import ColorRecord
from .base import RemoteStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

ReachabilityGate = Callable[[], bool]


class RemoteSyncClient:
    """Client for mirroring color records into a remote collection.

    The client holds no connectivity state of its own. It asks the
    ``reachable`` gate (wired to the coordinator's connectivity state)
    before each call, so there is a single source of truth for
    online/offline.

    Example:
        >>> client = RemoteSyncClient(store, reachable=lambda: True)
        >>> await client.push([record])
        >>> await client.delete_remote(record.record_id)
    """

    def __init__(
        self,
        store: RemoteStore,
        collection: str = DEFAULT_COLLECTION,
        reachable: ReachabilityGate | None = None,
        timeout: float | None = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            store: Remote document store
            collection: Collection records are written to
            reachable: Gate consulted before each call (default: always reachable)
            timeout: Seconds before a call is abandoned as unreachable (None: no limit)
        """
        self.store = store
        self.collection = collection
        self.reachable: ReachabilityGate = reachable or (lambda: True)
        self.timeout = timeout

    async def push(self, records: Sequence[ColorRecord]) -> None:
        """Upsert all records in one all-or-nothing batch.

        Raises:
            RemoteUnreachableError: If offline, timed out or the transport failed
            RemoteRejectedError: If the remote store refused the batch
        """
        if not records:
            return

        documents = [record.to_document(self.collection) for record in records]
        await self._call(
            "push",
            lambda: self.store.batch_set(self.collection, documents),
        )
        logger.info(f"Pushed {len(records)} records", extra={"collection": self.collection})

    async def delete_remote(self, record_id: str) -> None:
        """Delete one record by identity. Deleting an absent record succeeds.

        Raises:
            RemoteUnreachableError: If offline, timed out or the transport failed
            RemoteRejectedError: If the remote store refused the delete
        """
        existed = await self._call(
            "delete",
            lambda: self.store.delete(self.collection, record_id),
            record_id,
        )
        if existed:
            logger.info(f"Deleted remote record from {self.collection}", extra={"record_id": record_id})
        else:
            logger.debug("Remote record already absent", extra={"record_id": record_id})

    async def close(self) -> None:
        await self.store.close()

    async def _call(
        self,
        operation: str,
        fn: Callable[[], Awaitable[T]],
        record_id: str | None = None,
    ) -> T:
        if not self.reachable():
            raise RemoteUnreachableError(f"No connectivity for {operation}", record_id)

        try:
            if self.timeout is None:
                return await fn()
            return await asyncio.wait_for(fn(), timeout=self.timeout)
        except SyncError:
            raise
        except TimeoutError as e:
            raise RemoteUnreachableError(
                f"Remote {operation} timed out after {self.timeout}s", record_id, e
            ) from e
        except (ConnectionError, OSError) as e:
            raise RemoteUnreachableError(f"Remote {operation} failed: {e}", record_id, e) from e
        except Exception as e:
            raise RemoteRejectedError(f"Remote {operation} failed: {e}", record_id=record_id, cause=e) from e
