"""
Remote side of the sync engine.

- RemoteStore: Contract required of the remote document store
- InMemoryRemoteStore: Process-local store for tests and demos
- RemoteSyncClient: Batched push / delete with failure classification

The Cosmos DB store lives in ``colorcard_sync.remote.cosmos``.
"""

from .base import RemoteStore
from .client import RemoteSyncClient
from .memory import InMemoryRemoteStore

__all__ = [
    "RemoteStore",
    "RemoteSyncClient",
    "InMemoryRemoteStore",
]
