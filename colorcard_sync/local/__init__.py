"""
Local persistence for offline operation.

Key classes:
- KeyValueStore: Blob substrate (file-backed or in-memory)
- RecordStore: The current set of color records
- PendingOperationQueue: Unsynced mutations awaiting a flush
"""

from .kv_store import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore
from .pending_queue import PENDING_KEY, PendingOperationQueue
from .record_store import RECORDS_KEY, RecordStore

__all__ = [
    "KeyValueStore",
    "FileKeyValueStore",
    "MemoryKeyValueStore",
    "RecordStore",
    "RECORDS_KEY",
    "PendingOperationQueue",
    "PENDING_KEY",
]
