"""
Color Card Sync

Offline-first synchronization engine for generated color cards.

Provides:
- Durable local record store and pending operation queue
- Push-based connectivity monitoring
- Batched, idempotent mirroring into a remote document store (Cosmos DB)
- A coordinator that queues while offline and flushes on reconnect

Usage:

    >>> from colorcard_sync import SyncConfig, create_sync_coordinator
    >>> config = SyncConfig.from_yaml("~/.colorcard_sync/settings.yaml")
    >>> async with await create_sync_coordinator(config) as sync:
    ...     record = await sync.generate()
    ...     sync.current_records()
    ...     sync.connectivity_status(), sync.last_error()
    ...     await sync.delete(record.record_id)

Testing without a cloud account:

    >>> from colorcard_sync import (
    ...     InMemoryRemoteStore, ManualConnectivityMonitor, MemoryKeyValueStore,
    ... )
    >>> sync = await create_sync_coordinator(
    ...     SyncConfig(),
    ...     remote_store=InMemoryRemoteStore(),
    ...     monitor=ManualConnectivityMonitor(initial=False),
    ...     kv_store=MemoryKeyValueStore(),
    ... )
"""

from .config import CosmosAuthMethod, SyncConfig
from .connectivity import ConnectivityMonitor, ManualConnectivityMonitor, ProbeConnectivityMonitor
from .exceptions import (
    AuthenticationError,
    ColorSyncError,
    ConfigurationError,
    CorruptDataError,
    RemoteRejectedError,
    RemoteUnreachableError,
    StorageIOError,
    SyncError,
    SyncErrorKind,
)
from .local import (
    FileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    PendingOperationQueue,
    RecordStore,
)
from .logging_utils import configure_structured_logging
from .records import (
    ColorRecord,
    OperationType,
    PendingOperation,
    SyncResult,
    SyncState,
    SyncStatus,
    new_record,
    random_hex_color,
)
from .remote import InMemoryRemoteStore, RemoteStore, RemoteSyncClient
from .sync import SyncCoordinator, create_sync_coordinator

__all__ = [
    # Coordinator
    "SyncCoordinator",
    "create_sync_coordinator",
    "SyncConfig",
    "CosmosAuthMethod",
    # Records
    "ColorRecord",
    "PendingOperation",
    "OperationType",
    "SyncState",
    "SyncStatus",
    "SyncResult",
    "new_record",
    "random_hex_color",
    # Local
    "KeyValueStore",
    "FileKeyValueStore",
    "MemoryKeyValueStore",
    "RecordStore",
    "PendingOperationQueue",
    # Remote
    "RemoteStore",
    "RemoteSyncClient",
    "InMemoryRemoteStore",
    # Connectivity
    "ConnectivityMonitor",
    "ManualConnectivityMonitor",
    "ProbeConnectivityMonitor",
    # Logging
    "configure_structured_logging",
    # Exceptions
    "ColorSyncError",
    "SyncError",
    "SyncErrorKind",
    "RemoteUnreachableError",
    "RemoteRejectedError",
    "CorruptDataError",
    "StorageIOError",
    "AuthenticationError",
    "ConfigurationError",
]

__version__ = "0.1.0"
