"""
Sync coordinator for offline-first color records.

Orchestrates the local record store, the pending operation queue, the
remote sync client and the connectivity monitor:
- Local mutations are applied and persisted first, then queued
- Flushes push queued upserts in one batch and replay queued deletes
- Reconnecting triggers a flush of everything still queued
- Exactly one flush is outstanding at any time
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from ..config import SyncConfig
from ..connectivity import ConnectivityMonitor, ProbeConnectivityMonitor, dns_probe
from ..exceptions import SyncError
from ..local import FileKeyValueStore, KeyValueStore, PendingOperationQueue, RecordStore
from ..logging_utils import SyncLoggerAdapter
from ..records import ColorRecord, PendingOperation, SyncResult, SyncState, SyncStatus, new_record
from ..remote import RemoteStore, RemoteSyncClient
from ..remote.cosmos import CosmosRemoteStore

logger = logging.getLogger(__name__)

StatusCallback = Callable[[SyncStatus], None]
RecordsCallback = Callable[[list[ColorRecord]], None]


class SyncCoordinator:
    """Offline-first sync coordinator.

    The coordinator is the only writer of the record store, the pending
    queue and the observable status, and serializes all of them behind
    one asyncio lock. The lock is not held while a remote call is
    outstanding, so local mutations never wait on the network.

    It is also the single source of connectivity state: it installs
    itself as the remote client's reachability gate.

    Example:
        >>> async with await create_sync_coordinator(config) as sync:
        ...     record = await sync.generate()
        ...     await sync.delete(record.record_id)
    """

    def __init__(
        self,
        record_store: RecordStore,
        pending_queue: PendingOperationQueue,
        remote: RemoteSyncClient,
        monitor: ConnectivityMonitor,
        on_status_changed: StatusCallback | None = None,
        on_records_changed: RecordsCallback | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            record_store: Local record store
            pending_queue: Durable queue of unsynced operations
            remote: Client for the remote store
            monitor: Connectivity monitor (started by ``start``)
            on_status_changed: Called with a status snapshot on every change
            on_records_changed: Called with the current records after every mutation
        """
        self.record_store = record_store
        self.queue = pending_queue
        self.remote = remote
        self.monitor = monitor
        self.on_status_changed = on_status_changed
        self.on_records_changed = on_records_changed

        self.remote.reachable = self.connectivity_status

        self._lock = asyncio.Lock()
        self._records: list[ColorRecord] = []
        self._online = False
        self._epoch = 0  # bumped on every connectivity transition
        self._state = SyncState.OFFLINE
        self._last_error: str | None = None
        self._last_sync: datetime | None = None
        self._flush_task: asyncio.Task[SyncResult] | None = None
        self._flush_requested = False
        self._started = False
        self._log = SyncLoggerAdapter(logger, {"collection": remote.collection})

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Load local state and start watching connectivity."""
        if self._started:
            return

        async with self._lock:
            self._records = await self.record_store.load()
            await self.queue.load()
            self._started = True
            self._emit_records()
            self._emit_status()

        self._log.info(
            f"Sync coordinator started with {len(self._records)} records, "
            f"{self.queue.pending_count} pending operations"
        )
        await self.monitor.start(self._handle_connectivity)

    async def stop(self) -> None:
        """Stop watching connectivity and wait for any in-flight flush."""
        if not self._started:
            return

        await self.monitor.stop()
        await self.wait_for_sync()
        self._started = False
        self._log.info("Sync coordinator stopped")

    async def close(self) -> None:
        """Stop and release the remote store's connections."""
        await self.stop()
        await self.remote.close()

    async def __aenter__(self) -> SyncCoordinator:
        await self.start()
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()

    # =========================================================================
    # Presentation-facing API
    # =========================================================================

    async def generate(self, hex_code: str | None = None) -> ColorRecord:
        """Create a new color record, persist it locally and queue it for sync."""
        record = new_record(hex_code)

        async with self._lock:
            records = [record, *self._records]
            await self.record_store.save(records)
            self._records = records
            await self.queue.enqueue([PendingOperation.upsert(record)])
            self._emit_records()
            self._emit_status()
            self._schedule_flush()

        self._log.info(f"Generated record {record.hex_code}", extra={"record_id": record.record_id})
        return record

    async def delete(self, record_id: str) -> bool:
        """Delete a record locally and queue the remote delete.

        Returns:
            True if the record existed locally
        """
        async with self._lock:
            remaining = [r for r in self._records if r.record_id != record_id]
            if len(remaining) == len(self._records):
                return False

            await self.record_store.save(remaining)
            self._records = remaining
            await self.queue.enqueue([PendingOperation.delete(record_id)])
            self._emit_records()
            self._emit_status()
            self._schedule_flush()

        self._log.info("Deleted record", extra={"record_id": record_id})
        return True

    def current_records(self) -> list[ColorRecord]:
        """Current local records, newest first."""
        return list(self._records)

    def connectivity_status(self) -> bool:
        return self._online

    def last_error(self) -> str | None:
        return self._last_error

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def status(self) -> SyncStatus:
        """Snapshot of the observable sync status."""
        return SyncStatus(
            state=self._state,
            is_online=self._online,
            last_error=self._last_error,
            pending_count=self.queue.pending_count,
            last_sync=self._last_sync,
        )

    async def sync_now(self) -> SyncResult:
        """Flush the pending queue now and wait for the outcome."""
        async with self._lock:
            if not self._online:
                return SyncResult(success=False, skipped=True, errors=["No network connectivity"])
            if self.queue.pending_count == 0 and not self._flush_in_flight():
                return SyncResult(success=True, skipped=True)
            self._schedule_flush()

        return await self.wait_for_sync()

    async def resync(self) -> SyncResult:
        """Re-send the entire current local set to the remote store."""
        async with self._lock:
            await self.queue.enqueue(PendingOperation.upsert(r) for r in self._records)
            self._emit_status()
            self._schedule_flush()

        return await self.wait_for_sync()

    async def wait_for_sync(self) -> SyncResult:
        """Wait for the in-flight flush, if any, and return its result."""
        task = self._flush_task
        if task is None:
            return SyncResult(success=True, skipped=True)
        # Shielded: a cancelled waiter must not cancel the remote call
        return await asyncio.shield(task)

    # =========================================================================
    # Connectivity
    # =========================================================================

    async def _handle_connectivity(self, reachable: bool) -> None:
        async with self._lock:
            if reachable == self._online:
                return

            self._online = reachable
            self._epoch += 1

            if reachable:
                self._log.info("Online", extra={"pending_count": self.queue.pending_count})
                self._set_state(SyncState.SYNCING if self._flush_in_flight() else SyncState.IDLE)
                self._schedule_flush()
            else:
                self._log.info("Offline; changes will be queued locally")
                self._set_state(SyncState.OFFLINE)

    # =========================================================================
    # Flush
    # =========================================================================

    def _flush_in_flight(self) -> bool:
        return self._flush_task is not None and not self._flush_task.done()

    def _schedule_flush(self) -> None:
        """Start a flush, or mark one as requested if one is outstanding.

        Must be called with the lock held.
        """
        if not self._online or self.queue.pending_count == 0:
            return
        if self._flush_in_flight():
            self._flush_requested = True
            return
        self._flush_task = asyncio.create_task(self._flush_loop())

    async def _flush_loop(self) -> SyncResult:
        while True:
            try:
                result, may_continue = await self._flush_once()
            except Exception as e:
                self._log.exception("Flush failed unexpectedly")
                async with self._lock:
                    self._flush_requested = False
                    self._last_error = str(e)
                    self._set_state(SyncState.ERROR if self._online else SyncState.OFFLINE)
                return SyncResult(success=False, errors=[str(e)])

            async with self._lock:
                again = (
                    may_continue
                    and self._flush_requested
                    and self._online
                    and self.queue.pending_count > 0
                )
                self._flush_requested = False
                if not again:
                    return result

    async def _flush_once(self) -> tuple[SyncResult, bool]:
        """Run one flush attempt.

        Returns:
            The result, and whether a requested follow-up flush may run
        """
        start_time = datetime.now(UTC)

        async with self._lock:
            if not self._online:
                return SyncResult(success=False, skipped=True, errors=["No network connectivity"]), False

            operations = await self.queue.drain()
            if not operations:
                self._set_state(SyncState.IDLE)
                return SyncResult(success=True, skipped=True), True

            generation = self.queue.generation
            epoch = self._epoch
            # Upserts are derived from current local state
            local = {r.record_id: r for r in self._records}
            upserts = [local[op.record_id] for op in operations if op.is_upsert and op.record_id in local]
            deletes = [op.record_id for op in operations if op.is_delete]
            self._set_state(SyncState.SYNCING)

        try:
            await self.remote.push(upserts)
            for record_id in deletes:
                await self.remote.delete_remote(record_id)
        except SyncError as e:
            async with self._lock:
                return self._record_failure(e, epoch, start_time)

        async with self._lock:
            if self.queue.generation == generation:
                await self.queue.clear()
            else:
                # Newer mutations arrived while the remote call was outstanding
                await self.queue.discard(operations)
                local_ids = {r.record_id for r in self._records}
                orphaned = [r.record_id for r in upserts if r.record_id not in local_ids]
                if orphaned:
                    await self.queue.enqueue(PendingOperation.delete(i) for i in orphaned)
                if self.queue.pending_count > 0:
                    self._flush_requested = True

            self._last_error = None
            self._last_sync = datetime.now(UTC)
            self._set_state(SyncState.IDLE if self._online else SyncState.OFFLINE)

        duration = int((datetime.now(UTC) - start_time).total_seconds() * 1000)
        self._log.info(
            f"Flush succeeded: pushed={len(upserts)} deleted={len(deletes)} in {duration}ms",
            extra={"pending_count": self.queue.pending_count},
        )
        return SyncResult(success=True, pushed=len(upserts), deleted=len(deletes), duration_ms=duration), True

    def _record_failure(
        self, error: SyncError, epoch: int, start_time: datetime
    ) -> tuple[SyncResult, bool]:
        """Apply a failed flush. Must be called with the lock held.

        The queue is left untouched; everything flushed stays pending.
        """
        duration = int((datetime.now(UTC) - start_time).total_seconds() * 1000)
        result = SyncResult(success=False, errors=[str(error)], duration_ms=duration)

        if not self._online or epoch != self._epoch:
            # Connectivity changed under the call; the failure is expected
            self._log.debug(f"Ignoring failure from a previous connection: {error}")
            self._set_state(SyncState.IDLE if self._online else SyncState.OFFLINE)
            return result, True

        self._last_error = str(error)
        self._log.warning(f"Flush failed: {error}", extra={"error_kind": error.kind})
        self._set_state(SyncState.ERROR)
        return result, False

    # =========================================================================
    # Notifications
    # =========================================================================

    def _set_state(self, state: SyncState) -> None:
        if state != self._state:
            self._log.debug(f"Sync state {self._state.value} -> {state.value}", extra={"state": state})
            self._state = state
        self._emit_status()

    def _emit_status(self) -> None:
        if self.on_status_changed is None:
            return
        try:
            self.on_status_changed(self.status)
        except Exception:
            self._log.exception("Status callback failed")

    def _emit_records(self) -> None:
        if self.on_records_changed is None:
            return
        try:
            self.on_records_changed(self.current_records())
        except Exception:
            self._log.exception("Records callback failed")


async def create_sync_coordinator(
    config: SyncConfig | None = None,
    remote_store: RemoteStore | None = None,
    monitor: ConnectivityMonitor | None = None,
    kv_store: KeyValueStore | None = None,
) -> SyncCoordinator:
    """Create a sync coordinator wired from configuration.

    Args:
        config: Sync configuration (read from the environment if not provided)
        remote_store: Remote store (Cosmos DB from config if not provided)
        monitor: Connectivity monitor (DNS probe of the remote host if not provided)
        kv_store: Local blob store (files under config.data_dir if not provided)

    Returns:
        Coordinator ready to ``start``
    """
    if config is None:
        config = SyncConfig.from_environment()

    if kv_store is None:
        file_store = FileKeyValueStore(Path(config.data_dir))
        await file_store.initialize()
        kv_store = file_store

    if remote_store is None:
        remote_store = CosmosRemoteStore(config)

    if monitor is None:
        monitor = ProbeConnectivityMonitor(
            probe=dns_probe(config.resolved_probe_host, config.probe_timeout),
            interval=config.probe_interval,
        )

    client = RemoteSyncClient(
        remote_store,
        collection=config.collection,
        timeout=config.remote_timeout,
    )

    return SyncCoordinator(
        record_store=RecordStore(kv_store),
        pending_queue=PendingOperationQueue(kv_store),
        remote=client,
        monitor=monitor,
    )
