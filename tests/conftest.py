"""
Shared test configuration and fixtures.

Provides in-memory local and remote stores, a scripted connectivity
monitor, and a coordinator wired from them.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest

from colorcard_sync import (
    InMemoryRemoteStore,
    ManualConnectivityMonitor,
    MemoryKeyValueStore,
    PendingOperationQueue,
    RecordStore,
    RemoteSyncClient,
    SyncCoordinator,
)


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def remote_store() -> InMemoryRemoteStore:
    return InMemoryRemoteStore()


@pytest.fixture
def monitor() -> ManualConnectivityMonitor:
    return ManualConnectivityMonitor()


@pytest.fixture
def make_coordinator(remote_store: InMemoryRemoteStore):
    """Factory for coordinators sharing the test's remote store."""

    def _make(kv: MemoryKeyValueStore, monitor: ManualConnectivityMonitor, **kwargs) -> SyncCoordinator:
        return SyncCoordinator(
            record_store=RecordStore(kv),
            pending_queue=PendingOperationQueue(kv),
            remote=RemoteSyncClient(remote_store, timeout=5.0),
            monitor=monitor,
            **kwargs,
        )

    return _make


@pytest.fixture
async def coordinator(
    kv: MemoryKeyValueStore,
    remote_store: InMemoryRemoteStore,
    monitor: ManualConnectivityMonitor,
    make_coordinator,
) -> AsyncIterator[SyncCoordinator]:
    """Started coordinator, offline until a test flips connectivity."""
    sync = make_coordinator(kv, monitor)
    await sync.start()
    yield sync

    # Let any held flush finish so stop() does not wait forever
    remote_store.fail_with = None
    release = getattr(remote_store, "release", None)
    if release is not None:
        release.set()
    await sync.stop()
