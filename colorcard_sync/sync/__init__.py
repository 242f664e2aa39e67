"""
Sync orchestration.

Provides the offline-first coordinator that keeps the local record store
and the remote collection consistent across connectivity changes.
"""

from .coordinator import SyncCoordinator, create_sync_coordinator

__all__ = [
    "SyncCoordinator",
    "create_sync_coordinator",
]
