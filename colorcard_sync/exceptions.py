"""
Custom exceptions for color card sync.

All engine components raise these exceptions so the coordinator can
classify failures consistently across local and remote stores.
"""

from enum import Enum


class SyncErrorKind(Enum):
    """Classification of sync failures.

    UNREACHABLE: No connectivity at call time (or the transport gave up)
    REMOTE_REJECTED: The remote store answered with an error
    CORRUPT: Local data could not be decoded (always recovered locally)
    """

    UNREACHABLE = "unreachable"
    REMOTE_REJECTED = "remote_rejected"
    CORRUPT = "corrupt"


class ColorSyncError(Exception):
    """Base exception for all color sync errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SyncError(ColorSyncError):
    """Raised when a remote or local sync step fails."""

    def __init__(
        self,
        kind: SyncErrorKind,
        message: str,
        record_id: str | None = None,
        cause: Exception | None = None,
    ):
        details: dict = {"kind": kind.value}
        if record_id:
            details["record_id"] = record_id
        if cause:
            details["cause"] = str(cause)
        super().__init__(message, details)
        self.kind = kind
        self.record_id = record_id
        self.cause = cause


class RemoteUnreachableError(SyncError):
    """Raised when the remote store cannot be reached."""

    def __init__(
        self,
        message: str = "Remote store unreachable",
        record_id: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(SyncErrorKind.UNREACHABLE, message, record_id, cause)


class RemoteRejectedError(SyncError):
    """Raised when the remote store returns an error (permission, conflict, quota)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        record_id: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(SyncErrorKind.REMOTE_REJECTED, message, record_id, cause)
        self.status_code = status_code
        if status_code is not None:
            self.details["status_code"] = status_code


class CorruptDataError(SyncError):
    """Raised when persisted local data cannot be decoded."""

    def __init__(self, key: str, cause: Exception | None = None):
        super().__init__(SyncErrorKind.CORRUPT, f"Corrupt local data under key: {key}", cause=cause)
        self.key = key
        self.details["key"] = key


class StorageIOError(ColorSyncError):
    """Raised when a local storage I/O operation fails."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Storage I/O error during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class AuthenticationError(ColorSyncError):
    """Raised when authentication to the remote store cannot be set up."""

    def __init__(self, endpoint: str, reason: str | None = None):
        details = {"endpoint": endpoint}
        if reason:
            details["reason"] = reason
        super().__init__(f"Authentication failed for {endpoint}", details)
        self.endpoint = endpoint
        self.reason = reason


class ConfigurationError(ColorSyncError):
    """Raised when configuration is missing or invalid."""

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"Invalid configuration for {field}: {reason}",
            {"field": field, "reason": reason},
        )
        self.field = field
        self.reason = reason
