"""
Record and operation types for color card sync.

Defines the color record that flows between the local store, the pending
queue and the remote store, the pending operation union, and the
observable sync status types.
"""

from __future__ import annotations

import random
import re
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .exceptions import CorruptDataError

HEX_CODE_PATTERN = re.compile(r"^[0-9A-F]{6}$")


def random_hex_color() -> str:
    """Generate a random 6-digit uppercase hex color (e.g. "A1B2C3")."""
    r = random.randint(0, 255)
    g = random.randint(0, 255)
    b = random.randint(0, 255)
    return f"{r:02X}{g:02X}{b:02X}"


def _parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string or epoch seconds into an aware datetime."""
    if isinstance(value, bool):
        raise ValueError("timestamp must be a string or a number")
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value, UTC)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed
    raise ValueError(f"Unsupported timestamp value: {value!r}")


@dataclass(frozen=True)
class ColorRecord:
    """A generated color card.

    Records are immutable. The identity is assigned once at creation
    and is never reused, so it doubles as the remote document id.

    Attributes:
        record_id: UUID4 string identity
        hex_code: Six uppercase hex digits
        timestamp: When the record was created (timezone-aware)
    """

    record_id: str
    hex_code: str
    timestamp: datetime

    @classmethod
    def new(cls, hex_code: str | None = None) -> ColorRecord:
        """Create a record with a fresh identity and the current time.

        Raises:
            ValueError: If hex_code is not six hex digits
        """
        hex_code = (hex_code or random_hex_color()).upper()
        if not HEX_CODE_PATTERN.match(hex_code):
            raise ValueError(f"Invalid hex code: {hex_code}")
        return cls(
            record_id=str(uuid.uuid4()),
            hex_code=hex_code,
            timestamp=datetime.now(UTC),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for local persistence."""
        return {
            "id": self.record_id,
            "hex_code": self.hex_code,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ColorRecord:
        """Create from dictionary.

        Raises:
            CorruptDataError: If a field is missing or malformed
        """
        try:
            record_id = str(uuid.UUID(str(data["id"])))
            hex_code = str(data["hex_code"]).upper()
            if not HEX_CODE_PATTERN.match(hex_code):
                raise ValueError(f"Invalid hex code: {hex_code}")
            timestamp = _parse_timestamp(data["timestamp"])
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as e:
            raise CorruptDataError("record", e) from e
        return cls(record_id=record_id, hex_code=hex_code, timestamp=timestamp)

    def to_document(self, collection: str) -> dict[str, Any]:
        """Convert to a remote document keyed by the record identity."""
        return {
            "id": self.record_id,
            "collection": collection,
            "hexCode": self.hex_code,
            "timestamp": self.timestamp.isoformat(),
        }


def new_record(hex_code: str | None = None) -> ColorRecord:
    """Create a new color record (random color unless one is given)."""
    return ColorRecord.new(hex_code)


class OperationType(Enum):
    """Kind of deferred remote mutation."""

    UPSERT = "upsert"
    DELETE = "delete"


@dataclass(frozen=True)
class PendingOperation:
    """A remote mutation waiting for connectivity.

    Attributes:
        op_type: UPSERT carries the record, DELETE only the identity
        record_id: Identity the operation applies to
        record: The record to upsert (None for deletes)
        enqueued_at: When the operation was queued
    """

    op_type: OperationType
    record_id: str
    record: ColorRecord | None = None
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def upsert(cls, record: ColorRecord) -> PendingOperation:
        return cls(op_type=OperationType.UPSERT, record_id=record.record_id, record=record)

    @classmethod
    def delete(cls, record_id: str) -> PendingOperation:
        return cls(op_type=OperationType.DELETE, record_id=record_id)

    @property
    def is_upsert(self) -> bool:
        return self.op_type == OperationType.UPSERT

    @property
    def is_delete(self) -> bool:
        return self.op_type == OperationType.DELETE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "op": self.op_type.value,
            "id": self.record_id,
            "record": self.record.to_dict() if self.record else None,
            "enqueued_at": self.enqueued_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PendingOperation:
        """Create from dictionary.

        Raises:
            CorruptDataError: If a field is missing or malformed
        """
        try:
            op_type = OperationType(data["op"])
            record = None
            if op_type == OperationType.UPSERT:
                record = ColorRecord.from_dict(data["record"])
            record_id = record.record_id if record else str(uuid.UUID(str(data["id"])))
            enqueued_at = _parse_timestamp(data["enqueued_at"])
        except CorruptDataError:
            raise
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as e:
            raise CorruptDataError("pending_operation", e) from e
        return cls(op_type=op_type, record_id=record_id, record=record, enqueued_at=enqueued_at)


class SyncState(Enum):
    """Current state of the sync coordinator."""

    OFFLINE = "offline"
    IDLE = "idle"  # Online, nothing in flight
    SYNCING = "syncing"  # Online, flush in flight
    ERROR = "error"  # Online, last attempt failed


@dataclass(frozen=True)
class SyncStatus:
    """Read-only snapshot of the coordinator's observable status."""

    state: SyncState
    is_online: bool
    last_error: str | None = None
    pending_count: int = 0
    last_sync: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "state": self.state.value,
            "is_online": self.is_online,
            "last_error": self.last_error,
            "pending_count": self.pending_count,
            "last_sync": self.last_sync.isoformat() if self.last_sync else None,
        }


@dataclass
class SyncResult:
    """Result of a flush attempt."""

    success: bool
    pushed: int = 0
    deleted: int = 0
    skipped: bool = False
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0
