"""Tests for structured logging helpers and the exception hierarchy."""

import io
import json
import logging

import pytest

from colorcard_sync.exceptions import (
    ColorSyncError,
    CorruptDataError,
    RemoteRejectedError,
    RemoteUnreachableError,
    StorageIOError,
    SyncError,
    SyncErrorKind,
)
from colorcard_sync.logging_utils import (
    ROOT_LOGGER_NAME,
    SyncLoggerAdapter,
    configure_structured_logging,
)
from colorcard_sync.records import SyncState


@pytest.fixture
def log_stream():
    stream = io.StringIO()
    configure_structured_logging(logging.DEBUG, stream=stream)
    yield stream
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.handlers.clear()
    root.setLevel(logging.NOTSET)


def read_lines(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines()]


def entries(stream: io.StringIO, message: str) -> list[dict]:
    return [entry for entry in read_lines(stream) if entry["message"].startswith(message)]


class TestStructuredLogging:
    """Engine log records rendered as JSON lines."""

    def test_entry_fields(self, log_stream):
        logging.getLogger("colorcard_sync.remote.client").info(
            "Pushed 2 records", extra={"collection": "colorCards", "unrelated": "dropped"}
        )

        (entry,) = read_lines(log_stream)
        assert entry["level"] == "INFO"
        assert entry["logger"] == "colorcard_sync.remote.client"
        assert entry["message"] == "Pushed 2 records"
        assert entry["collection"] == "colorCards"
        assert "unrelated" not in entry
        assert "timestamp" in entry

    def test_enum_context_written_as_value(self, log_stream):
        logger = logging.getLogger("colorcard_sync.sync")
        logger.debug("transition", extra={"state": SyncState.ERROR})
        (entry,) = read_lines(log_stream)
        assert entry["state"] == "error"

    def test_exception_is_included(self, log_stream):
        logger = logging.getLogger("colorcard_sync.sync")
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logger.exception("Flush failed unexpectedly")

        (entry,) = read_lines(log_stream)
        assert "RuntimeError: boom" in entry["exception"]

    def test_adapter_keeps_call_context(self, log_stream):
        logger = logging.getLogger("colorcard_sync.sync")
        adapter = SyncLoggerAdapter(logger, {"collection": "colorCards"})
        adapter.info("Deleted record", extra={"record_id": "r1"})

        (entry,) = read_lines(log_stream)
        assert entry["collection"] == "colorCards"
        assert entry["record_id"] == "r1"

    @pytest.mark.asyncio
    async def test_coordinator_logs_carry_sync_context(
        self, log_stream, coordinator, monitor, remote_store
    ):
        record = await coordinator.generate("A1B2C3")
        remote_store.fail_with = ValueError("quota exceeded")
        monitor.set_reachable(True)
        await monitor.wait_delivered()
        await coordinator.wait_for_sync()

        (generated,) = entries(log_stream, "Generated record A1B2C3")
        assert generated["record_id"] == record.record_id
        assert generated["collection"] == "colorCards"

        (failed,) = entries(log_stream, "Flush failed")
        assert failed["level"] == "WARNING"
        assert failed["error_kind"] == "remote_rejected"

        states = [entry["state"] for entry in entries(log_stream, "Sync state")]
        assert states[-1] == "error"


class TestExceptions:
    def test_hierarchy(self):
        for error in (
            RemoteUnreachableError(),
            RemoteRejectedError("denied"),
            CorruptDataError("saved_colors"),
        ):
            assert isinstance(error, SyncError)
            assert isinstance(error, ColorSyncError)

    def test_kinds_and_details(self):
        cause = ValueError("bad json")
        error = CorruptDataError("saved_colors", cause)
        assert error.kind == SyncErrorKind.CORRUPT
        assert error.details == {"kind": "corrupt", "cause": "bad json", "key": "saved_colors"}

        rejected = RemoteRejectedError("denied", status_code=403, record_id="r1")
        assert rejected.details["status_code"] == 403
        assert rejected.details["record_id"] == "r1"
        assert RemoteUnreachableError().kind == SyncErrorKind.UNREACHABLE

    def test_storage_error_message(self):
        error = StorageIOError("write", "/tmp/x.json", OSError("disk full"))
        assert str(error) == "Storage I/O error during write: /tmp/x.json"
        assert error.details["cause"] == "disk full"
