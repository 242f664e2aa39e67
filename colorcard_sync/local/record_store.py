"""
Local record store.

Persists the full current set of color records as one JSON value.
Every save overwrites the previous set.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence

from ..exceptions import CorruptDataError
from ..records import ColorRecord
from .kv_store import KeyValueStore

logger = logging.getLogger(__name__)

RECORDS_KEY = "saved_colors"


def encode_records(records: Sequence[ColorRecord]) -> bytes:
    return json.dumps([r.to_dict() for r in records]).encode("utf-8")


def decode_records(blob: bytes, key: str = RECORDS_KEY) -> list[ColorRecord]:
    """Decode a persisted record list.

    Raises:
        CorruptDataError: If the blob is not a JSON list of valid records
    """
    try:
        data = json.loads(blob.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise CorruptDataError(key, e) from e
    if not isinstance(data, list):
        raise CorruptDataError(key, TypeError(f"expected list, got {type(data).__name__}"))
    try:
        return [ColorRecord.from_dict(item) for item in data]
    except CorruptDataError as e:
        raise CorruptDataError(key, e.cause) from e


class RecordStore:
    """Durable ordered collection of color records.

    Not safe for concurrent use on its own; the sync coordinator
    serializes all access.
    """

    def __init__(self, kv: KeyValueStore, key: str = RECORDS_KEY):
        self.kv = kv
        self.key = key

    async def save(self, records: Sequence[ColorRecord]) -> None:
        """Persist the full current set, replacing any prior set."""
        await self.kv.set(self.key, encode_records(records))

    async def load(self) -> list[ColorRecord]:
        """Return the persisted set, or an empty list if none or undecodable."""
        blob = await self.kv.get(self.key)
        if blob is None:
            return []
        try:
            return decode_records(blob, self.key)
        except CorruptDataError as e:
            logger.warning(f"Discarding unreadable records under '{self.key}': {e.cause}")
            return []
