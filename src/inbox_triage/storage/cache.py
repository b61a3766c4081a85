"""Thread-keyed cache for summaries and reply drafts with TTL support."""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from ..core.config import CacheSettings, StorageSettings
from ..core.datetime_utils import parse_datetime, serialize_datetime, utcnow
from ..core.errors import CorruptStoreError
from ..core.models import CacheRecord
from .files import read_json, write_json_atomic

LOGGER = logging.getLogger(__name__)


class ResultCache:
    """Durable cache mirrored in memory and flushed on every write.

    Summaries are keyed by thread id and drafts by ``(thread id, anchor id)``.
    Records are replaced whole; concurrent writers to the same key follow
    last-write-wins. Each write re-reads the file before replacing it so keys
    written by other processes survive, though two processes writing at the
    same instant can still lose one update. Staleness is decided by callers through :meth:`is_fresh`
    and never removes a record.
    """

    def __init__(
        self,
        storage: StorageSettings,
        settings: CacheSettings | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Open the cache file and load its records."""
        self._path = Path(storage.cache_path)
        self._ttl = timedelta(seconds=(settings or CacheSettings()).ttl_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._records = self._read()
        LOGGER.debug(
            "Opened cache %s with %d record(s)", self._path, len(self._records)
        )

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def get(self, key: str) -> CacheRecord | None:
        """Return the stored record for ``key`` or ``None`` if never written."""
        record = self._records.get(key)
        if record is None:
            LOGGER.debug("Cache miss for key: %s", key)
            return None
        LOGGER.debug("Cache hit for key: %s", key)
        return CacheRecord(
            payload=copy.deepcopy(record.payload), written_at=record.written_at
        )

    def put(self, key: str, payload: dict[str, Any]) -> CacheRecord:
        """Replace the record for ``key`` and persist before returning."""
        record = CacheRecord(payload=copy.deepcopy(payload), written_at=self._clock())
        with self._lock:
            # Merge into the file as it is now so other writers keep their keys.
            updated = self._read()
            updated[key] = record
            _write(self._path, updated)
            self._records = updated
        LOGGER.debug("Cache set for key: %s", key)
        return CacheRecord(payload=copy.deepcopy(payload), written_at=record.written_at)

    def is_fresh(self, record: CacheRecord, now: datetime | None = None) -> bool:
        """Return ``True`` if ``record`` is younger than the configured TTL."""
        return record.is_fresh(self._ttl, now or self._clock())

    def get_summary(self, thread_id: str) -> CacheRecord | None:
        return self.get(thread_id)

    def put_summary(self, thread_id: str, payload: dict[str, Any]) -> CacheRecord:
        return self.put(thread_id, payload)

    def get_draft(self, thread_id: str, anchor_id: str) -> CacheRecord | None:
        return self.get(self.draft_key(thread_id, anchor_id))

    def put_draft(
        self, thread_id: str, anchor_id: str, payload: dict[str, Any]
    ) -> CacheRecord:
        return self.put(self.draft_key(thread_id, anchor_id), payload)

    def size(self) -> int:
        """Get current number of records."""
        return len(self._records)

    @staticmethod
    def draft_key(thread_id: str, anchor_id: str) -> str:
        """Build the key under which a thread draft is stored."""
        return f"draft:{thread_id}:{anchor_id}"

    def _read(self) -> dict[str, CacheRecord]:
        document = read_json(self._path, default={})
        if not isinstance(document, dict):
            LOGGER.error("Cache at %s is not an object", self._path)
            raise CorruptStoreError("Cache document is not an object", self._path)
        records: dict[str, CacheRecord] = {}
        for key, raw in document.items():
            try:
                payload = raw["payload"]
                if not isinstance(payload, dict):
                    raise TypeError("payload must be an object")
                records[key] = CacheRecord(
                    payload=payload, written_at=parse_datetime(raw["ts"])
                )
            except (KeyError, TypeError, ValueError) as exc:
                LOGGER.error(
                    "Malformed cache record %s in %s: %s", key, self._path, exc
                )
                raise CorruptStoreError(
                    f"Malformed cache record {key!r}", self._path
                ) from exc
        return records


def _write(path: Path, records: dict[str, CacheRecord]) -> None:
    document = {
        key: {"payload": record.payload, "ts": serialize_datetime(record.written_at)}
        for key, record in records.items()
    }
    write_json_atomic(path, document, indent=2)


__all__ = ["ResultCache"]
