"""Incremental embedding index built from the labeled example log.

The durable index is a single JSON document replaced wholesale on every change,
so a crash leaves either the previous or the next complete index on disk.

Reconciliation is a read-modify-write of that document. A process-local lock
serialises the write half, but two processes reconciling at the same time can
lose each other's new entries (the lost keys are simply embedded again on the
next ``load``). Deployments with several concurrent writers need an external
mutex or a transactional store.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ..core.config import StorageSettings
from ..core.errors import CorruptStoreError, UpstreamError
from ..core.interfaces import Embedder
from ..core.models import IndexEntry, LabeledExample
from .examples import LabeledExampleLog
from .files import read_json, write_json_atomic

LOGGER = logging.getLogger(__name__)


class VectorIndexStore:
    """Persist (key, label, vector) triples without re-embedding known examples."""

    def __init__(
        self,
        settings: StorageSettings,
        example_log: LabeledExampleLog,
        embedder: Embedder,
    ) -> None:
        self._path = Path(settings.index_path)
        self._example_log = example_log
        self._embedder = embedder
        self._write_lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[IndexEntry]:
        """Return the index after embedding any example it does not cover yet."""
        entries = self._read_entries()
        known = {entry.key for entry in entries}
        pending = _pending_examples(self._example_log.read_all(), known)
        if not pending:
            return entries

        LOGGER.info("Embedding %d new labeled example(s)", len(pending))
        fresh: list[IndexEntry] = []
        for example in pending:
            try:
                vector = self._embedder.embed(example.text)
            except UpstreamError as exc:
                LOGGER.warning(
                    "Skipping labeled example '%s' this pass: %s", example.key, exc
                )
                continue
            fresh.append(
                IndexEntry(
                    key=example.key,
                    label=example.label,
                    vector=tuple(float(value) for value in vector),
                )
            )

        if not fresh:
            return entries
        return self.append(fresh)

    def append(self, entries: Iterable[IndexEntry]) -> list[IndexEntry]:
        """Persist entries with unseen keys and return the full index."""
        with self._write_lock:
            current = self._read_entries()
            known = {entry.key for entry in current}
            added = 0
            for entry in entries:
                if entry.key in known:
                    continue
                known.add(entry.key)
                current.append(entry)
                added += 1
            if added:
                write_json_atomic(self._path, [_encode(entry) for entry in current])
                LOGGER.info(
                    "Index now holds %d entries (%d added)", len(current), added
                )
            return current

    def _read_entries(self) -> list[IndexEntry]:
        document = read_json(self._path, default=[])
        if not isinstance(document, list):
            LOGGER.error("Index at %s is not a list", self._path)
            raise CorruptStoreError("Index document is not a list", self._path)
        return [self._decode(item) for item in document]

    def _decode(self, item: Any) -> IndexEntry:
        try:
            return IndexEntry(
                key=str(item["key"]),
                label=str(item["label"]),
                vector=tuple(float(value) for value in item["vec"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            LOGGER.error("Malformed index entry in %s: %s", self._path, exc)
            raise CorruptStoreError("Malformed index entry", self._path) from exc


def _pending_examples(
    examples: Iterable[LabeledExample], known: set[str]
) -> list[LabeledExample]:
    pending: list[LabeledExample] = []
    seen = set(known)
    for example in examples:
        key = example.key
        if key in seen:
            continue
        seen.add(key)
        pending.append(example)
    return pending


def _encode(entry: IndexEntry) -> dict[str, Any]:
    return {"key": entry.key, "label": entry.label, "vec": list(entry.vector)}


__all__ = ["VectorIndexStore"]
