"""Append-only log of labeled examples."""

from __future__ import annotations

import logging
from pathlib import Path

from ..core.config import StorageSettings
from ..core.errors import CorruptStoreError
from ..core.models import LabeledExample
from .files import append_jsonl, iter_jsonl

LOGGER = logging.getLogger(__name__)


class LabeledExampleLog:
    """JSON-lines log written by the labeling workflow and read by the index."""

    def __init__(self, settings: StorageSettings) -> None:
        self._path = Path(settings.labeled_path)

    @property
    def path(self) -> Path:
        return self._path

    def read_all(self) -> list[LabeledExample]:
        """Return every example in log order."""
        examples: list[LabeledExample] = []
        for record in iter_jsonl(self._path):
            try:
                examples.append(
                    LabeledExample(
                        subject=str(record["subject"]),
                        body=str(record["body"]),
                        label=str(record["label"]),
                        message_id=record.get("id"),
                    )
                )
            except KeyError as exc:
                LOGGER.error("Labeled example in %s lacks %s", self._path, exc)
                raise CorruptStoreError(
                    f"Labeled example missing field {exc}", self._path
                ) from exc
        return examples

    def append(self, example: LabeledExample) -> None:
        """Record a new example; existing lines are never rewritten."""
        record: dict[str, object] = {
            "key": example.key,
            "subject": example.subject,
            "body": example.body,
            "label": example.label,
        }
        if example.message_id is not None:
            record["id"] = example.message_id
        append_jsonl(self._path, record)
        LOGGER.info(
            "Appended labeled example '%s' as %s", example.subject, example.label
        )


__all__ = ["LabeledExampleLog"]
