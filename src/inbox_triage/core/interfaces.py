"""Protocol interfaces for decoupling components."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from .models import ClassificationResult, EmailRecord, IndexEntry


class MailProvider(Protocol):
    """Abstraction over the mailbox holding the user's threads."""

    def fetch_unread(self, limit: int) -> list[EmailRecord]:
        """Return up to ``limit`` unread messages, newest first."""
        raise NotImplementedError

    def get_thread(self, thread_id: str) -> list[EmailRecord]:
        """Return the messages of a thread in chronological order."""
        raise NotImplementedError

    def get_or_create_label(self, name: str) -> str:
        """Return the identifier of label ``name``, creating it if needed."""
        raise NotImplementedError

    def apply_label(self, message_id: str, label_id: str, mark_read: bool) -> None:
        """Attach a label to a message and optionally mark it read."""
        raise NotImplementedError


class Embedder(Protocol):
    """Turns text into a fixed-length vector."""

    def embed(self, text: str) -> Sequence[float]:
        """Return the embedding of ``text``."""
        raise NotImplementedError


class IndexSource(Protocol):
    """Supplies the reconciled embedding index."""

    def load(self) -> list[IndexEntry]:
        """Return every index entry after reconciliation."""
        raise NotImplementedError


class ClassifierStage(Protocol):
    """One step of the classification cascade."""

    name: str

    def attempt(self, email: EmailRecord) -> ClassificationResult | None:
        """Return a label decision or ``None`` to abstain."""
        raise NotImplementedError


__all__ = ["ClassifierStage", "Embedder", "IndexSource", "MailProvider"]
