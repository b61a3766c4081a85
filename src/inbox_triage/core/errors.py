"""Exception taxonomy shared by the triage core and its collaborators."""

from __future__ import annotations

from pathlib import Path


class TriageError(RuntimeError):
    """Base class for errors raised by the triage core."""


class NotFoundError(TriageError):
    """Raised when a requested thread or message does not exist."""


class UpstreamError(TriageError):
    """Raised when the mail, embedding, or completion collaborator fails.

    The failure is recoverable; callers may retry the whole operation.
    """


class CorruptStoreError(TriageError):
    """Raised when a persisted file cannot be read or decoded.

    Attributes:
        path: Location of the unreadable store.
    """

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(f"{message}: {path}")
        self.path = path


__all__ = ["CorruptStoreError", "NotFoundError", "TriageError", "UpstreamError"]
