"""Core domain models used across the application."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any

EXAMPLE_KEY_BODY_CHARS = 200


@dataclass(slots=True, frozen=True)
class EmailRecord:
    """Immutable plain-text view of one fetched message."""

    id: str
    thread_id: str
    subject: str
    sender: str
    date: str
    body: str

    @property
    def classification_text(self) -> str:
        """Text embedded by the k-NN stage."""
        return f"{self.subject}\n{self.body}"

    @property
    def rule_text(self) -> str:
        """Text scanned by the keyword rules."""
        return f"{self.subject} {self.body}"


@dataclass(slots=True, frozen=True)
class LabeledExample:
    """Ground-truth example appended by the labeling workflow."""

    subject: str
    body: str
    label: str
    message_id: str | None = None

    @property
    def key(self) -> str:
        """Collision-tolerant identity used to detect already embedded examples."""
        return example_key(self.subject, self.body)

    @property
    def text(self) -> str:
        return f"{self.subject}\n{self.body}"


@dataclass(slots=True, frozen=True)
class IndexEntry:
    """Embedding of a labeled example."""

    key: str
    label: str
    vector: tuple[float, ...]


class ClassificationSource(StrEnum):
    """Cascade stage that produced a label."""

    RULE = "rule"
    KNN = "knn"
    LLM = "llm"


@dataclass(slots=True, frozen=True)
class ClassificationResult:
    """Label decision with its confidence and originating stage."""

    label: str
    confidence: float
    source: ClassificationSource

    def as_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "confidence": self.confidence,
            "source": self.source.value,
        }


@dataclass(slots=True)
class CacheRecord:
    """Stored payload together with the time it was written."""

    payload: dict[str, Any]
    written_at: datetime

    def is_fresh(self, ttl: timedelta, now: datetime) -> bool:
        """Return ``True`` while ``now`` is inside the freshness window."""
        return now - self.written_at < ttl


@dataclass(slots=True)
class ThreadSummary:
    """Label and summary computed for the newest message of a thread."""

    subject: str
    label: str
    summary: str
    source: str = ClassificationSource.LLM.value
    confidence: float = 1.0

    def to_payload(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "label": self.label,
            "summary": self.summary,
            "source": self.source,
            "confidence": self.confidence,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ThreadSummary:
        return cls(
            subject=str(payload.get("subject", "")),
            label=str(payload.get("label", "")),
            summary=str(payload.get("summary", "")),
            source=str(payload.get("source", ClassificationSource.LLM.value)),
            confidence=float(payload.get("confidence", 1.0)),
        )


@dataclass(slots=True)
class ReplyDraft:
    """Reply drafted against an anchor message of a thread."""

    draft: str
    last_from_me: bool
    reply_to_id: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "draft": self.draft,
            "lastFromMe": self.last_from_me,
            "replyToId": self.reply_to_id,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ReplyDraft:
        return cls(
            draft=str(payload.get("draft", "")),
            last_from_me=bool(payload.get("lastFromMe", False)),
            reply_to_id=str(payload.get("replyToId", "")),
        )


def example_key(subject: str, body: str) -> str:
    """Derive the labeled example key from the subject and a body prefix."""
    return f"{subject}||{body[:EXAMPLE_KEY_BODY_CHARS]}"


__all__ = [
    "CacheRecord",
    "ClassificationResult",
    "ClassificationSource",
    "EmailRecord",
    "IndexEntry",
    "LabeledExample",
    "ReplyDraft",
    "ThreadSummary",
    "example_key",
]
