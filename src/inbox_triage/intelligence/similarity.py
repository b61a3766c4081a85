"""Nearest-neighbour voting over the embedding index."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from inbox_triage.core.interfaces import Embedder, IndexSource
from inbox_triage.core.models import (
    ClassificationResult,
    ClassificationSource,
    EmailRecord,
    IndexEntry,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_K = 5


@dataclass(slots=True, frozen=True)
class Neighbour:
    """Index entry scored against a query."""

    label: str
    score: float
    position: int


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return ``dot(a, b) / (|a| * |b|)``, or 0.0 when either norm is zero."""
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def rank_neighbours(
    query: Sequence[float], entries: Sequence[IndexEntry]
) -> list[Neighbour]:
    """Score every entry and order by similarity, keeping index order on ties."""
    scored = [
        Neighbour(
            label=entry.label,
            score=cosine_similarity(query, entry.vector),
            position=i,
        )
        for i, entry in enumerate(entries)
    ]
    # sorted() is stable, so equal scores keep their index order.
    return sorted(scored, key=lambda neighbour: -neighbour.score)


def vote(ranked: Sequence[Neighbour], k: int) -> tuple[str, float] | None:
    """Majority label among the top ``k`` and its share of the votes used.

    Equal vote counts go to the label whose best-ranked member comes first.
    """
    if k < 1:
        raise ValueError("k must be at least 1")
    top = ranked[:k]
    if not top:
        return None
    counts: dict[str, int] = {}
    for neighbour in top:
        # dict keeps first-insertion order, i.e. rank order of each label's best member.
        counts[neighbour.label] = counts.get(neighbour.label, 0) + 1
    best = max(counts.values())
    label = next(label for label, count in counts.items() if count == best)
    return label, best / len(top)


class SimilarityClassifier:
    """k-NN classifier over the reconciled embedding index."""

    name = "knn"

    def __init__(
        self, index: IndexSource, embedder: Embedder, *, k: int = DEFAULT_K
    ) -> None:
        if k < 1:
            raise ValueError("k must be at least 1")
        self._index = index
        self._embedder = embedder
        self._k = k

    def classify(
        self, text: str, k: int | None = None
    ) -> ClassificationResult | None:
        """Return the voted label and confidence, or ``None`` on an empty index."""
        entries = self._index.load()
        if not entries:
            LOGGER.debug("Embedding index is empty; k-NN abstains")
            return None
        query = self._embedder.embed(text)
        comparable = [entry for entry in entries if len(entry.vector) == len(query)]
        if len(comparable) < len(entries):
            # Left behind by a different embedding model; re-embed to recover.
            LOGGER.warning(
                "Ignoring %d index entries whose dimension differs from %d",
                len(entries) - len(comparable),
                len(query),
            )
        if not comparable:
            return None
        ranked = rank_neighbours(query, comparable)
        outcome = vote(ranked, self._k if k is None else k)
        if outcome is None:
            return None
        label, confidence = outcome
        LOGGER.debug("k-NN voted %s with confidence %.2f", label, confidence)
        return ClassificationResult(
            label=label, confidence=confidence, source=ClassificationSource.KNN
        )

    def attempt(self, email: EmailRecord) -> ClassificationResult | None:
        return self.classify(email.classification_text)


__all__ = [
    "DEFAULT_K",
    "Neighbour",
    "SimilarityClassifier",
    "cosine_similarity",
    "rank_neighbours",
    "vote",
]
