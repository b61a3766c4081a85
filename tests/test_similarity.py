"""Tests for cosine similarity, k-NN voting, and the similarity classifier."""

from __future__ import annotations

import math
from collections.abc import Sequence

import pytest

from inbox_triage.core.models import ClassificationSource, IndexEntry
from inbox_triage.intelligence.similarity import (
    SimilarityClassifier,
    cosine_similarity,
    rank_neighbours,
    vote,
)

QUERY = (1.0, 0.0)


class StaticIndex:
    """Index stub returning a fixed entry list."""

    def __init__(self, entries: Sequence[IndexEntry]) -> None:
        self.entries = list(entries)

    def load(self) -> list[IndexEntry]:
        return list(self.entries)


class RecordingEmbedder:
    """Embedder stub returning one vector and counting calls."""

    def __init__(self, vector: Sequence[float] = QUERY) -> None:
        self.vector = list(vector)
        self.calls: list[str] = []

    def embed(self, text: str) -> Sequence[float]:
        self.calls.append(text)
        return self.vector


def _at_similarity(similarity: float) -> tuple[float, float]:
    """Unit vector whose cosine similarity with ``QUERY`` is ``similarity``."""
    return similarity, math.sqrt(1.0 - similarity**2)


def _entry(key: str, label: str, vector: Sequence[float]) -> IndexEntry:
    return IndexEntry(key=key, label=label, vector=tuple(vector))


def test_cosine_similarity_is_scale_invariant() -> None:
    a = (0.3, -1.2, 4.0)
    b = (2.0, 0.5, 1.0)

    base = cosine_similarity(a, b)

    assert cosine_similarity([x * 7.5 for x in a], b) == pytest.approx(base)
    assert cosine_similarity(a, [x * 0.01 for x in b]) == pytest.approx(base)


def test_cosine_similarity_zero_vector_is_zero() -> None:
    assert cosine_similarity((0.0, 0.0), (1.0, 2.0)) == 0.0
    assert cosine_similarity((1.0, 2.0), (0.0, 0.0)) == 0.0


def test_cosine_similarity_rejects_length_mismatch() -> None:
    with pytest.raises(ValueError):
        cosine_similarity((1.0,), (1.0, 2.0))


def test_majority_beats_single_nearest_neighbour() -> None:
    entries = [
        _entry("a1", "A", _at_similarity(0.9)),
        _entry("a2", "A", _at_similarity(0.8)),
        _entry("a3", "A", _at_similarity(0.7)),
        _entry("b1", "B", _at_similarity(0.95)),
    ]

    ranked = rank_neighbours(QUERY, entries)

    assert [n.label for n in ranked] == ["B", "A", "A", "A"]
    assert vote(ranked, 4) == ("A", 0.75)


def test_equal_scores_keep_index_order() -> None:
    entries = [
        _entry("first", "X", (1.0, 1.0)),
        _entry("second", "Y", (1.0, 1.0)),
    ]

    ranked = rank_neighbours(QUERY, entries)

    assert [n.position for n in ranked] == [0, 1]


def test_vote_tie_goes_to_label_ranked_first() -> None:
    entries = [
        _entry("b1", "B", _at_similarity(0.9)),
        _entry("a1", "A", _at_similarity(0.95)),
        _entry("b2", "B", _at_similarity(0.5)),
        _entry("a2", "A", _at_similarity(0.4)),
    ]

    label, confidence = vote(rank_neighbours(QUERY, entries), 4)

    assert label == "A"
    assert confidence == 0.5


def test_vote_rejects_non_positive_k() -> None:
    with pytest.raises(ValueError):
        vote([], 0)


def test_empty_index_returns_none_without_embedding() -> None:
    embedder = RecordingEmbedder()
    classifier = SimilarityClassifier(StaticIndex([]), embedder)

    assert classifier.classify("anything") is None
    assert embedder.calls == []


@pytest.mark.parametrize("k", [1, 2, 5, 50])
def test_single_entry_index_is_fully_confident(k: int) -> None:
    index = StaticIndex([_entry("only", "Personal", (0.2, 0.9))])
    classifier = SimilarityClassifier(index, RecordingEmbedder())

    result = classifier.classify("dinner on friday?", k=k)

    assert result is not None
    assert result.label == "Personal"
    assert result.confidence == 1.0
    assert result.source is ClassificationSource.KNN


def test_confidence_uses_entries_actually_voting() -> None:
    index = StaticIndex(
        [
            _entry("a", "A", _at_similarity(0.9)),
            _entry("b", "B", _at_similarity(0.1)),
        ]
    )
    classifier = SimilarityClassifier(index, RecordingEmbedder(), k=5)

    result = classifier.classify("query")

    assert result is not None
    assert result.label == "A"
    assert result.confidence == 0.5


def test_entries_of_another_dimension_are_ignored(
    caplog: pytest.LogCaptureFixture,
) -> None:
    index = StaticIndex(
        [
            _entry("old", "Recruiters", (1.0, 0.0, 0.0)),
            _entry("new", "Personal", (0.9, 0.1)),
        ]
    )
    classifier = SimilarityClassifier(index, RecordingEmbedder())

    with caplog.at_level("WARNING"):
        result = classifier.classify("query")

    assert result is not None
    assert result.label == "Personal"
    assert result.confidence == 1.0
    assert "dimension differs" in caplog.text


def test_index_with_only_foreign_dimensions_abstains() -> None:
    index = StaticIndex([_entry("old", "Recruiters", (1.0, 0.0, 0.0))])
    classifier = SimilarityClassifier(index, RecordingEmbedder())

    assert classifier.classify("query") is None
