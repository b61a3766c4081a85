"""Tests for the cascade decision engine and the LLM label classifier."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from inbox_triage.core.categories import DEFAULT_CATEGORY_TABLE
from inbox_triage.core.config import ClassifierSettings
from inbox_triage.core.errors import TriageError
from inbox_triage.core.models import (
    ClassificationResult,
    ClassificationSource,
    EmailRecord,
    IndexEntry,
)
from inbox_triage.intelligence.cascade import CascadeClassifier, build_default_cascade
from inbox_triage.intelligence.classifier import LLMLabelClassifier, match_label
from inbox_triage.intelligence.llm import LLMError


class StubLLM:
    """Completion stub returning a canned label."""

    provider_id = "stub-llm"

    def __init__(self, response: str = "Recruiters") -> None:
        self.response = response
        self.prompts: list[str] = []

    def generate(self, prompt: str, *, temperature: float | None = None) -> str:
        self.prompts.append(prompt)
        return self.response


class FailingLLM:
    provider_id = "failing-llm"

    def generate(self, prompt: str, *, temperature: float | None = None) -> str:
        del prompt, temperature
        raise LLMError("completion service unavailable")


class StubIndex:
    def __init__(self, entries: Sequence[IndexEntry] = ()) -> None:
        self.entries = list(entries)
        self.loads = 0

    def load(self) -> list[IndexEntry]:
        self.loads += 1
        return list(self.entries)


class StubEmbedder:
    def __init__(self) -> None:
        self.calls = 0

    def embed(self, text: str) -> Sequence[float]:
        self.calls += 1
        return [1.0, 0.0]


class FixedStage:
    """Stage stub returning a preset result."""

    def __init__(self, name: str, result: ClassificationResult | None) -> None:
        self.name = name
        self.result = result
        self.calls = 0

    def attempt(self, email: EmailRecord) -> ClassificationResult | None:
        self.calls += 1
        return self.result


def _email(subject: str, body: str) -> EmailRecord:
    return EmailRecord(
        id="m1",
        thread_id="t1",
        subject=subject,
        sender="someone@example.com",
        date="",
        body=body,
    )


def test_rule_match_short_circuits_later_stages() -> None:
    index = StubIndex([IndexEntry("k", "Personal", (1.0, 0.0))])
    embedder = StubEmbedder()
    llm = StubLLM("Personal")
    cascade = build_default_cascade(DEFAULT_CATEGORY_TABLE, index, embedder, llm)

    result = cascade.decide(_email("Interview request", "We have an opening for you"))

    assert result == ClassificationResult("Recruiters", 1.0, ClassificationSource.RULE)
    assert index.loads == 0
    assert embedder.calls == 0
    assert llm.prompts == []


def test_confident_knn_answer_skips_llm() -> None:
    entries = [IndexEntry(f"k{i}", "Social Media", (1.0, 0.0)) for i in range(3)]
    llm = StubLLM()
    cascade = build_default_cascade(
        DEFAULT_CATEGORY_TABLE, StubIndex(entries), StubEmbedder(), llm
    )

    result = cascade.decide(_email("Quarterly invoice", "Attached as discussed"))

    assert result.source is ClassificationSource.KNN
    assert result.label == "Social Media"
    assert llm.prompts == []


def test_low_confidence_knn_falls_through_to_llm() -> None:
    entries = [
        IndexEntry("a", "Personal", (1.0, 0.0)),
        IndexEntry("b", "Recruiters", (1.0, 0.0)),
    ]
    llm = StubLLM("Label: recruiters")
    cascade = build_default_cascade(
        DEFAULT_CATEGORY_TABLE, StubIndex(entries), StubEmbedder(), llm
    )

    result = cascade.decide(_email("Quarterly invoice", "Attached as discussed"))

    assert result == ClassificationResult("Recruiters", 1.0, ClassificationSource.LLM)
    assert len(llm.prompts) == 1


def test_empty_index_goes_straight_to_llm() -> None:
    embedder = StubEmbedder()
    cascade = build_default_cascade(
        DEFAULT_CATEGORY_TABLE, StubIndex(), embedder, StubLLM("Personal")
    )

    result = cascade.decide(_email("Quarterly invoice", "Attached as discussed"))

    assert result.source is ClassificationSource.LLM
    assert embedder.calls == 0


def test_threshold_comes_from_settings() -> None:
    entries = [
        IndexEntry("a", "Personal", (1.0, 0.0)),
        IndexEntry("b", "Recruiters", (1.0, 0.0)),
    ]
    cascade = build_default_cascade(
        DEFAULT_CATEGORY_TABLE,
        StubIndex(entries),
        StubEmbedder(),
        StubLLM(),
        ClassifierSettings(confidence_threshold=0.5),
    )

    result = cascade.decide(_email("Quarterly invoice", "Attached as discussed"))

    assert result == ClassificationResult("Personal", 0.5, ClassificationSource.KNN)


def test_stale_embedding_dimension_falls_through_to_llm() -> None:
    entries = [IndexEntry(f"k{i}", "Social Media", (1.0, 0.0, 0.0)) for i in range(3)]
    llm = StubLLM("Personal")
    cascade = build_default_cascade(
        DEFAULT_CATEGORY_TABLE, StubIndex(entries), StubEmbedder(), llm
    )

    result = cascade.decide(_email("Quarterly invoice", "Attached as discussed"))

    assert result == ClassificationResult("Personal", 1.0, ClassificationSource.LLM)
    assert len(llm.prompts) == 1


def test_fallback_failure_propagates_as_upstream_error() -> None:
    cascade = build_default_cascade(
        DEFAULT_CATEGORY_TABLE, StubIndex(), StubEmbedder(), FailingLLM()
    )

    with pytest.raises(LLMError):
        cascade.decide(_email("Quarterly invoice", "Attached as discussed"))


def test_all_stages_abstaining_raises() -> None:
    stage = FixedStage("noop", None)
    cascade = CascadeClassifier([stage])

    with pytest.raises(TriageError):
        cascade.decide(_email("x", "y"))
    assert stage.calls == 1


def test_cascade_requires_stages_and_valid_threshold() -> None:
    with pytest.raises(ValueError):
        CascadeClassifier([])
    with pytest.raises(ValueError):
        CascadeClassifier([FixedStage("noop", None)], threshold=1.5)


def test_match_label_is_case_insensitive_with_fallback() -> None:
    assert match_label("  social media\n", DEFAULT_CATEGORY_TABLE) == "Social Media"
    assert match_label("PERSONAL", DEFAULT_CATEGORY_TABLE) == "Personal"
    assert match_label("Newsletter", DEFAULT_CATEGORY_TABLE) == "Personal"


def test_llm_classifier_prompt_lists_labels_and_truncates_body() -> None:
    llm = StubLLM("Recruiters")
    classifier = LLMLabelClassifier(llm, DEFAULT_CATEGORY_TABLE)

    result = classifier.attempt(_email("Hello", "x" * 2000 + "TAIL"))

    assert result.label == "Recruiters"
    prompt = llm.prompts[0]
    assert "Recruiters, Personal, Social Media" in prompt
    assert "Notifications/digests from social platforms" in prompt
    assert "x" * 1500 in prompt
    assert "TAIL" not in prompt
