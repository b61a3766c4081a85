"""Cascade decision engine: rule, then k-NN, then the LLM."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from inbox_triage.core.categories import CategoryTable
from inbox_triage.core.config import ClassifierSettings
from inbox_triage.core.errors import TriageError
from inbox_triage.core.interfaces import ClassifierStage, Embedder, IndexSource
from inbox_triage.core.models import (
    ClassificationResult,
    ClassificationSource,
    EmailRecord,
)

from .classifier import LLMLabelClassifier
from .llm import LLMClient
from .rules import RuleClassifier
from .similarity import SimilarityClassifier

LOGGER = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.6


class CascadeClassifier:
    """Evaluate stages in order and stop at the first confident answer.

    Rule and LLM results are confident by construction. A k-NN result must
    reach ``threshold`` or the cascade moves on.
    """

    def __init__(
        self,
        stages: Sequence[ClassifierStage],
        *,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> None:
        if not stages:
            raise ValueError("At least one classifier stage is required")
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be within [0, 1]")
        self._stages = tuple(stages)
        self._threshold = threshold

    @property
    def stages(self) -> tuple[ClassifierStage, ...]:
        return self._stages

    def decide(self, email: EmailRecord) -> ClassificationResult:
        """Return the label of the first stage that answers confidently."""
        for stage in self._stages:
            result = stage.attempt(email)
            if result is None:
                LOGGER.debug("Stage %s abstained for %s", stage.name, email.id)
                continue
            if not self._accepts(result):
                LOGGER.debug(
                    "Stage %s below threshold for %s: %s (%.2f)",
                    stage.name,
                    email.id,
                    result.label,
                    result.confidence,
                )
                continue
            LOGGER.info(
                "Labelled %s as %s via %s (confidence %.2f)",
                email.id,
                result.label,
                result.source.value,
                result.confidence,
            )
            return result
        raise TriageError(f"No classifier stage produced a label for {email.id}")

    def _accepts(self, result: ClassificationResult) -> bool:
        if result.source is ClassificationSource.KNN:
            return result.confidence >= self._threshold
        return True


def build_default_cascade(
    table: CategoryTable,
    index: IndexSource,
    embedder: Embedder,
    llm_client: LLMClient,
    settings: ClassifierSettings | None = None,
) -> CascadeClassifier:
    """Assemble the rule → k-NN → LLM cascade."""
    settings = settings or ClassifierSettings()
    stages: list[ClassifierStage] = [
        RuleClassifier(table),
        SimilarityClassifier(index, embedder, k=settings.knn_k),
        LLMLabelClassifier(llm_client, table),
    ]
    return CascadeClassifier(stages, threshold=settings.confidence_threshold)


__all__ = ["CascadeClassifier", "DEFAULT_THRESHOLD", "build_default_cascade"]
