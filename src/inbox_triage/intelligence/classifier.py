"""LLM-backed label classifier used as the last cascade stage."""

from __future__ import annotations

import logging

from inbox_triage.core.categories import CategoryTable
from inbox_triage.core.models import (
    ClassificationResult,
    ClassificationSource,
    EmailRecord,
)

from .llm import LLMClient
from .prompts import build_classification_prompt

LOGGER = logging.getLogger(__name__)


class LLMLabelClassifier:
    """Ask the completion model for a label; always returns one."""

    name = "llm"

    def __init__(self, llm_client: LLMClient, table: CategoryTable) -> None:
        self._llm_client = llm_client
        self._table = table

    def classify(self, email: EmailRecord) -> str:
        """Return the label named in the model output or the fallback label."""
        prompt = build_classification_prompt(email, self._table)
        raw_output = self._llm_client.generate(prompt, temperature=0.0)
        return match_label(raw_output, self._table)

    def attempt(self, email: EmailRecord) -> ClassificationResult:
        label = self.classify(email)
        return ClassificationResult(
            label=label, confidence=1.0, source=ClassificationSource.LLM
        )


def match_label(raw_output: str, table: CategoryTable) -> str:
    """Return the first table label contained in ``raw_output``, ignoring case."""
    lowered = raw_output.strip().lower()
    for label in table.labels:
        if label.lower() in lowered:
            return label
    LOGGER.info(
        "LLM output %r named no known label; using %s",
        raw_output[:80],
        table.fallback_label,
    )
    return table.fallback_label


__all__ = ["LLMLabelClassifier", "match_label"]
