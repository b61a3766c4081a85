"""Rule-based classification over the configured keyword table."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from inbox_triage.core.categories import CategoryTable
from inbox_triage.core.models import (
    ClassificationResult,
    ClassificationSource,
    EmailRecord,
)

LOGGER = logging.getLogger(__name__)


class RuleClassifier:
    """Pick the category with strictly the most keyword hits.

    A category scores one hit per keyword found anywhere in the lowercased
    text. No hits, or a tie for the highest score, means no rule applies.
    """

    name = "rule"

    def __init__(self, table: CategoryTable) -> None:
        self._rules: tuple[tuple[str, tuple[str, ...]], ...] = tuple(
            (
                category.name,
                tuple(keyword.lower() for keyword in category.keywords),
            )
            for category in table.categories
        )

    def scores(self, text: str) -> dict[str, int]:
        """Return keyword hit counts per category in table order."""
        haystack = text.lower()
        return {
            label: _count_hits(keywords, haystack) for label, keywords in self._rules
        }

    def classify(self, text: str) -> str | None:
        """Return the winning category or ``None``."""
        scores = self.scores(text)
        best = max(scores.values(), default=0)
        if best == 0:
            return None
        leaders = [label for label, hits in scores.items() if hits == best]
        if len(leaders) > 1:
            LOGGER.debug("Rule tie between %s at %d hit(s)", leaders, best)
            return None
        return leaders[0]

    def attempt(self, email: EmailRecord) -> ClassificationResult | None:
        label = self.classify(email.rule_text)
        if label is None:
            return None
        return ClassificationResult(
            label=label, confidence=1.0, source=ClassificationSource.RULE
        )


def _count_hits(keywords: Iterable[str], haystack: str) -> int:
    return sum(1 for keyword in keywords if keyword in haystack)


__all__ = ["RuleClassifier"]
