"""Tests for keyword rule classification and the category table."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from inbox_triage.core.categories import (
    DEFAULT_CATEGORY_TABLE,
    Category,
    CategoryTable,
    load_category_table,
)
from inbox_triage.core.models import ClassificationSource, EmailRecord
from inbox_triage.intelligence.rules import RuleClassifier


def _email(subject: str, body: str) -> EmailRecord:
    return EmailRecord(
        id="1",
        thread_id="t1",
        subject=subject,
        sender="someone@example.com",
        date="",
        body=body,
    )


def test_strictly_greatest_count_wins() -> None:
    classifier = RuleClassifier(DEFAULT_CATEGORY_TABLE)

    assert classifier.classify("Interview for the engineering role") == "Recruiters"


def test_tie_at_maximum_abstains() -> None:
    classifier = RuleClassifier(DEFAULT_CATEGORY_TABLE)

    scores = classifier.scores("Your LinkedIn job alert")

    assert scores["Recruiters"] == 1
    assert scores["Social Media"] == 1
    assert classifier.classify("Your LinkedIn job alert") is None


def test_no_hits_abstains() -> None:
    classifier = RuleClassifier(DEFAULT_CATEGORY_TABLE)

    assert classifier.classify("Quarterly invoice attached") is None


def test_keyword_counts_once_and_ignores_case() -> None:
    classifier = RuleClassifier(DEFAULT_CATEGORY_TABLE)

    scores = classifier.scores("REDDIT reddit Reddit")

    assert scores["Social Media"] == 1


def test_attempt_scans_subject_and_body() -> None:
    classifier = RuleClassifier(DEFAULT_CATEGORY_TABLE)

    result = classifier.attempt(
        _email("New follower", "Someone followed you on Instagram")
    )

    assert result is not None
    assert result.label == "Social Media"
    assert result.confidence == 1.0
    assert result.source is ClassificationSource.RULE


def test_subject_and_body_are_joined_with_a_space() -> None:
    classifier = RuleClassifier(DEFAULT_CATEGORY_TABLE)

    result = classifier.attempt(_email("Hi", "Sam, long overdue"))

    assert result is not None
    assert result.label == "Personal"


def test_category_table_rejects_unknown_fallback() -> None:
    with pytest.raises(ValueError):
        CategoryTable(categories=(Category(name="Work"),), fallback_label="Home")


def test_load_category_table_from_file(tmp_path: Path) -> None:
    path = tmp_path / "categories.json"
    path.write_text(
        json.dumps(
            {
                "categories": [
                    {
                        "name": "Billing",
                        "definition": "Invoices",
                        "keywords": ["invoice"],
                    },
                    {"name": "Other", "definition": "Everything else"},
                ],
                "fallback_label": "Other",
            }
        ),
        encoding="utf-8",
    )

    table = load_category_table(path)

    assert table.labels == ("Billing", "Other")
    assert RuleClassifier(table).classify("Quarterly invoice attached") == "Billing"


def test_load_category_table_rejects_malformed_file(tmp_path: Path) -> None:
    path = tmp_path / "categories.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError):
        load_category_table(path)


def test_missing_path_uses_default_table() -> None:
    assert load_category_table(None) is DEFAULT_CATEGORY_TABLE
