"""Category table shared by the rule stage and the LLM classifier."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, model_validator

LOGGER = logging.getLogger(__name__)


class Category(BaseModel):
    """A triage label with its definition and keyword hints."""

    name: str = Field(min_length=1)
    definition: str = Field(default="", description="Shown to the LLM classifier")
    keywords: tuple[str, ...] = Field(
        default=(), description="Lowercase substrings counted by the rule stage"
    )


class CategoryTable(BaseModel):
    """Ordered set of categories plus the label used when nothing matches."""

    categories: tuple[Category, ...]
    fallback_label: str

    @model_validator(mode="after")
    def _check_labels(self) -> CategoryTable:
        names = [category.name for category in self.categories]
        if not names:
            raise ValueError("at least one category is required")
        if len(set(names)) != len(names):
            raise ValueError("category names must be unique")
        if self.fallback_label not in names:
            raise ValueError(
                f"fallback label '{self.fallback_label}' is not a known category"
            )
        return self

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(category.name for category in self.categories)


DEFAULT_CATEGORY_TABLE = CategoryTable(
    categories=(
        Category(
            name="Recruiters",
            definition=(
                "Emails about jobs, hiring, applications, recruiters, interviews, "
                "career platforms."
            ),
            keywords=(
                "recruiter",
                "hiring",
                "opportunity",
                "opening",
                "position",
                "role",
                "application",
                "applied",
                "interview",
                "career",
                "job",
                "talent",
            ),
        ),
        Category(
            name="Personal",
            definition=(
                "One-to-one / small-group, non-recruiting conversations "
                "(friends, family, classmates, colleagues)."
            ),
            keywords=(
                "hey",
                "hi ",
                "hello",
                "let's meet",
                "see you",
                "catch up",
                "how are you",
                "long time",
                "dinner",
                "coffee",
            ),
        ),
        Category(
            name="Social Media",
            definition=(
                "Notifications/digests from social platforms (LinkedIn, Facebook, "
                "Instagram, X/Twitter, Reddit, etc.)."
            ),
            keywords=(
                "linkedin",
                "facebook",
                "instagram",
                "twitter",
                "x.com",
                "reddit",
                "tiktok",
                "notification",
                "mention",
                "follower",
                "connection request",
            ),
        ),
    ),
    fallback_label="Personal",
)


def load_category_table(path: Path | None) -> CategoryTable:
    """Return the table stored at ``path`` or the built-in default."""
    if path is None:
        return DEFAULT_CATEGORY_TABLE
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        table = CategoryTable.model_validate(raw)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        LOGGER.error("Invalid category table at %s: %s", path, exc)
        raise ValueError(f"Invalid category table at {path}") from exc
    LOGGER.debug("Loaded %d categories from %s", len(table.categories), path)
    return table


__all__ = [
    "Category",
    "CategoryTable",
    "DEFAULT_CATEGORY_TABLE",
    "load_category_table",
]
