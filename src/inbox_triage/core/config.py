"""Application configuration models and loader utilities."""

from __future__ import annotations

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import BaseModel, Field


class ImapSettings(BaseModel):
    """Settings controlling IMAP connectivity."""

    host: str = Field(default="imap.gmail.com", description="IMAP hostname")
    port: int = Field(default=993, description="IMAP port, typically 993 for SSL")
    username: str | None = Field(default=None, description="Account username")
    app_password: str | None = Field(default=None, description="Gmail app password")
    mailbox: str = Field(
        default='"[Gmail]/All Mail"',
        description="Mailbox searched for unread messages and threads",
    )
    use_ssl: bool = Field(default=True, description="Whether to enforce SSL")
    own_address: str | None = Field(
        default=None,
        description="Address used to recognise messages written by the user",
    )


class LlmSettings(BaseModel):
    """Settings for the local LLM provider."""

    base_url: str = Field(
        default="http://localhost:11434", description="Ollama server URL"
    )
    model: str = Field(default="gpt-oss:20b", description="Completion model")
    embedding_model: str = Field(
        default="nomic-embed-text", description="Embedding model identifier"
    )
    timeout_seconds: int = Field(
        default=30, description="Request timeout for LLM calls"
    )
    temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Sampling temperature for classification and summaries",
    )
    draft_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Sampling temperature for reply drafts",
    )
    max_output_tokens: int | None = Field(
        default=512,
        ge=32,
        description="Maximum tokens to request from the provider",
    )
    max_attempts: int = Field(
        default=1,
        ge=1,
        le=5,
        description="Attempts per request; retries are otherwise left to callers",
    )


class StorageSettings(BaseModel):
    """Settings for local persistence."""

    data_dir: Path = Field(default=Path("./data"), description="Data directory")
    labeled_file: str = Field(
        default="labeled.jsonl", description="Append-only labeled example log"
    )
    index_file: str = Field(
        default="embeddings.json", description="Embedding index file"
    )
    cache_file: str = Field(
        default="summaries.json", description="Summary and draft cache file"
    )

    @property
    def labeled_path(self) -> Path:
        return self.data_dir / self.labeled_file

    @property
    def index_path(self) -> Path:
        return self.data_dir / self.index_file

    @property
    def cache_path(self) -> Path:
        return self.data_dir / self.cache_file


class ClassifierSettings(BaseModel):
    """Settings for the classification cascade."""

    knn_k: int = Field(default=5, ge=1, description="Neighbours consulted per vote")
    confidence_threshold: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Minimum k-NN confidence accepted without the LLM",
    )
    categories_file: Path | None = Field(
        default=None, description="Optional JSON file overriding the category table"
    )


class CacheSettings(BaseModel):
    """Settings for the summary and draft cache."""

    ttl_seconds: int = Field(
        default=6 * 60 * 60, ge=0, description="Freshness window for cached results"
    )


class LoggingSettings(BaseModel):
    """Logging preferences."""

    level: str = Field(default="INFO", description="Root logging level")
    structured: bool = Field(
        default=False, description="Emit key=value records instead of plain text"
    )
    loggers: dict[str, str] = Field(
        default_factory=dict,
        description="Per-logger level overrides keyed by logger name",
    )


class AppSettings(BaseModel):
    """Aggregated application configuration."""

    imap: ImapSettings = Field(default_factory=ImapSettings)
    llm: LlmSettings = Field(default_factory=LlmSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    classifier: ClassifierSettings = Field(default_factory=ClassifierSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


ENV_PREFIX = "INBOX_TRIAGE_"
NESTED_DELIMITER = "__"


def _settings_path(raw_key: str) -> list[str]:
    """Map ``INBOX_TRIAGE_LLM__MODEL`` to ``["llm", "model"]``."""
    trimmed = raw_key.removeprefix(ENV_PREFIX)
    return [segment.lower() for segment in trimmed.split(NESTED_DELIMITER) if segment]


def _coerce(value: str) -> Any:
    """Turn ``true``/``false`` into booleans."""
    lowered = value.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    return value


def _deep_merge(base: dict[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _prefixed(values: Mapping[str, str | None]) -> dict[str, str | None]:
    return {key: value for key, value in values.items() if key.startswith(ENV_PREFIX)}


def _collect_env_values(
    env_file: Path | str | None, *, include_environment: bool = True
) -> dict[str, Any]:
    """Build a nested settings tree from a dotenv file and the environment.

    Process environment values win over the file.
    """
    sources: list[Mapping[str, str | None]] = []
    if env_file and Path(env_file).is_file():
        sources.append(_prefixed(dotenv_values(env_file)))
    if include_environment:
        sources.append(_prefixed(os.environ))

    tree: dict[str, Any] = {}
    for source in sources:
        for key, raw in source.items():
            path = _settings_path(key)
            # An empty value leaves the field at its default.
            if not path or raw is None or raw == "":
                continue
            branch: dict[str, Any] = {path[-1]: _coerce(raw)}
            for segment in reversed(path[:-1]):
                branch = {segment: branch}
            tree = _deep_merge(tree, branch)
    return tree


@lru_cache(maxsize=1)
def load_app_settings(
    env_file: Path | str | None = None,
    include_environment: bool = True,
    **overrides: Any,
) -> AppSettings:
    """Load application settings from ``INBOX_TRIAGE_*`` variables.

    Keyword overrides are applied last, per section; they must be hashable
    because the result is cached.
    """
    collected = _collect_env_values(env_file, include_environment=include_environment)
    if overrides:
        collected = _deep_merge(collected, overrides)
    return AppSettings.model_validate(collected)


__all__ = [
    "AppSettings",
    "CacheSettings",
    "ClassifierSettings",
    "ENV_PREFIX",
    "ImapSettings",
    "LlmSettings",
    "LoggingSettings",
    "StorageSettings",
    "load_app_settings",
]
