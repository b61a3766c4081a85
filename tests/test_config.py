"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from inbox_triage.core.config import StorageSettings, load_app_settings


@pytest.fixture(autouse=True)
def clear_settings_cache() -> None:
    """Ensure each test sees a fresh settings instance."""

    load_app_settings.cache_clear()


def test_defaults_loaded_without_env_file() -> None:
    """Default values should be returned when no overrides are present."""

    settings = load_app_settings(include_environment=False)
    assert settings.imap.host == "imap.gmail.com"
    assert settings.storage.index_path == Path("./data/embeddings.json")
    assert settings.classifier.knn_k == 5
    assert settings.classifier.confidence_threshold == 0.6
    assert settings.cache.ttl_seconds == 6 * 60 * 60
    assert settings.llm.max_attempts == 1


def test_env_file_overrides(tmp_path: Path) -> None:
    """Values defined in an env file should override defaults."""

    env_file = tmp_path / "test.env"
    env_file.write_text(
        "INBOX_TRIAGE_IMAP__HOST=imap.example.com\n"
        "INBOX_TRIAGE_CLASSIFIER__KNN_K=3\n"
        "INBOX_TRIAGE_IMAP__USE_SSL=false\n"
        "IGNORED_KEY=value\n",
        encoding="utf-8",
    )

    settings = load_app_settings(env_file=env_file, include_environment=False)
    assert settings.imap.host == "imap.example.com"
    assert settings.imap.use_ssl is False
    assert settings.classifier.knn_k == 3


def test_environment_wins_over_env_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    env_file = tmp_path / "test.env"
    env_file.write_text("INBOX_TRIAGE_LLM__MODEL=from-file\n", encoding="utf-8")
    monkeypatch.setenv("INBOX_TRIAGE_LLM__MODEL", "from-env")

    settings = load_app_settings(env_file=env_file)
    assert settings.llm.model == "from-env"


def test_storage_paths_follow_data_dir(tmp_path: Path) -> None:
    storage = StorageSettings(data_dir=tmp_path)

    assert storage.labeled_path == tmp_path / "labeled.jsonl"
    assert storage.index_path == tmp_path / "embeddings.json"
    assert storage.cache_path == tmp_path / "summaries.json"


def test_empty_values_keep_defaults(tmp_path: Path) -> None:
    env_file = tmp_path / "test.env"
    env_file.write_text(
        "INBOX_TRIAGE_IMAP__HOST=\nINBOX_TRIAGE_CACHE__TTL_SECONDS=\n", encoding="utf-8"
    )

    settings = load_app_settings(env_file=env_file, include_environment=False)
    assert settings.imap.host == "imap.gmail.com"
    assert settings.cache.ttl_seconds == 6 * 60 * 60
