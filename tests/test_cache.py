"""Tests for the durable summary and draft cache."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from inbox_triage.core.config import CacheSettings, StorageSettings
from inbox_triage.core.errors import CorruptStoreError
from inbox_triage.storage import ResultCache

T0 = datetime(2025, 10, 6, 9, 0, tzinfo=UTC)


class FakeClock:
    """Settable clock injected into the cache."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _cache(tmp_path: Path, clock: FakeClock | None = None) -> ResultCache:
    return ResultCache(
        StorageSettings(data_dir=tmp_path),
        CacheSettings(),
        clock=clock or FakeClock(),
    )


def test_put_then_get_returns_identical_payload(tmp_path: Path) -> None:
    clock = FakeClock()
    cache = _cache(tmp_path, clock)
    payload = {"subject": "Hi", "summary": "Short", "nested": {"items": [1, 2]}}

    written = cache.put("thread-1", payload)
    record = cache.get("thread-1")

    assert record is not None
    assert record.payload == payload
    assert record.written_at >= T0
    assert written.written_at == record.written_at
    assert cache.is_fresh(record)


def test_payload_is_copied_on_put(tmp_path: Path) -> None:
    cache = _cache(tmp_path)
    payload = {"tags": ["a"]}

    cache.put("thread-1", payload)
    payload["tags"].append("b")

    record = cache.get("thread-1")
    assert record is not None
    assert record.payload == {"tags": ["a"]}


def test_stale_record_is_still_returned(tmp_path: Path) -> None:
    clock = FakeClock()
    cache = _cache(tmp_path, clock)
    cache.put("thread-1", {"summary": "old"})

    clock.now = T0 + timedelta(hours=6)
    record = cache.get("thread-1")

    assert record is not None
    assert record.payload == {"summary": "old"}
    assert not cache.is_fresh(record)


def test_missing_key_returns_none(tmp_path: Path) -> None:
    assert _cache(tmp_path).get("never-written") is None


def test_draft_freshness_window(tmp_path: Path) -> None:
    clock = FakeClock()
    cache = _cache(tmp_path, clock)
    cache.put_draft("thread-1", "msg-2", {"draft": "Thanks!"})

    record = cache.get_draft("thread-1", "msg-2")
    assert record is not None
    assert cache.is_fresh(record, T0 + timedelta(hours=1))
    assert not cache.is_fresh(record, T0 + timedelta(hours=7))
    assert cache.get_summary("thread-1") is None


def test_records_survive_reopen(tmp_path: Path) -> None:
    cache = _cache(tmp_path)
    cache.put_summary("thread-1", {"summary": "kept"})
    cache.put_draft("thread-1", "msg-2", {"draft": "kept"})

    reopened = _cache(tmp_path)
    document = json.loads((tmp_path / "summaries.json").read_text(encoding="utf-8"))

    assert reopened.size() == 2
    assert set(document) == {"thread-1", "draft:thread-1:msg-2"}
    assert document["thread-1"]["ts"] == T0.isoformat()
    summary = reopened.get_summary("thread-1")
    assert summary is not None
    assert summary.written_at == T0


def test_put_replaces_whole_record(tmp_path: Path) -> None:
    clock = FakeClock()
    cache = _cache(tmp_path, clock)
    cache.put("thread-1", {"summary": "old", "label": "Personal"})

    clock.now = T0 + timedelta(hours=8)
    cache.put("thread-1", {"summary": "new"})

    record = cache.get("thread-1")
    assert record is not None
    assert record.payload == {"summary": "new"}
    assert cache.is_fresh(record)


def test_corrupt_cache_file_raises(tmp_path: Path) -> None:
    (tmp_path / "summaries.json").write_text("[1, 2", encoding="utf-8")

    with pytest.raises(CorruptStoreError):
        _cache(tmp_path)


def test_malformed_cache_record_raises(tmp_path: Path) -> None:
    (tmp_path / "summaries.json").write_text(
        json.dumps({"thread-1": {"payload": {}, "ts": "yesterday"}}), encoding="utf-8"
    )

    with pytest.raises(CorruptStoreError):
        _cache(tmp_path)


def test_writers_sharing_a_file_keep_each_others_keys(tmp_path: Path) -> None:
    first = _cache(tmp_path)
    second = _cache(tmp_path)

    first.put_summary("thread-1", {"summary": "one"})
    second.put_summary("thread-2", {"summary": "two"})

    reopened = _cache(tmp_path)
    assert reopened.size() == 2
    assert second.get_summary("thread-1") is not None
