"""File primitives for the JSON-backed stores."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from ..core.errors import CorruptStoreError

LOGGER = logging.getLogger(__name__)


def read_json(path: Path, default: Any) -> Any:
    """Return the decoded document at ``path`` or ``default`` when absent."""
    if not path.exists():
        return default
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        LOGGER.error("Store at %s is unreadable: %s", path, exc)
        raise CorruptStoreError("Store file is unreadable", path) from exc


def write_json_atomic(path: Path, document: Any, *, indent: int | None = None) -> None:
    """Replace ``path`` with ``document`` so readers see the old or new file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(document, handle, indent=indent)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def iter_jsonl(path: Path) -> Iterator[dict[str, Any]]:
    """Yield one object per non-blank line of ``path``."""
    if not path.exists():
        return
    try:
        with path.open("r", encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError as exc:
                    LOGGER.error(
                        "Malformed record on line %d of %s: %s", line_number, path, exc
                    )
                    raise CorruptStoreError(
                        f"Malformed record on line {line_number}", path
                    ) from exc
                if not isinstance(record, dict):
                    LOGGER.error("Line %d of %s is not an object", line_number, path)
                    raise CorruptStoreError(
                        f"Line {line_number} is not an object", path
                    )
                yield record
    except (OSError, UnicodeDecodeError) as exc:
        LOGGER.error("Log at %s is unreadable: %s", path, exc)
        raise CorruptStoreError("Log file is unreadable", path) from exc


def append_jsonl(path: Path, record: dict[str, Any]) -> None:
    """Append ``record`` as a single line."""
    path.parent.mkdir(parents=True, exist_ok=True)
    line = json.dumps(record, ensure_ascii=False) + "\n"
    with path.open("a", encoding="utf-8") as handle:
        handle.write(line)
        handle.flush()
        os.fsync(handle.fileno())


__all__ = ["append_jsonl", "iter_jsonl", "read_json", "write_json_atomic"]
