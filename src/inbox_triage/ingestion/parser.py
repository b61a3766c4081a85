"""Utilities for parsing raw RFC822 messages into email records."""

from __future__ import annotations

import html
import re
from collections.abc import Iterable
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser

from ..core.models import EmailRecord

_TAG_PATTERN = re.compile(r"<[^>]+>")
_SKIPPED_BLOCKS = re.compile(
    r"<(script|style|head)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL
)
_WHITESPACE = re.compile(r"\s+")


class EmailParser:
    """Convert raw email payloads into plain-text records."""

    def __init__(self) -> None:
        """Prepare internal parser instance."""
        self._parser = BytesParser(policy=policy.default)

    def parse(
        self,
        payload: bytes,
        *,
        message_id: str | None = None,
        thread_id: str | None = None,
    ) -> EmailRecord:
        """Parse raw RFC822 bytes into an :class:`EmailRecord`.

        Provider identifiers win over header-derived ones when supplied.
        """
        message = self._parser.parsebytes(payload)
        header_id = _header(message, "Message-ID")
        resolved_id = message_id or header_id
        return EmailRecord(
            id=resolved_id,
            thread_id=thread_id or _resolve_thread_id(message) or resolved_id,
            subject=_collapse(_header(message, "Subject")),
            sender=_header(message, "From"),
            date=_header(message, "Date"),
            body=_extract_body(message),
        )


def strip_html(payload: str) -> str:
    """Reduce an HTML document to its visible text."""
    without_blocks = _SKIPPED_BLOCKS.sub(" ", payload)
    text = _TAG_PATTERN.sub(" ", without_blocks)
    lines = (_collapse(line) for line in html.unescape(text).splitlines())
    return "\n".join(line for line in lines if line)


def _header(message: EmailMessage, name: str) -> str:
    value = message.get(name)
    return str(value).strip() if value is not None else ""


def _collapse(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def _resolve_thread_id(message: EmailMessage) -> str | None:
    for header in ("Thread-Id", "References", "In-Reply-To"):
        value = message.get(header)
        if isinstance(value, str) and value.strip():
            return value.split()[0]
    return None


def _collapse_chunks(chunks: Iterable[str], separator: str) -> str:
    return separator.join(chunk for chunk in chunks if chunk)


def _extract_body(message: EmailMessage) -> str:
    plain_chunks: list[str] = []
    html_chunks: list[str] = []

    for part in message.walk():
        if part.is_multipart():
            continue
        if part.get_content_disposition() == "attachment" or part.get_filename():
            continue
        content_type = part.get_content_type()
        if content_type not in ("text/plain", "text/html"):
            continue
        try:
            content_obj = part.get_content()
        except (LookupError, UnicodeDecodeError):
            continue
        if not isinstance(content_obj, str):
            continue
        content = content_obj.strip()
        if content_type == "text/plain":
            plain_chunks.append(content)
        else:
            html_chunks.append(strip_html(content))

    if plain_chunks:
        return _collapse_chunks(plain_chunks, "\n\n")
    return _collapse_chunks(html_chunks, "\n")


__all__ = ["EmailParser", "strip_html"]
