"""Prompt templates for classification, summaries, and replies."""

from __future__ import annotations

from collections.abc import Sequence
from textwrap import dedent

from inbox_triage.core.categories import CategoryTable
from inbox_triage.core.models import EmailRecord

CLASSIFY_BODY_CHARS = 1500
SUMMARY_BODY_CHARS = 4000


def build_classification_prompt(email: EmailRecord, table: CategoryTable) -> str:
    """Ask for exactly one label from the table."""
    labels = ", ".join(table.labels)
    definitions = "\n".join(
        f"- {category.name}: {category.definition}" for category in table.categories
    )
    body = email.body[:CLASSIFY_BODY_CHARS]
    return (
        "You are an email classifier. "
        f"Pick exactly one label from: {labels}.\n\n"
        f"Definitions:\n{definitions}\n\n"
        f"Email:\nSubject: {email.subject}\nBody: {body}\n\n"
        "Respond with ONLY the label text."
    )


def build_summary_prompt(email: EmailRecord) -> str:
    """Compose a JSON-only summarisation prompt for the email body."""
    body = email.body[:SUMMARY_BODY_CHARS]
    subject = email.subject or "(no subject)"
    sender = email.sender or "(unknown sender)"
    header = f"""
    You are an assistant that writes 1-2 sentence concise summaries of emails.
    Include key action items or deadlines if present.

    Email:
    Subject: {subject}
    From: {sender}
    Body:
    """
    footer = 'Return a JSON object: {"summary": "..."} with no extra text.'
    return f'{dedent(header).strip()}\n"""\n{body}\n"""\n\n{footer}'


def render_history(messages: Sequence[EmailRecord], own_address: str | None) -> str:
    """Render a conversation as alternating ``Me``/``Them`` blocks."""
    blocks = []
    for message in messages:
        speaker = "Me" if is_from(message, own_address) else "Them"
        blocks.append(f"{speaker}:\n{message.body}")
    return "\n\n---\n\n".join(blocks)


def build_reply_prompt(history: str, *, last_from_me: bool) -> str:
    """Ask for a follow-up when the user wrote last, otherwise a reply."""
    if last_from_me:
        return (
            "I wrote the last message. Draft a concise, polite follow-up.\n\n"
            f"Conversation:\n{history}\n\nReturn ONLY the email body."
        )
    return (
        "Draft a professional, polite reply to the last message.\n\n"
        f"Conversation:\n{history}\n\nReturn ONLY the email body."
    )


def is_from(message: EmailRecord, address: str | None) -> bool:
    """Return ``True`` when ``address`` appears in the message sender."""
    if not address:
        return False
    return address.lower() in message.sender.lower()


__all__ = [
    "build_classification_prompt",
    "build_reply_prompt",
    "build_summary_prompt",
    "is_from",
    "render_history",
]
