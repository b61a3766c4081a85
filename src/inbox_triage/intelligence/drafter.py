"""Drafting service that produces replies from thread history."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from inbox_triage.core.models import EmailRecord, ReplyDraft

from .llm import LLMClient, LLMError
from .prompts import build_reply_prompt, is_from, render_history

LOGGER = logging.getLogger(__name__)

DEFAULT_DRAFT_TEMPERATURE = 0.3


class DraftingService:
    """Draft a reply, or a follow-up when the user sent the anchor message."""

    def __init__(
        self,
        llm_client: LLMClient,
        *,
        own_address: str | None = None,
        temperature: float = DEFAULT_DRAFT_TEMPERATURE,
    ) -> None:
        self._llm_client = llm_client
        self._own_address = own_address
        self._temperature = temperature

    def generate_draft(
        self, messages: Sequence[EmailRecord], anchor_index: int
    ) -> ReplyDraft:
        """Draft against ``messages[anchor_index]`` using the history up to it."""
        anchor = messages[anchor_index]
        last_from_me = is_from(anchor, self._own_address)
        history = render_history(messages[: anchor_index + 1], self._own_address)
        prompt = build_reply_prompt(history, last_from_me=last_from_me)
        body = self._llm_client.generate(prompt, temperature=self._temperature).strip()
        if not body:
            raise LLMError("Draft reply came back empty")
        LOGGER.debug(
            "Drafted %s for %s", "follow-up" if last_from_me else "reply", anchor.id
        )
        return ReplyDraft(draft=body, last_from_me=last_from_me, reply_to_id=anchor.id)


def resolve_anchor(messages: Sequence[EmailRecord], reply_to_id: str | None) -> int:
    """Index of ``reply_to_id`` in the thread, else of the last message."""
    if reply_to_id:
        for index, message in enumerate(messages):
            if message.id == reply_to_id:
                return index
    return len(messages) - 1


__all__ = ["DraftingService", "resolve_anchor"]
