"""Email summarisation via the completion model."""

from __future__ import annotations

import json
import logging

from inbox_triage.core.models import EmailRecord

from .llm import LLMClient
from .prompts import build_summary_prompt

LOGGER = logging.getLogger(__name__)


class SummarizationService:
    """Produce a one or two sentence summary of an email."""

    def __init__(self, llm_client: LLMClient) -> None:
        self._llm_client = llm_client

    def summarize(self, email: EmailRecord) -> str:
        """Return the summary text; collaborator failures propagate."""
        prompt = build_summary_prompt(email)
        raw_output = self._llm_client.generate(prompt, temperature=0.0)
        return _parse_summary(raw_output)


def _parse_summary(raw: str) -> str:
    text = raw.strip()
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        LOGGER.debug("Summary output was not JSON; using raw text")
        return text
    if isinstance(payload, dict):
        summary = payload.get("summary")
        if isinstance(summary, str) and summary.strip():
            return summary.strip()
    return text


__all__ = ["SummarizationService"]
