"""Triage service exposing label decisions, cached summaries, and drafts."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from inbox_triage.core.categories import CategoryTable, load_category_table
from inbox_triage.core.config import AppSettings
from inbox_triage.core.errors import NotFoundError
from inbox_triage.core.interfaces import Embedder, MailProvider
from inbox_triage.core.models import (
    ClassificationResult,
    EmailRecord,
    LabeledExample,
    ReplyDraft,
    ThreadSummary,
)
from inbox_triage.storage.cache import ResultCache
from inbox_triage.storage.examples import LabeledExampleLog
from inbox_triage.storage.index_store import VectorIndexStore

from .cascade import CascadeClassifier, build_default_cascade
from .drafter import DraftingService, resolve_anchor
from .llm import LLMClient, OllamaClient
from .summarizer import SummarizationService

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class TriagedEmail:
    """Label and summary computed for one unread message."""

    email: EmailRecord
    decision: ClassificationResult
    summary: str


class TriageService:
    """Compose the cascade, summariser, drafter, and cache for request handlers."""

    def __init__(
        self,
        *,
        mail: MailProvider,
        cascade: CascadeClassifier,
        summarizer: SummarizationService,
        drafter: DraftingService,
        cache: ResultCache,
        example_log: LabeledExampleLog,
        table: CategoryTable,
    ) -> None:
        self._mail = mail
        self._cascade = cascade
        self._summarizer = summarizer
        self._drafter = drafter
        self._cache = cache
        self._example_log = example_log
        self._table = table

    def decide_label(self, email: EmailRecord) -> ClassificationResult:
        """Run the classification cascade for ``email``."""
        return self._cascade.decide(email)

    def get_or_build_summary(
        self, thread_id: str, *, fetch_latest: bool = False, force: bool = False
    ) -> ThreadSummary:
        """Return the cached summary for a thread or summarise its newest message.

        ``force`` and ``fetch_latest`` both skip the cache and rebuild from the
        thread as it is now.
        """
        if not (force or fetch_latest):
            cached = self._cache.get_summary(thread_id)
            if cached is not None and self._cache.is_fresh(cached):
                LOGGER.debug("Summary cache hit for thread %s", thread_id)
                return ThreadSummary.from_payload(cached.payload)

        messages = self._load_thread(thread_id)
        email = messages[-1]
        LOGGER.debug("Building summary for thread %s (%s)", thread_id, email.subject)
        decision = self.decide_label(email)
        summary = ThreadSummary(
            subject=email.subject,
            label=decision.label,
            summary=self._summarizer.summarize(email),
            source=decision.source.value,
            confidence=decision.confidence,
        )
        self._cache.put_summary(thread_id, summary.to_payload())
        return summary

    def get_or_build_draft(
        self, thread_id: str, anchor_id: str | None = None, *, force: bool = False
    ) -> ReplyDraft:
        """Return a fresh cached draft for the anchor message or draft a new one."""
        messages = self._load_thread(thread_id)
        anchor_index = resolve_anchor(messages, anchor_id)
        anchor = messages[anchor_index]

        if not force:
            cached = self._cache.get_draft(thread_id, anchor.id)
            if cached is not None and self._cache.is_fresh(cached):
                LOGGER.debug("Draft cache hit for %s/%s", thread_id, anchor.id)
                return ReplyDraft.from_payload(cached.payload)

        draft = self._drafter.generate_draft(messages, anchor_index)
        self._cache.put_draft(thread_id, anchor.id, draft.to_payload())
        LOGGER.info("Draft built for %s/%s", thread_id, anchor.id)
        return draft

    def triage_unread(self, limit: int) -> list[TriagedEmail]:
        """Label and summarise up to ``limit`` unread messages."""
        results: list[TriagedEmail] = []
        for email in self._mail.fetch_unread(limit):
            decision = self.decide_label(email)
            summary = self._summarizer.summarize(email)
            results.append(
                TriagedEmail(email=email, decision=decision, summary=summary)
            )
        return results

    def label_message(
        self, message_id: str, label: str, *, mark_read: bool = True
    ) -> str:
        """Apply ``label`` to a message, creating the label when missing."""
        label_id = self._mail.get_or_create_label(label)
        self._mail.apply_label(message_id, label_id, mark_read)
        LOGGER.info("Applied label %s to message %s", label, message_id)
        return label_id

    def record_example(
        self,
        subject: str,
        body: str,
        label: str,
        *,
        message_id: str | None = None,
    ) -> LabeledExample:
        """Append a ground-truth example for the next index reconciliation."""
        return _append_example(
            self._example_log, self._table, subject, body, label, message_id
        )

    def _load_thread(self, thread_id: str) -> list[EmailRecord]:
        messages = self._mail.get_thread(thread_id)
        if not messages:
            raise NotFoundError(f"Thread {thread_id} not found or empty")
        return messages


@dataclass(slots=True)
class TriageComponents:
    """Long-lived stores and classifiers shared by every request."""

    table: CategoryTable
    cache: ResultCache
    example_log: LabeledExampleLog
    index: VectorIndexStore
    cascade: CascadeClassifier
    summarizer: SummarizationService
    drafter: DraftingService

    def bind(self, mail: MailProvider) -> TriageService:
        """Return a service that talks to ``mail`` for this unit of work."""
        return TriageService(
            mail=mail,
            cascade=self.cascade,
            summarizer=self.summarizer,
            drafter=self.drafter,
            cache=self.cache,
            example_log=self.example_log,
            table=self.table,
        )

    def record_example(
        self,
        subject: str,
        body: str,
        label: str,
        *,
        message_id: str | None = None,
    ) -> LabeledExample:
        """Append a labeled example without opening a mailbox."""
        return _append_example(
            self.example_log, self.table, subject, body, label, message_id
        )


def _append_example(
    example_log: LabeledExampleLog,
    table: CategoryTable,
    subject: str,
    body: str,
    label: str,
    message_id: str | None,
) -> LabeledExample:
    if label not in table.labels:
        known = ", ".join(table.labels)
        raise ValueError(f"Unknown label '{label}'; expected one of {known}")
    example = LabeledExample(
        subject=subject, body=body, label=label, message_id=message_id
    )
    example_log.append(example)
    return example


def build_components(
    settings: AppSettings,
    *,
    llm_client: LLMClient | None = None,
    embedder: Embedder | None = None,
) -> TriageComponents:
    """Open the stores once and wire the cascade from ``settings``."""
    ollama = OllamaClient(settings.llm)
    llm = llm_client or ollama
    embedding_client = embedder or ollama
    table = load_category_table(settings.classifier.categories_file)
    example_log = LabeledExampleLog(settings.storage)
    index = VectorIndexStore(settings.storage, example_log, embedding_client)
    cache = ResultCache(settings.storage, settings.cache)
    return TriageComponents(
        table=table,
        cache=cache,
        example_log=example_log,
        index=index,
        cascade=build_default_cascade(
            table, index, embedding_client, llm, settings.classifier
        ),
        summarizer=SummarizationService(llm),
        drafter=DraftingService(
            llm,
            own_address=settings.imap.own_address or settings.imap.username,
            temperature=settings.llm.draft_temperature,
        ),
    )


__all__ = ["TriageComponents", "TriageService", "TriagedEmail", "build_components"]
