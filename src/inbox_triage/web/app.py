"""FastAPI request layer over the triage service."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, status as http_status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from inbox_triage.core import AppSettings, load_app_settings
from inbox_triage.core.errors import CorruptStoreError, NotFoundError, UpstreamError
from inbox_triage.core.interfaces import MailProvider
from inbox_triage.intelligence import TriageComponents, TriageService, build_components
from inbox_triage.transport import ImapClient

DEFAULT_LIMIT = 10
MAX_LIMIT = 50

LOGGER = logging.getLogger(__name__)

MailFactory = Callable[[], AbstractContextManager[MailProvider]]


class LabelRequest(BaseModel):
    """Body of ``POST /label``."""

    model_config = ConfigDict(populate_by_name=True)

    message_id: str = Field(alias="messageId", min_length=1)
    label: str = Field(min_length=1)
    mark_read: bool = Field(default=True, alias="markRead")


class ExampleRequest(BaseModel):
    """Body of ``POST /examples``."""

    model_config = ConfigDict(populate_by_name=True)

    subject: str
    body: str
    label: str = Field(min_length=1)
    message_id: str | None = Field(default=None, alias="messageId")


def create_app(
    settings: AppSettings | None = None,
    *,
    components: TriageComponents | None = None,
    mail_factory: MailFactory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app_settings = settings or load_app_settings()
    shared = components or build_components(app_settings)
    open_mail: MailFactory = mail_factory or (lambda: ImapClient(app_settings.imap))
    app = FastAPI(title="Inbox Triage")

    def get_service() -> Iterator[TriageService]:
        with open_mail() as mail:
            yield shared.bind(mail)

    @app.exception_handler(RequestValidationError)
    async def validation_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc.errors())})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(UpstreamError)
    async def upstream_handler(_request: Request, exc: UpstreamError) -> JSONResponse:
        LOGGER.warning("Upstream failure: %s", exc)
        return JSONResponse(status_code=502, content={"error": str(exc)})

    @app.exception_handler(CorruptStoreError)
    async def corrupt_store_handler(
        _request: Request, exc: CorruptStoreError
    ) -> JSONResponse:
        LOGGER.error("Store unavailable: %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.get("/summary/thread/{thread_id}")
    def thread_summary(
        thread_id: str,
        force: str | None = None,
        service: TriageService = Depends(get_service),  # noqa: B008
    ) -> dict[str, Any]:
        summary = service.get_or_build_summary(
            thread_id, force=_parse_bool_flag(force)
        )
        return summary.to_payload()

    @app.get("/reply")
    def reply(
        request: Request,
        service: TriageService = Depends(get_service),  # noqa: B008
    ) -> dict[str, Any]:
        params = request.query_params
        thread_id = params.get("threadId")
        if not thread_id:
            raise HTTPException(
                status_code=http_status.HTTP_400_BAD_REQUEST, detail="Missing threadId"
            )
        draft = service.get_or_build_draft(
            thread_id,
            params.get("replyToId") or None,
            force=_parse_bool_flag(params.get("force")),
        )
        return {**draft.to_payload(), "anchorId": draft.reply_to_id}

    @app.get("/emails")
    def emails(
        limit: str | None = None,
        service: TriageService = Depends(get_service),  # noqa: B008
    ) -> list[dict[str, Any]]:
        triaged = service.triage_unread(_parse_limit(limit, DEFAULT_LIMIT))
        return [
            {
                "id": item.email.id,
                "threadId": item.email.thread_id,
                "subject": item.email.subject,
                "from": item.email.sender,
                **item.decision.as_dict(),
                "summary": item.summary,
            }
            for item in triaged
        ]

    @app.post("/label")
    def label(
        body: LabelRequest,
        service: TriageService = Depends(get_service),  # noqa: B008
    ) -> dict[str, Any]:
        label_id = service.label_message(
            body.message_id, body.label, mark_read=body.mark_read
        )
        return {"ok": True, "labelId": label_id}

    @app.post("/examples")
    def add_example(body: ExampleRequest) -> dict[str, Any]:
        try:
            example = shared.record_example(
                body.subject, body.body, body.label, message_id=body.message_id
            )
        except ValueError as exc:
            raise HTTPException(
                status_code=http_status.HTTP_400_BAD_REQUEST, detail=str(exc)
            ) from exc
        return {"ok": True, "key": example.key}

    return app


def _parse_bool_flag(raw: str | None) -> bool:
    if raw is None:
        return False
    value = raw.strip().lower()
    return value in {"1", "true", "yes", "on"}


def _parse_limit(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    return min(value, MAX_LIMIT)


__all__ = ["create_app"]
