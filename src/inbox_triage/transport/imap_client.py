"""IMAP transport adapter providing Gmail mailbox access.

Threads, message identities, and labels map onto Gmail's IMAP extensions:
``X-GM-THRID`` (thread id), ``X-GM-MSGID`` (message id), and ``X-GM-LABELS``.
"""

from __future__ import annotations

import imaplib
import logging
import re
from collections.abc import Iterable
from types import TracebackType

from ..core.config import ImapSettings
from ..core.errors import NotFoundError, UpstreamError
from ..core.interfaces import MailProvider
from ..core.models import EmailRecord
from ..ingestion.parser import EmailParser

LOGGER = logging.getLogger(__name__)

_FETCH_ITEMS = "(X-GM-MSGID X-GM-THRID BODY.PEEK[])"
_GM_MSGID = re.compile(rb"X-GM-MSGID (\d+)")
_GM_THRID = re.compile(rb"X-GM-THRID (\d+)")
_LIST_NAME = re.compile(rb'\((?P<flags>[^)]*)\) (?:"[^"]*"|NIL) (?P<name>.+)$')
_SYSTEM_LABELS = {"important": "\\Important"}


class ImapError(UpstreamError):
    """Wrap low level IMAP errors with additional context."""


class ImapClient(MailProvider):
    """Thin wrapper around ``imaplib`` offering typed Gmail helpers."""

    def __init__(
        self, settings: ImapSettings, parser: EmailParser | None = None
    ) -> None:
        """Initialise the client with configuration settings."""
        self._settings = settings
        self._parser = parser or EmailParser()
        self._connection: imaplib.IMAP4 | imaplib.IMAP4_SSL | None = None
        self.mailbox = settings.mailbox

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> ImapClient:
        """Connect on entering a context manager scope."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Ensure resources are released on context exit."""
        self.close()

    # Public API ---------------------------------------------------------------
    def connect(self) -> None:
        """Establish IMAP connection and select the configured mailbox."""
        if self._connection is not None:
            return

        username = self._settings.username
        password = self._settings.app_password
        if username is None or password is None:
            raise ImapError("IMAP credentials are not configured")

        try:
            if self._settings.use_ssl:
                LOGGER.debug(
                    "Connecting to IMAP host %s:%s via SSL",
                    self._settings.host,
                    self._settings.port,
                )
                connection: imaplib.IMAP4 | imaplib.IMAP4_SSL = imaplib.IMAP4_SSL(
                    self._settings.host, self._settings.port
                )
            else:
                LOGGER.debug(
                    "Connecting to IMAP host %s:%s without SSL",
                    self._settings.host,
                    self._settings.port,
                )
                connection = imaplib.IMAP4(self._settings.host, self._settings.port)

            LOGGER.debug("Authenticating as %s", username)
            connection.login(username, password)
            status, _ = connection.select(self.mailbox)
            if status != "OK":
                raise ImapError(f"Unable to select mailbox '{self.mailbox}'")
            self._connection = connection
        except (imaplib.IMAP4.error, OSError) as exc:  # pragma: no cover - network
            raise ImapError("Failed to connect to IMAP server") from exc

    def fetch_unread(self, limit: int) -> list[EmailRecord]:
        """Return up to ``limit`` unread messages, newest first."""
        uids = self._search("UNSEEN")
        newest = list(reversed(uids))[: max(limit, 0)]
        LOGGER.debug("Fetching %d of %d unread message(s)", len(newest), len(uids))
        return [self._fetch(uid) for uid in newest]

    def get_thread(self, thread_id: str) -> list[EmailRecord]:
        """Return the messages of a Gmail thread in chronological order."""
        if not thread_id.isdigit():
            raise NotFoundError(f"Thread id '{thread_id}' is not a Gmail thread id")
        uids = self._search("X-GM-THRID", thread_id)
        LOGGER.debug("Thread %s has %d message(s)", thread_id, len(uids))
        return [self._fetch(uid) for uid in uids]

    def get_or_create_label(self, name: str) -> str:
        """Return the IMAP name of label ``name``, creating it if missing."""
        connection = self._require_connection()
        existing = self._list_labels()
        for label, _flags in existing:
            if label.lower() == name.lower():
                return label
        system_flag = _SYSTEM_LABELS.get(name.lower())
        if system_flag is not None:
            for label, flags in existing:
                if system_flag in flags:
                    return label

        LOGGER.info("Creating label '%s'", name)
        try:
            status, _ = connection.create(_quote(name))
        except imaplib.IMAP4.error as exc:  # pragma: no cover - network dependent
            raise ImapError(f"IMAP error while creating label '{name}'") from exc
        if status != "OK":
            raise ImapError(f"Failed to create label '{name}'")
        return name

    def apply_label(self, message_id: str, label_id: str, mark_read: bool) -> None:
        """Attach ``label_id`` to a message and optionally mark it read."""
        if not message_id.isdigit():
            raise NotFoundError(f"Message id '{message_id}' is not a Gmail id")
        uids = self._search("X-GM-MSGID", message_id)
        if not uids:
            raise NotFoundError(f"Message {message_id} not found")
        uid = uids[0]
        self._store(uid, "+X-GM-LABELS", f"({_quote(label_id)})")
        if mark_read:
            self._store(uid, "+FLAGS", r"(\Seen)")
        LOGGER.debug("Labelled UID %s with %s (mark_read=%s)", uid, label_id, mark_read)

    def close(self) -> None:
        """Terminate the IMAP session cleanly."""
        if self._connection is None:
            return
        try:
            LOGGER.debug("Closing IMAP connection")
            self._connection.close()
        except imaplib.IMAP4.error:  # pragma: no cover - depends on server state
            LOGGER.debug("IMAP close raised; continuing with logout")
        finally:
            try:
                self._connection.logout()
            except imaplib.IMAP4.error:  # pragma: no cover
                LOGGER.debug("IMAP logout raised; suppressing during shutdown")
            self._connection = None

    # Internal helpers ---------------------------------------------------------
    def _require_connection(self) -> imaplib.IMAP4 | imaplib.IMAP4_SSL:
        if self._connection is None:
            raise ImapError("IMAP connection has not been established")
        return self._connection

    def _search(self, *criteria: str) -> list[str]:
        connection = self._require_connection()
        try:
            status, data = connection.uid(
                "SEARCH", None, *criteria  # type: ignore[arg-type]
            )
        except imaplib.IMAP4.error as exc:  # pragma: no cover - network dependent
            raise ImapError(f"IMAP search {criteria} failed") from exc
        if status != "OK":
            raise ImapError(f"IMAP search {criteria} was rejected")
        raw_ids = data[0].split() if data and data[0] else []
        return [uid.decode() for uid in raw_ids]

    def _fetch(self, uid: str) -> EmailRecord:
        connection = self._require_connection()
        LOGGER.debug("Fetching message UID %s", uid)
        try:
            status, fetch_data = connection.uid("FETCH", uid, _FETCH_ITEMS)
        except imaplib.IMAP4.error as exc:  # pragma: no cover - network dependent
            raise ImapError(f"IMAP error while fetching UID {uid}") from exc
        if status != "OK":
            raise ImapError(f"Failed to fetch message UID {uid}")
        envelope, payload = _extract_payload(fetch_data)
        if payload is None:
            raise NotFoundError(f"No message body returned for UID {uid}")
        message_id = _match(_GM_MSGID, envelope)
        thread_id = _match(_GM_THRID, envelope)
        return self._parser.parse(payload, message_id=message_id, thread_id=thread_id)

    def _store(self, uid: str, command: str, value: str) -> None:
        connection = self._require_connection()
        try:
            status, _ = connection.uid("STORE", uid, command, value)
        except imaplib.IMAP4.error as exc:  # pragma: no cover - network dependent
            raise ImapError(f"IMAP error while updating UID {uid}") from exc
        if status != "OK":
            raise ImapError(f"Failed to apply {command} {value} to UID {uid}")

    def _list_labels(self) -> list[tuple[str, str]]:
        connection = self._require_connection()
        try:
            status, data = connection.list()
        except imaplib.IMAP4.error as exc:  # pragma: no cover - network dependent
            raise ImapError("IMAP error while listing labels") from exc
        if status != "OK":
            raise ImapError("Failed to list labels")
        return list(_parse_list_response(data))


def _extract_payload(
    fetch_data: list[tuple[bytes, bytes] | bytes],
) -> tuple[bytes, bytes | None]:
    """Return the FETCH envelope line and the message bytes."""
    for entry in fetch_data:
        if isinstance(entry, tuple) and len(entry) == 2:
            return entry[0], entry[1]
    return b"", None


def _match(pattern: re.Pattern[bytes], envelope: bytes) -> str | None:
    found = pattern.search(envelope)
    return found.group(1).decode() if found else None


def _parse_list_response(
    data: Iterable[bytes | tuple[bytes, bytes] | None],
) -> Iterable[tuple[str, str]]:
    for entry in data:
        if not isinstance(entry, bytes):
            continue
        found = _LIST_NAME.match(entry)
        if found is None:
            continue
        name = found.group("name").decode("utf-8", errors="replace").strip()
        if len(name) >= 2 and name.startswith('"') and name.endswith('"'):
            name = name[1:-1].replace('\\"', '"').replace("\\\\", "\\")
        yield name, found.group("flags").decode("utf-8", errors="replace")


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


__all__ = [
    "ImapClient",
    "ImapError",
]
