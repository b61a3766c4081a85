"""Command-line entry point for Inbox Triage."""

from __future__ import annotations

import argparse
from pathlib import Path

import uvicorn

from inbox_triage.core import (
    AppSettings,
    NotFoundError,
    UpstreamError,
    configure_logging,
    load_app_settings,
)
from inbox_triage.intelligence import build_components
from inbox_triage.transport import ImapClient
from inbox_triage.web import create_app


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(description="Inbox Triage assistant")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file containing configuration overrides.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="info",
        choices=["info", "triage", "label", "reindex", "serve"],
        help="Operation to execute.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Number of unread messages to triage (default: 10).",
    )
    parser.add_argument(
        "--message-id",
        dest="message_id",
        default=None,
        help="Gmail message id for the label command.",
    )
    parser.add_argument(
        "--label",
        default=None,
        help="Label to apply for the label command.",
    )
    parser.add_argument(
        "--keep-unread",
        dest="keep_unread",
        action="store_true",
        help="Do not mark the message read when labelling.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind host for serve.")
    parser.add_argument("--port", type=int, default=8000, help="Bind port for serve.")
    return parser


def execute(args: argparse.Namespace, settings: AppSettings) -> int:
    """Execute the requested CLI command and return an exit code."""
    command = args.command
    if command == "info":
        print("Inbox Triage is ready. Configure IMAP and LLM settings to get started.")
        print(f"IMAP host: {settings.imap.host}")
        print(f"LLM model: {settings.llm.model} @ {settings.llm.base_url}")
        print(f"Data directory: {settings.storage.data_dir}")
        return 0
    if command == "serve":
        uvicorn.run(create_app(settings), host=args.host, port=args.port)
        return 0
    try:
        if command == "triage":
            _run_triage(settings, limit=args.limit)
        elif command == "label":
            if not args.message_id or not args.label:
                print("The label command needs --message-id and --label.")
                return 2
            _run_label(
                settings,
                message_id=args.message_id,
                label=args.label,
                mark_read=not args.keep_unread,
            )
        elif command == "reindex":
            _run_reindex(settings)
    except (NotFoundError, UpstreamError) as exc:
        print(f"{command.capitalize()} failed: {exc}")
        return 1
    return 0


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    settings = load_app_settings(env_file=args.env_file)
    configure_logging(settings.logging)
    raise SystemExit(execute(args, settings))


def _run_triage(settings: AppSettings, *, limit: int) -> None:
    """Label and summarise unread messages without modifying the mailbox."""
    components = build_components(settings)
    with ImapClient(settings.imap) as mailbox:
        triaged = components.bind(mailbox).triage_unread(limit)

    if not triaged:
        print("No unread messages.")
        return

    print(f"Triaged {len(triaged)} message(s):")
    for item in triaged:
        decision = item.decision
        subject = item.email.subject or "(no subject)"
        print(
            f"[{decision.label} via {decision.source.value} "
            f"{decision.confidence:.2f}] {subject}"
        )
        print(f"    {item.summary}")


def _run_label(
    settings: AppSettings, *, message_id: str, label: str, mark_read: bool
) -> None:
    components = build_components(settings)
    with ImapClient(settings.imap) as mailbox:
        label_id = components.bind(mailbox).label_message(
            message_id, label, mark_read=mark_read
        )
    print(f"Applied {label_id} to message {message_id}.")


def _run_reindex(settings: AppSettings) -> None:
    """Embed any labeled examples missing from the index."""
    components = build_components(settings)
    entries = components.index.load()
    print(f"Index holds {len(entries)} embedded example(s).")


if __name__ == "__main__":
    main()
