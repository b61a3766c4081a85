"""Email triage: cascading classification, summaries, and reply drafts."""

__version__ = "0.1.0"
