"""Core utilities for configuration, logging, and shared models."""

from .config import AppSettings, load_app_settings
from .errors import CorruptStoreError, NotFoundError, TriageError, UpstreamError
from .logging import configure_logging

__all__ = [
    "AppSettings",
    "CorruptStoreError",
    "NotFoundError",
    "TriageError",
    "UpstreamError",
    "configure_logging",
    "load_app_settings",
]
