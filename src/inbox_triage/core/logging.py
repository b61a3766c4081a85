"""Logging configuration helpers."""

from __future__ import annotations

import logging
import logging.config
from typing import Any

from .config import LoggingSettings

# Third-party loggers that are chatty at INFO.
QUIET_LOGGERS = {
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "uvicorn.access": "WARNING",
}


def build_logging_config(settings: LoggingSettings) -> dict[str, Any]:
    """Translate logging settings into a ``dictConfig`` document."""
    if settings.structured:
        formatter: dict[str, Any] = {
            "format": "ts={asctime} level={levelname} logger={name} msg={message!r}",
            "style": "{",
        }
    else:
        formatter = {"format": "%(asctime)s %(levelname)-7s %(name)s: %(message)s"}

    levels = {**QUIET_LOGGERS, **settings.loggers}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"triage": formatter},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "triage",
            },
        },
        "loggers": {name: {"level": level.upper()} for name, level in levels.items()},
        "root": {"handlers": ["console"], "level": settings.level.upper()},
    }


def configure_logging(settings: LoggingSettings) -> None:
    """Install the console handler and levels described by ``settings``."""
    logging.config.dictConfig(build_logging_config(settings))
    logging.getLogger(__name__).debug(
        "Logging configured at %s (structured=%s)", settings.level, settings.structured
    )


__all__ = ["QUIET_LOGGERS", "build_logging_config", "configure_logging"]
