"""Ingestion components."""

from .parser import EmailParser, strip_html

__all__ = ["EmailParser", "strip_html"]
