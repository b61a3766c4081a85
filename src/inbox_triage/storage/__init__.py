"""File-backed stores for labeled examples, embeddings, and cached results."""

from .cache import ResultCache
from .examples import LabeledExampleLog
from .index_store import VectorIndexStore

__all__ = ["LabeledExampleLog", "ResultCache", "VectorIndexStore"]
