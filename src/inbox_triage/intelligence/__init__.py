"""Classification cascade and LLM-powered intelligence services."""

from .cascade import CascadeClassifier, build_default_cascade
from .classifier import LLMLabelClassifier
from .drafter import DraftingService
from .llm import LLMClient, LLMError, OllamaClient
from .rules import RuleClassifier
from .similarity import SimilarityClassifier, cosine_similarity
from .summarizer import SummarizationService
from .triage import TriageComponents, TriagedEmail, TriageService, build_components

__all__ = [
    "CascadeClassifier",
    "DraftingService",
    "LLMClient",
    "LLMError",
    "LLMLabelClassifier",
    "OllamaClient",
    "RuleClassifier",
    "SimilarityClassifier",
    "SummarizationService",
    "TriageComponents",
    "TriageService",
    "TriagedEmail",
    "build_components",
    "build_default_cascade",
    "cosine_similarity",
]
