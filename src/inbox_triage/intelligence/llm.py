"""LLM client abstractions used by intelligence features."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import urljoin

import httpx

from inbox_triage.core.config import LlmSettings
from inbox_triage.core.errors import UpstreamError

LOGGER = logging.getLogger(__name__)


class LLMError(UpstreamError):
    """Raised when the LLM provider fails to respond as expected."""


class LLMClient(Protocol):
    """Protocol describing the minimal LLM client behaviour."""

    @property
    def provider_id(self) -> str:
        """Identifier describing the backing model/provider."""
        raise NotImplementedError

    def generate(self, prompt: str, *, temperature: float | None = None) -> str:
        """Return the raw text completion for ``prompt``."""
        raise NotImplementedError


@dataclass(slots=True)
class OllamaClient:
    """Thin synchronous client for the Ollama HTTP API.

    Serves both the completion and the embedding collaborator. Requests are
    attempted ``settings.max_attempts`` times; anything beyond that is the
    caller's retry policy.
    """

    settings: LlmSettings

    def generate(self, prompt: str, *, temperature: float | None = None) -> str:
        """Send a completion request to the Ollama server."""
        options: dict[str, object] = {
            "temperature": (
                self.settings.temperature if temperature is None else temperature
            ),
        }
        if self.settings.max_output_tokens is not None:
            options["num_predict"] = self.settings.max_output_tokens
        payload: dict[str, object] = {
            "model": self.settings.model,
            "prompt": prompt,
            "stream": False,
            "options": options,
        }
        data = self._post("api/generate", payload)
        result = data.get("response")
        if not isinstance(result, str):
            raise LLMError("LLM response missing 'response' field")
        return result

    def embed(self, text: str) -> Sequence[float]:
        """Return the embedding vector for ``text``."""
        payload = {"model": self.settings.embedding_model, "prompt": text}
        data = self._post("api/embeddings", payload)
        vector = data.get("embedding")
        if not isinstance(vector, list) or not vector:
            raise LLMError("Embedding response missing 'embedding' field")
        if any(not isinstance(value, (int, float)) for value in vector):
            raise LLMError("Embedding response contained non-numeric values")
        return [float(value) for value in vector]

    @property
    def provider_id(self) -> str:
        """Return a human readable identifier for the configured model."""
        return f"ollama:{self.settings.model}"

    def _post(self, path: str, payload: dict[str, object]) -> dict[str, Any]:
        endpoint = _resolve_endpoint(self.settings.base_url, path)
        attempts = self.settings.max_attempts
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                response = httpx.post(
                    endpoint,
                    json=payload,
                    timeout=self.settings.timeout_seconds,
                )
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPError as exc:  # pragma: no cover - network dependent
                last_error = exc
                LOGGER.debug(
                    "Attempt %d/%d to %s failed: %s", attempt, attempts, path, exc
                )
            except json.JSONDecodeError as exc:
                raise LLMError("LLM returned invalid JSON") from exc
            else:
                if not isinstance(data, dict):
                    raise LLMError("LLM returned an unexpected payload")
                return data

            if attempt < attempts:
                delay = min(2**attempt, 8)
                time.sleep(delay)

        raise LLMError(f"LLM request to {path} failed") from last_error


def _resolve_endpoint(base_url: str, path: str) -> str:
    trimmed = base_url.rstrip("/") + "/"
    return urljoin(trimmed, path)


__all__ = ["LLMClient", "OllamaClient", "LLMError"]
