"""Gemini-backed completion client."""

from __future__ import annotations

import importlib.util
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import ProviderError
from .base import CompletionClient


_GENAI_SPEC = importlib.util.find_spec("google.generativeai")
if _GENAI_SPEC:  # pragma: no cover - imported dynamically in tests
    import google.generativeai as genai  # type: ignore
else:  # pragma: no cover - fallback executed when dependency missing
    genai = None  # type: ignore

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class GeminiCompletionClient(CompletionClient):
    """Answer prompts with the Gemini API."""

    api_key: str
    temperature: Optional[float] = None
    timeout: float = 120.0
    _models: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        if genai is None:  # pragma: no cover - depends on optional dependency
            raise ProviderError(
                "GeminiCompletionClient requires the 'google-generativeai' package."
            )
        if not self.api_key:
            raise ValueError("GeminiCompletionClient requires a non-empty API key.")
        genai.configure(api_key=self.api_key)

    def complete(self, model: str, prompt: str) -> str:
        generative_model = self._model_for(model)
        try:
            response = generative_model.generate_content(
                prompt, request_options={"timeout": self.timeout}
            )
        except Exception as exc:
            raise ProviderError(f"Gemini API request failed: {exc}") from exc

        feedback = getattr(response, "prompt_feedback", None)
        if feedback and getattr(feedback, "block_reason", None):
            reason = getattr(feedback, "block_reason", "unspecified")
            raise ProviderError(f"Gemini blocked the request: {reason}")

        text = self._extract_response_text(response)
        if not text:
            raise ProviderError("Gemini did not return any text content.")
        return text

    def _model_for(self, model: str):
        cached = self._models.get(model)
        if cached is None:
            LOGGER.debug("Creating Gemini model handle for %s", model)
            generation_config = None
            if self.temperature is not None:
                generation_config = {"temperature": float(self.temperature)}
            cached = genai.GenerativeModel(
                model_name=model, generation_config=generation_config
            )
            self._models[model] = cached
        return cached

    @staticmethod
    def _extract_response_text(response) -> str:
        try:
            text = getattr(response, "text", "") or ""
        except ValueError:
            # The SDK raises when the response has no text part.
            text = ""
        if text:
            return str(text).strip()

        candidates = getattr(response, "candidates", None)
        parts: List[str] = []
        if candidates:
            for candidate in candidates:
                content = getattr(candidate, "content", None)
                if not content:
                    continue
                for part in getattr(content, "parts", []):
                    value = getattr(part, "text", None)
                    if value:
                        parts.append(str(value))
        return "\n".join(parts).strip()


__all__ = ["GeminiCompletionClient"]
