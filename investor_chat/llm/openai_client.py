"""OpenAI-backed completion client."""

from __future__ import annotations

import importlib.util
from dataclasses import dataclass, field
from typing import Any

from ..errors import ProviderError
from .base import CompletionClient


_OPENAI_SPEC = importlib.util.find_spec("openai")
if _OPENAI_SPEC:  # pragma: no cover - imported dynamically in tests
    import openai  # type: ignore
else:  # pragma: no cover - fallback executed when dependency missing
    openai = None  # type: ignore


@dataclass(slots=True)
class OpenAICompletionClient(CompletionClient):
    """Answer prompts with the OpenAI chat completions API."""

    api_key: str
    temperature: float | None = None
    timeout: float = 120.0
    _client: Any = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if openai is None:  # pragma: no cover - depends on optional dependency
            raise ProviderError("OpenAICompletionClient requires the 'openai' package.")
        if not self.api_key:
            raise ValueError("OpenAICompletionClient requires a non-empty API key.")
        self._client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout)

    def complete(self, model: str, prompt: str) -> str:
        request_params: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.temperature is not None:
            request_params["temperature"] = float(self.temperature)

        try:
            response = self._client.chat.completions.create(**request_params)
        except Exception as exc:
            raise ProviderError(f"OpenAI API request failed: {exc}") from exc

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise ProviderError("OpenAI returned an unexpected response shape.") from exc

        if not isinstance(content, str) or not content.strip():
            raise ProviderError("OpenAI did not return any text content.")
        return content.strip()


__all__ = ["OpenAICompletionClient"]
