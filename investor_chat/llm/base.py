"""LLM client abstractions."""

from __future__ import annotations

from typing import Protocol


class CompletionClient(Protocol):
    """Single-turn completion capability shared by every provider."""

    def complete(self, model: str, prompt: str) -> str:
        """Send ``prompt`` as the sole user message and return the answer text."""


__all__ = ["CompletionClient"]
