"""Completion clients for the supported LLM providers."""

from .base import CompletionClient
from .gemini import GeminiCompletionClient
from .openai_client import OpenAICompletionClient

__all__ = ["CompletionClient", "GeminiCompletionClient", "OpenAICompletionClient"]
