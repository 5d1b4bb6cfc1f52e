"""Route prompts to the configured LLM provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional

from .config import LLMConfig, ProviderConfig, ProviderKind
from .errors import MissingCredentialError, ProviderError
from .llm.base import CompletionClient
from .status import StatusChannel

LOGGER = logging.getLogger(__name__)

ClientFactory = Callable[[str], CompletionClient]


def default_client_factories(llm: LLMConfig) -> Dict[ProviderKind, ClientFactory]:
    """Build SDK-backed factories; SDK modules are imported on first use."""

    def openai_factory(api_key: str) -> CompletionClient:
        from .llm.openai_client import OpenAICompletionClient

        return OpenAICompletionClient(
            api_key=api_key, temperature=llm.temperature, timeout=llm.timeout
        )

    def gemini_factory(api_key: str) -> CompletionClient:
        from .llm.gemini import GeminiCompletionClient

        return GeminiCompletionClient(
            api_key=api_key, temperature=llm.temperature, timeout=llm.timeout
        )

    return {ProviderKind.OPENAI: openai_factory, ProviderKind.GEMINI: gemini_factory}


@dataclass(slots=True)
class ProviderRouter:
    """Send a prompt to the provider selected by ``config`` and return its text."""

    config: ProviderConfig
    factories: Mapping[ProviderKind, ClientFactory]
    status: StatusChannel = field(default_factory=StatusChannel)
    _clients: Dict[ProviderKind, CompletionClient] = field(
        default_factory=dict, init=False, repr=False
    )

    @property
    def model(self) -> str:
        return self.config.model

    @property
    def kind(self) -> ProviderKind:
        return self.config.kind

    def dispatch(self, prompt: str) -> str:
        """Run ``prompt`` as a single-turn completion.

        The credential check happens before any client is built, so a missing
        key never results in a network attempt. Failures are not retried.
        """
        kind = self.config.kind
        api_key = self.config.api_key
        if not api_key:
            raise MissingCredentialError(self.config.credential_variable, kind.label)

        client = self._client_for(kind, api_key)
        self.status.status(f"Asking {kind.label} ({self.config.model})...")
        LOGGER.info(
            "Dispatching %s character prompt to %s model %s",
            len(prompt),
            kind.label,
            self.config.model,
        )
        try:
            answer = client.complete(self.config.model, prompt)
        except ProviderError as exc:
            LOGGER.error("%s request failed: %s", kind.label, exc)
            self.status.status(f"Error: {exc}", stage="error")
            raise
        except Exception as exc:
            LOGGER.exception("%s client raised unexpectedly", kind.label)
            self.status.status(f"Error: {exc}", stage="error")
            raise ProviderError(f"{kind.label} request failed: {exc}") from exc

        if not isinstance(answer, str):
            self.status.status("Error: unexpected response", stage="error")
            raise ProviderError(
                f"{kind.label} returned {type(answer).__name__} instead of text."
            )

        self.status.status("Response received.")
        return answer

    def _client_for(self, kind: ProviderKind, api_key: str) -> CompletionClient:
        client: Optional[CompletionClient] = self._clients.get(kind)
        if client is not None:
            return client
        factory = self.factories.get(kind)
        if factory is None:
            raise ProviderError(f"No client is registered for {kind.label}.")
        try:
            client = factory(api_key)
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(f"Unable to initialise the {kind.label} client: {exc}") from exc
        self._clients[kind] = client
        return client


def build_router(
    config: ProviderConfig, llm: LLMConfig, *, status: StatusChannel | None = None
) -> ProviderRouter:
    return ProviderRouter(
        config=config,
        factories=default_client_factories(llm),
        status=status or StatusChannel(),
    )


__all__ = ["ClientFactory", "ProviderRouter", "build_router", "default_client_factories"]
