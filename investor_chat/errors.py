"""Exception hierarchy shared across Investor Chat."""

from __future__ import annotations


class InvestorChatError(Exception):
    """Base class for errors surfaced to the user as ``Error: ...`` messages."""


class ConfigError(InvestorChatError, ValueError):
    """Raised when the configuration file contains invalid values."""


class ParseError(InvestorChatError):
    """Raised when a document cannot be read or its text extracted."""


class NoDocumentError(InvestorChatError):
    """Raised when a query is issued before any document was loaded."""

    def __init__(self, message: str = "No document is loaded.") -> None:
        super().__init__(message)


class UnknownTaskError(InvestorChatError):
    """Raised when a task id is not registered in the catalog."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Unknown task: {task_id!r}")
        self.task_id = task_id


class MissingCredentialError(InvestorChatError):
    """Raised when the credential required by the selected provider is absent."""

    def __init__(self, variable: str, provider: str) -> None:
        super().__init__(
            f"No API key found for {provider}; set the {variable} environment variable."
        )
        self.variable = variable
        self.provider = provider


class ProviderError(InvestorChatError):
    """Raised when an LLM provider call fails or returns an unexpected shape."""


class DiagramRenderError(InvestorChatError):
    """Raised by diagram engines; always contained by the renderer."""


__all__ = [
    "ConfigError",
    "DiagramRenderError",
    "InvestorChatError",
    "MissingCredentialError",
    "NoDocumentError",
    "ParseError",
    "ProviderError",
    "UnknownTaskError",
]
