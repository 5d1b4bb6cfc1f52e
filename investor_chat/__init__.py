"""Top-level package for the Investor Chat project."""

from .config import AppConfig, load_config
from .documents import Document, DocumentStore
from .prompts import TaskCatalog, build_prompt
from .rendering import ResponseRenderer
from .router import ProviderRouter
from .session import ChatSession, build_session
from .status import StatusChannel

__all__ = [
    "AppConfig",
    "ChatSession",
    "Document",
    "DocumentStore",
    "ProviderRouter",
    "ResponseRenderer",
    "StatusChannel",
    "TaskCatalog",
    "build_prompt",
    "build_session",
    "load_config",
]
