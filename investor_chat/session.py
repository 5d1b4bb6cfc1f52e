"""Top-level request handling between the core and the presentation layer."""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .config import AppConfig
from .diagrams import build_diagram_engine
from .documents import DocumentStore
from .errors import InvestorChatError
from .prompts import DEFAULT_SYSTEM_INSTRUCTION, TaskCatalog, TaskDefinition, build_prompt
from .rendering import RenderedMessage, ResponseRenderer
from .router import ProviderRouter, build_router
from .status import StatusChannel

LOGGER = logging.getLogger(__name__)

NO_DOCUMENT_MESSAGE = "Please open a PDF file first."
BUSY_MESSAGE = "Error: A request is already in progress."
ERROR_PREFIX = "Error: "


class Role(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True, slots=True)
class Message:
    """A chat message; assistant messages keep their markdown for copying."""

    role: Role
    rendered_content: str
    raw_markdown: Optional[str] = None


def format_error(exc: BaseException) -> str:
    return f"{ERROR_PREFIX}{exc}"


@dataclass(slots=True)
class ChatSession:
    """Answer questions and run tasks against the loaded document.

    Every method returns text for display; core errors are converted into
    ``Error: ...`` strings instead of propagating. A request issued while
    another one is running is rejected.
    """

    documents: DocumentStore
    router: ProviderRouter
    renderer: ResponseRenderer
    tasks: TaskCatalog = field(default_factory=TaskCatalog)
    status: StatusChannel = field(default_factory=StatusChannel)
    system_instruction: str = DEFAULT_SYSTEM_INSTRUCTION
    history: List[Message] = field(default_factory=list)
    _busy: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def open_document(self, pdf_bytes: bytes, name: str) -> str:
        return self._open(lambda: self.documents.load(pdf_bytes, name).name)

    def open_path(self, path: str | Path) -> str:
        return self._open(lambda: self.documents.load_path(path).name)

    def ask(self, question: str) -> str:
        """Answer a free-form question about the loaded document."""
        return self._exclusive(lambda: self._ask(question))

    def run_task(self, task_id: str) -> str:
        """Run a catalog task against the loaded document."""
        return self._exclusive(lambda: self._run_task(task_id))

    def send_message(self, question: str) -> Message:
        self._record(Message(role=Role.USER, rendered_content=question))
        return self._respond(self.ask(question))

    def send_task(self, task_id: str) -> Message:
        title = task_id
        if task_id in self.tasks:
            title = self.tasks.get(task_id).title
        self._record(Message(role=Role.USER, rendered_content=f"[Running Task: {title}...]"))
        return self._respond(self.run_task(task_id))

    def show_task_menu(self) -> Tuple[TaskDefinition, ...]:
        self.status.open_task_menu()
        return tuple(self.tasks)

    def render(self, markdown: str) -> RenderedMessage:
        return self.renderer.render_message(markdown)

    @staticmethod
    def copy_text(message: Message) -> str:
        if message.raw_markdown is not None:
            return message.raw_markdown
        return message.rendered_content

    def last_assistant_message(self) -> Optional[Message]:
        for message in reversed(self.history):
            if message.role is Role.ASSISTANT:
                return message
        return None

    # Internal helpers -------------------------------------------------

    def _ask(self, question: str) -> str:
        document_text = self.documents.current_text()
        if document_text is None:
            return NO_DOCUMENT_MESSAGE
        prompt = build_prompt(document_text, question, self.system_instruction)
        return self.router.dispatch(prompt)

    def _run_task(self, task_id: str) -> str:
        document_text = self.documents.current_text()
        if document_text is None:
            return NO_DOCUMENT_MESSAGE
        template = self.tasks.resolve(task_id)
        return self.router.dispatch(build_prompt(document_text, template))

    def _open(self, load: Callable[[], str]) -> str:
        try:
            name = self._exclusive_raw(load)
        except InvestorChatError as exc:
            return format_error(exc)
        if name is None:
            return BUSY_MESSAGE
        return f"I've read {name}. Select a task or ask away!"

    def _exclusive(self, action: Callable[[], str]) -> str:
        try:
            result = self._exclusive_raw(action)
        except InvestorChatError as exc:
            LOGGER.info("Request failed: %s", exc)
            return format_error(exc)
        if result is None:
            return BUSY_MESSAGE
        return result

    def _exclusive_raw(self, action: Callable[[], str]) -> Optional[str]:
        if not self._busy.acquire(blocking=False):
            LOGGER.warning("Rejected request; another request is still running")
            return None
        try:
            return action()
        finally:
            self._busy.release()

    def _respond(self, answer: str) -> Message:
        rendered = self.renderer.render_message(answer)
        message = Message(role=Role.ASSISTANT, rendered_content=rendered.html, raw_markdown=answer)
        self._record(message)
        return message

    def _record(self, message: Message) -> None:
        self.history.append(message)


def build_session(
    config: AppConfig,
    *,
    status: StatusChannel | None = None,
    router: ProviderRouter | None = None,
    renderer: ResponseRenderer | None = None,
) -> ChatSession:
    """Wire the store, router and renderer described by ``config``."""

    channel = status or StatusChannel()
    if router is None:
        provider = config.resolve_provider()
        LOGGER.info("Using %s model %s", provider.kind.label, provider.model)
        router = build_router(provider, config.llm, status=channel)
    if renderer is None:
        renderer = ResponseRenderer(
            diagram_engine=build_diagram_engine(
                config.rendering.diagram_engine,
                mmdc_path=config.rendering.mmdc_path,
                mmdc_timeout=config.rendering.mmdc_timeout,
            )
        )
    return ChatSession(
        documents=DocumentStore(status=channel),
        router=router,
        renderer=renderer,
        status=channel,
    )


__all__ = [
    "BUSY_MESSAGE",
    "ChatSession",
    "Message",
    "NO_DOCUMENT_MESSAGE",
    "Role",
    "build_session",
    "format_error",
]
