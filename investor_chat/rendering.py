"""Turn markdown answers into sanitized HTML with rendered diagrams."""

from __future__ import annotations

import enum
import html
import importlib.util
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from bs4 import BeautifulSoup

from .diagrams import DiagramEngine, MermaidSourceEngine

LOGGER = logging.getLogger(__name__)

HtmlTransform = Callable[[str], str]

DIAGRAM_ERROR_BANNER = "Failed to render diagram. Showing raw syntax:"
_REQUIRED_MODULES = ("markdown_it", "nh3")


@dataclass(frozen=True, slots=True)
class RenderingCapability:
    """Whether the markdown parser and sanitizer can be used."""

    available: bool
    missing: Tuple[str, ...] = ()

    @classmethod
    def detect(cls) -> "RenderingCapability":
        missing = tuple(name for name in _REQUIRED_MODULES if importlib.util.find_spec(name) is None)
        if missing:
            LOGGER.warning(
                "Markdown rendering disabled; missing module(s): %s", ", ".join(missing)
            )
        return cls(available=not missing, missing=missing)


class DiagramOutcome(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class DiagramBlock:
    """The result of rendering one diagram block."""

    source: str
    outcome: DiagramOutcome
    error: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RenderedMessage:
    html: str
    diagrams: Tuple[DiagramBlock, ...] = ()


def markdown_to_html() -> HtmlTransform:
    from markdown_it import MarkdownIt

    parser = MarkdownIt("commonmark").enable("table")
    return parser.render


def html_sanitizer() -> HtmlTransform:
    import nh3

    attributes = {tag: set(names) for tag, names in nh3.ALLOWED_ATTRIBUTES.items()}
    # Fence languages arrive as class="language-xxx" on <code>.
    attributes.setdefault("code", set()).add("class")

    def sanitize(value: str) -> str:
        return nh3.clean(value, attributes=attributes)

    return sanitize


def plain_text(markdown: str) -> str:
    return f'<pre class="plain-text">{html.escape(markdown)}</pre>'


@dataclass(slots=True)
class ResponseRenderer:
    """Render model answers for display.

    Parser and sanitizer are resolved once. Each diagram block is rendered on
    its own: a failure keeps the raw block with an error banner above it and
    never affects the rest of the message.
    """

    diagram_engine: DiagramEngine = field(default_factory=MermaidSourceEngine)
    capability: Optional[RenderingCapability] = None
    to_html: Optional[HtmlTransform] = None
    sanitize: Optional[HtmlTransform] = None
    diagram_language: str = "mermaid"
    diagram_class: str = "mermaid-diagram"
    error_class: str = "diagram-error"

    def __post_init__(self) -> None:
        if self.capability is None:
            if self.to_html is not None and self.sanitize is not None:
                self.capability = RenderingCapability(available=True)
            else:
                self.capability = RenderingCapability.detect()
        if self.capability.available:
            if self.to_html is None:
                self.to_html = markdown_to_html()
            if self.sanitize is None:
                self.sanitize = html_sanitizer()

    def render(self, markdown: str) -> str:
        """Convert markdown to sanitized HTML, or escaped plain text on failure."""
        if not self.capability.available or self.to_html is None or self.sanitize is None:
            return plain_text(markdown)
        try:
            raw_html = self.to_html(markdown)
        except Exception:
            LOGGER.exception("Markdown rendering failed; falling back to plain text")
            return plain_text(markdown)
        try:
            return self.sanitize(raw_html)
        except Exception:
            LOGGER.exception("HTML sanitization failed; falling back to plain text")
            return plain_text(markdown)

    def extract_and_render_diagrams(self, html_text: str) -> str:
        rendered, _blocks = self._render_diagrams(html_text)
        return rendered

    def render_message(self, markdown: str) -> RenderedMessage:
        rendered, blocks = self._render_diagrams(self.render(markdown))
        return RenderedMessage(html=rendered, diagrams=tuple(blocks))

    def _render_diagrams(self, html_text: str) -> Tuple[str, List[DiagramBlock]]:
        soup = BeautifulSoup(html_text, "html.parser")
        language_class = f"language-{self.diagram_language}"
        targets = [
            code
            for code in soup.select("pre > code")
            if language_class in (code.get("class") or [])
        ]
        if not targets:
            return html_text, []

        LOGGER.debug("Found %s diagram block(s)", len(targets))
        blocks: List[DiagramBlock] = []
        for index, code in enumerate(targets):
            pre = code.parent
            source = code.get_text()
            try:
                fragment = BeautifulSoup(self.diagram_engine.render(source), "html.parser")
            except Exception as exc:  # noqa: BLE001 - diagram input is untrusted
                LOGGER.warning("Diagram %s failed to render: %s", index, exc)
                banner = soup.new_tag("div", attrs={"class": self.error_class})
                banner.string = DIAGRAM_ERROR_BANNER
                pre.insert_before(banner)
                blocks.append(
                    DiagramBlock(source=source, outcome=DiagramOutcome.FAILED, error=str(exc))
                )
                continue

            container = soup.new_tag("div", attrs={"class": self.diagram_class})
            for child in list(fragment.contents):
                container.append(child.extract())
            pre.replace_with(container)
            blocks.append(DiagramBlock(source=source, outcome=DiagramOutcome.SUCCESS))
        return str(soup), blocks


__all__ = [
    "DIAGRAM_ERROR_BANNER",
    "DiagramBlock",
    "DiagramOutcome",
    "RenderedMessage",
    "RenderingCapability",
    "ResponseRenderer",
    "html_sanitizer",
    "markdown_to_html",
    "plain_text",
]
