"""Mermaid diagram engines used by the response renderer."""

from __future__ import annotations

import html
import logging
import re
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Protocol

from .errors import DiagramRenderError

LOGGER = logging.getLogger(__name__)

KNOWN_DIAGRAM_TYPES: FrozenSet[str] = frozenset(
    {
        "graph",
        "flowchart",
        "sequencediagram",
        "classdiagram",
        "statediagram",
        "statediagram-v2",
        "erdiagram",
        "journey",
        "gantt",
        "pie",
        "quadrantchart",
        "requirementdiagram",
        "gitgraph",
        "mindmap",
        "timeline",
        "sankey-beta",
        "xychart-beta",
        "block-beta",
        "c4context",
        "c4container",
        "c4component",
        "c4dynamic",
        "c4deployment",
    }
)

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {value: key for key, value in _OPENERS.items()}
_SVG_PROLOGUE = re.compile(r"^\s*<\?xml[^>]*>\s*", re.IGNORECASE)
# Crow's-foot relationship markers such as ||--o{ or }|..|{
_ER_RELATIONSHIP = re.compile(r"[|}][|o](?:--|\.\.)[|o][|{]")
# Diagram types whose statements carry free-form labels after the first colon.
_LABELLED_DIAGRAMS: FrozenSet[str] = frozenset(
    {"sequencediagram", "erdiagram", "gantt", "journey", "timeline"}
)


class DiagramEngine(Protocol):
    """Turn diagram source into display markup, raising on invalid input."""

    def render(self, source: str) -> str:
        """Return markup for ``source`` or raise :class:`DiagramRenderError`."""


def _diagram_header(source: str) -> str:
    """Return the first line that declares the diagram type."""

    lines = iter(source.splitlines())
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("%%"):
            continue
        if stripped == "---":
            # Skip a YAML front-matter block.
            for inner in lines:
                if inner.strip() == "---":
                    break
            else:
                raise DiagramRenderError("Unterminated front-matter block")
            continue
        return stripped
    raise DiagramRenderError("Diagram is empty")


def _check_brackets(source: str, diagram_type: str = "") -> None:
    stack: list[tuple[str, int]] = []
    for line_number, line in enumerate(source.splitlines(), start=1):
        if line.strip().startswith("%%"):
            continue
        if diagram_type in _LABELLED_DIAGRAMS:
            line = line.split(":", 1)[0]
        if diagram_type == "erdiagram":
            line = _ER_RELATIONSHIP.sub(" ", line)
        in_quotes = False
        for char in line:
            if char == '"':
                in_quotes = not in_quotes
                continue
            if in_quotes:
                continue
            if char in _OPENERS:
                stack.append((char, line_number))
            elif char in _CLOSERS:
                if stack and stack[-1][0] == _CLOSERS[char]:
                    stack.pop()
                elif char == "]" and not stack:
                    # Asymmetric flowchart nodes are written as A>label]
                    continue
                else:
                    raise DiagramRenderError(f"Unexpected '{char}' on line {line_number}")
        if in_quotes:
            raise DiagramRenderError(f"Unterminated string on line {line_number}")
    if stack:
        char, line_number = stack[-1]
        raise DiagramRenderError(f"Unclosed '{char}' opened on line {line_number}")


@dataclass(slots=True)
class MermaidSourceEngine(DiagramEngine):
    """Validate Mermaid source and emit a block for in-browser rendering."""

    css_class: str = "mermaid"

    def render(self, source: str) -> str:
        text = source.strip()
        header = _diagram_header(text)
        keyword = header.split()[0].rstrip(";").lower()
        if keyword not in KNOWN_DIAGRAM_TYPES:
            raise DiagramRenderError(f"Unknown diagram type: {header.split()[0]!r}")
        _check_brackets(text, keyword)
        return f'<div class="{self.css_class}">{html.escape(text)}</div>'


@dataclass(slots=True)
class MermaidCLIEngine(DiagramEngine):
    """Render Mermaid source to inline SVG with the ``mmdc`` executable."""

    executable: str = "mmdc"
    timeout: float = 30.0
    background: str = "transparent"

    def render(self, source: str) -> str:
        executable = shutil.which(self.executable)
        if executable is None:
            raise DiagramRenderError(f"Mermaid CLI not found: {self.executable}")

        with tempfile.TemporaryDirectory(prefix="investor-chat-mermaid-") as workdir:
            input_path = Path(workdir) / "diagram.mmd"
            output_path = Path(workdir) / "diagram.svg"
            input_path.write_text(source, encoding="utf-8")
            try:
                result = subprocess.run(
                    [
                        executable,
                        "--quiet",
                        "--input",
                        str(input_path),
                        "--output",
                        str(output_path),
                        "--backgroundColor",
                        self.background,
                    ],
                    check=False,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            except subprocess.TimeoutExpired as exc:
                raise DiagramRenderError(
                    f"Mermaid CLI timed out after {self.timeout} seconds"
                ) from exc
            except OSError as exc:
                raise DiagramRenderError(f"Unable to run Mermaid CLI: {exc}") from exc

            if result.returncode != 0:
                detail = (result.stderr or result.stdout or "").strip().splitlines()
                message = detail[-1] if detail else f"exit status {result.returncode}"
                raise DiagramRenderError(f"Mermaid CLI failed: {message}")
            if not output_path.exists():
                raise DiagramRenderError("Mermaid CLI did not produce an SVG file")
            svg = output_path.read_text(encoding="utf-8")

        LOGGER.debug("Rendered diagram to %s bytes of SVG", len(svg))
        return _SVG_PROLOGUE.sub("", svg)


def build_diagram_engine(kind: str, *, mmdc_path: str = "mmdc", mmdc_timeout: float = 30.0) -> DiagramEngine:
    if kind == "mmdc":
        return MermaidCLIEngine(executable=mmdc_path, timeout=mmdc_timeout)
    if kind == "client":
        return MermaidSourceEngine()
    raise ValueError(f"Unsupported diagram engine: {kind}")


__all__ = [
    "DiagramEngine",
    "KNOWN_DIAGRAM_TYPES",
    "MermaidCLIEngine",
    "MermaidSourceEngine",
    "build_diagram_engine",
]
