"""The single active document and the PDF text extraction it depends on."""

from __future__ import annotations

import io
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from .errors import NoDocumentError, ParseError
from .status import StatusChannel

LOGGER = logging.getLogger(__name__)

TextExtractor = Callable[[bytes], str]


@dataclass(frozen=True, slots=True)
class Document:
    """Text extracted from a user-supplied file."""

    name: str
    text: str


def extract_text(pdf_bytes: bytes) -> str:
    """Return the text of every page of ``pdf_bytes`` joined by newlines."""

    if not pdf_bytes:
        raise ParseError("The file is empty.")
    try:
        reader = PdfReader(io.BytesIO(pdf_bytes))
        contents = []
        for page in reader.pages:
            page_text = page.extract_text() or ""
            contents.append(page_text.strip())
    except PyPdfError as exc:
        raise ParseError(f"Invalid PDF structure: {exc}") from exc
    except (ValueError, KeyError, TypeError, OSError) as exc:
        raise ParseError(f"Unable to read PDF: {exc}") from exc
    return "\n".join(contents)


@dataclass(slots=True)
class DocumentStore:
    """Own the current document; each successful load replaces it wholesale."""

    status: StatusChannel = field(default_factory=StatusChannel)
    extractor: TextExtractor = extract_text
    _document: Optional[Document] = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def load(self, pdf_bytes: bytes, name: str) -> Document:
        """Extract ``pdf_bytes`` and make the result the active document.

        On failure the previously loaded document stays active.
        """
        self.status.status(f"Reading file: {name}...", stage="reading")
        self.status.status("Parsing PDF...", stage="parsing")
        try:
            text = self.extractor(pdf_bytes)
        except ParseError as exc:
            self._report_failure(name, exc)
            raise
        except Exception as exc:
            self._report_failure(name, exc)
            raise ParseError(str(exc) or exc.__class__.__name__) from exc

        if not text.strip():
            LOGGER.warning("%s did not contain extractable text", name)

        document = Document(name=name, text=text)
        with self._lock:
            self._document = document
        LOGGER.info("Loaded %s (%s characters)", name, len(text))
        self.status.document_loaded(name)
        self.status.status("File loaded successfully.", stage="loaded")
        return document

    def load_path(self, path: str | Path) -> Document:
        file_path = Path(path).expanduser()
        try:
            pdf_bytes = file_path.read_bytes()
        except OSError as exc:
            self._report_failure(file_path.name, exc)
            raise ParseError(f"Unable to read {file_path}: {exc.strerror or exc}") from exc
        return self.load(pdf_bytes, file_path.name)

    def current(self) -> Optional[Document]:
        with self._lock:
            return self._document

    def current_text(self) -> Optional[str]:
        document = self.current()
        return document.text if document is not None else None

    def require_text(self) -> str:
        document = self.current()
        if document is None:
            raise NoDocumentError()
        return document.text

    def _report_failure(self, name: str, exc: Exception) -> None:
        LOGGER.error("Error reading %s: %s", name, exc)
        self.status.status(f"Error: {exc}", stage="error")


__all__ = ["Document", "DocumentStore", "TextExtractor", "extract_text"]
