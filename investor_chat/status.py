"""One-way notifications from the core to the presentation layer."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

LOGGER = logging.getLogger(__name__)

STATUS = "status"
DOCUMENT_LOADED = "document_loaded"
OPEN_TASK_MENU = "open_task_menu"


@dataclass(frozen=True, slots=True)
class StatusEvent:
    """A single notification; ``stage`` is set for document load progress."""

    kind: str
    message: str = ""
    stage: Optional[str] = None


StatusListener = Callable[[StatusEvent], None]


@dataclass(slots=True)
class StatusChannel:
    """Fan out status events to subscribers without depending on their delivery."""

    _listeners: List[StatusListener] = field(default_factory=list, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: StatusEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:  # noqa: BLE001 - listeners must never break the core
                LOGGER.exception("Status listener %r failed for %s event", listener, event.kind)

    def status(self, message: str, *, stage: str | None = None) -> None:
        self.publish(StatusEvent(kind=STATUS, message=message, stage=stage))

    def document_loaded(self, name: str) -> None:
        self.publish(StatusEvent(kind=DOCUMENT_LOADED, message=name))

    def open_task_menu(self) -> None:
        self.publish(StatusEvent(kind=OPEN_TASK_MENU))


class StatusLogListener:
    """Mirror status events into the ``investor_chat.status`` logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or LOGGER

    def __call__(self, event: StatusEvent) -> None:
        if event.kind == DOCUMENT_LOADED:
            self._logger.info("Document loaded: %s", event.message)
        elif event.kind == OPEN_TASK_MENU:
            self._logger.debug("Task menu requested")
        elif event.stage == "error":
            self._logger.warning("%s", event.message)
        else:
            self._logger.info("%s", event.message)


__all__ = [
    "DOCUMENT_LOADED",
    "OPEN_TASK_MENU",
    "STATUS",
    "StatusChannel",
    "StatusEvent",
    "StatusListener",
    "StatusLogListener",
]
