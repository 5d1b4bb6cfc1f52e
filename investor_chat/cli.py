"""Command line interface for Investor Chat."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, TextIO

from .config import load_config
from .errors import ConfigError
from .logging_utils import configure_logging
from .session import NO_DOCUMENT_MESSAGE, ChatSession, Message, build_session
from .status import DOCUMENT_LOADED, OPEN_TASK_MENU, StatusChannel, StatusEvent, StatusLogListener

LOGGER = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  /open <path>   load a PDF document
  /tasks         list the available tasks
  /task <id>     run a task against the document
  /copy          print the markdown of the last answer
  /help          show this help
  /quit          exit
Anything else is sent as a question about the document."""


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with a PDF document through an LLM.")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to an optional JSON configuration file.",
    )
    parser.add_argument("--pdf", type=Path, help="PDF document to load on start-up.")
    action = parser.add_mutually_exclusive_group()
    action.add_argument("--ask", metavar="QUESTION", help="Ask one question and exit.")
    action.add_argument("--task", metavar="TASK_ID", help="Run one task and exit.")
    parser.add_argument(
        "--html",
        action="store_true",
        help="Print rendered, sanitized HTML instead of the raw markdown answer.",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for daily log files (defaults to ./log).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging output.",
    )
    return parser.parse_args(argv)


class ConsoleStatusListener:
    """Print status events the way a status bar would show them."""

    def __init__(self, session_tasks: Callable[[], str], stream: TextIO | None = None) -> None:
        self._session_tasks = session_tasks
        self._stream = stream or sys.stderr

    def __call__(self, event: StatusEvent) -> None:
        if event.kind == DOCUMENT_LOADED:
            print(f"Current file: {event.message}", file=self._stream)
        elif event.kind == OPEN_TASK_MENU:
            print(self._session_tasks(), file=self._stream)
        else:
            print(f"[{event.message}]", file=self._stream)


def format_task_menu(session: ChatSession) -> str:
    lines = ["Tasks:"]
    for task in session.tasks:
        lines.append(f"  {task.id:<16} {task.title}")
    return "\n".join(lines)


def _display(message: Message, *, as_html: bool, out: TextIO) -> None:
    if as_html:
        print(message.rendered_content, file=out)
    else:
        print(ChatSession.copy_text(message), file=out)


def run_interactive(session: ChatSession, *, as_html: bool, out: TextIO | None = None) -> int:
    out = out or sys.stdout
    print(f"Using {session.router.kind.label} model {session.router.model}", file=out)
    print(HELP_TEXT, file=out)
    while True:
        try:
            line = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print(file=out)
            return 0
        if not line:
            continue

        command, _, argument = line.partition(" ")
        argument = argument.strip()
        if command in {"/quit", "/exit"}:
            return 0
        if command == "/help":
            print(HELP_TEXT, file=out)
        elif command == "/open":
            if not argument:
                print("Usage: /open <path>", file=out)
                continue
            print(session.open_path(argument), file=out)
        elif command == "/tasks":
            session.show_task_menu()
        elif command == "/task":
            if not argument:
                print("Usage: /task <id>", file=out)
                continue
            _display(session.send_task(argument), as_html=as_html, out=out)
        elif command == "/copy":
            last = session.last_assistant_message()
            print(ChatSession.copy_text(last) if last else "Nothing to copy yet.", file=out)
        elif command.startswith("/"):
            print(f"Unknown command: {command}. Type /help for help.", file=out)
        else:
            _display(session.send_message(line), as_html=as_html, out=out)


def main(argv: list[str] | None = None, *, session_factory=build_session) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config)
    except (ConfigError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    configure_logging(
        args.verbose,
        args.log_dir or config.logging.directory,
        keep_days=config.logging.keep_days,
    )
    LOGGER.debug("Configuration loaded from %s", args.config or "defaults")

    status = StatusChannel()
    status.subscribe(StatusLogListener())
    session = session_factory(config, status=status)
    status.subscribe(ConsoleStatusListener(lambda: format_task_menu(session)))

    if args.pdf is not None:
        print(session.open_path(args.pdf))
    if args.ask is not None:
        return _one_shot(session.send_message(args.ask), as_html=args.html)
    if args.task is not None:
        return _one_shot(session.send_task(args.task), as_html=args.html)
    return run_interactive(session, as_html=args.html)


def _one_shot(message: Message, *, as_html: bool) -> int:
    _display(message, as_html=as_html, out=sys.stdout)
    raw = ChatSession.copy_text(message)
    return 1 if raw.startswith("Error: ") or raw == NO_DOCUMENT_MESSAGE else 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
