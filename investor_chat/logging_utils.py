"""Shared logging utilities for Investor Chat."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Iterable, Optional

LOG_PREFIX = "investor-chat"
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "urllib3", "pypdf")


class DailyLogFileHandler(logging.Handler):
    """Append records to ``<prefix>-<day>.log`` and prune files past ``keep_days``."""

    terminator = "\n"

    def __init__(self, log_dir: Path, *, keep_days: int = 7, prefix: str = LOG_PREFIX) -> None:
        super().__init__()
        self.log_dir = log_dir
        self.keep_days = max(keep_days, 1)
        self.prefix = prefix
        self._current_day: date | None = None
        self._stream = None

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - thin wrapper
        try:
            self._roll_if_needed()
            if self._stream is None:
                return
            self._stream.write(self.format(record) + self.terminator)
            self._stream.flush()
        except Exception:  # noqa: PIE786 - standard logging pattern
            self.handleError(record)

    def close(self) -> None:  # pragma: no cover - trivial
        try:
            if self._stream:
                self._stream.close()
        finally:
            self._stream = None
            super().close()

    def path_for(self, day: date) -> Path:
        return self.log_dir / f"{self.prefix}-{day.isoformat()}.log"

    def _roll_if_needed(self) -> None:
        today = datetime.now().date()
        if self._stream is not None and self._current_day == today:
            return
        if self._stream is not None:
            self._stream.close()
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._prune(today)
        self._stream = self.path_for(today).open("a", encoding="utf-8")
        self._current_day = today

    def _prune(self, today: date) -> None:
        cutoff = today - timedelta(days=self.keep_days - 1)
        for path, file_day in self._dated_logs():
            if file_day < cutoff:
                try:
                    path.unlink()
                except OSError:
                    continue

    def _dated_logs(self) -> Iterable[tuple[Path, date]]:
        marker = f"{self.prefix}-"
        for path in sorted(self.log_dir.glob(f"{marker}*.log")):
            try:
                yield path, date.fromisoformat(path.stem[len(marker):])
            except ValueError:
                continue


def configure_logging(
    verbose: bool,
    log_dir: Optional[Path] = None,
    *,
    keep_days: int = 7,
) -> None:
    """Install console and daily-file handlers on the root logger."""

    level = logging.DEBUG if verbose else logging.INFO
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # The console carries warnings only; status updates are shown by the CLI itself.
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.addHandler(console)

    file_handler = DailyLogFileHandler(log_dir or Path.cwd() / "log", keep_days=keep_days)
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)
    root.addHandler(file_handler)

    if not verbose:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)


__all__ = ["DailyLogFileHandler", "LOG_PREFIX", "configure_logging"]
