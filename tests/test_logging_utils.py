"""Tests for the shared logging utilities."""

from __future__ import annotations

import logging
from datetime import date, timedelta

from investor_chat.logging_utils import LOG_PREFIX, configure_logging


def _shutdown_logging() -> None:
    logging.shutdown()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def test_configure_logging_creates_daily_log(tmp_path) -> None:
    log_dir = tmp_path / "log"
    configure_logging(verbose=False, log_dir=log_dir)
    logging.getLogger("investor_chat.test").info("document loaded")

    expected = log_dir / f"{LOG_PREFIX}-{date.today().isoformat()}.log"
    contents = expected.read_text(encoding="utf-8")
    assert "document loaded" in contents
    assert "[INFO] investor_chat.test" in contents

    _shutdown_logging()


def test_daily_logs_prune_past_keep_days(tmp_path) -> None:
    log_dir = tmp_path / "log"
    log_dir.mkdir(parents=True, exist_ok=True)
    today = date.today()
    for days_ago in range(10, 0, -1):
        old_day = today - timedelta(days=days_ago)
        (log_dir / f"{LOG_PREFIX}-{old_day.isoformat()}.log").write_text("old", encoding="utf-8")
    unrelated = log_dir / "notes.log"
    unrelated.write_text("keep me", encoding="utf-8")

    configure_logging(verbose=False, log_dir=log_dir, keep_days=3)
    logging.getLogger("investor_chat.test").info("trigger new file")

    existing = sorted(p.name for p in log_dir.glob(f"{LOG_PREFIX}-*.log"))
    assert len(existing) == 3
    assert existing[-1] == f"{LOG_PREFIX}-{today.isoformat()}.log"
    assert unrelated.exists()

    _shutdown_logging()
