from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from bistro.core.constants import LOG_BACKUP_COUNT, LOG_MAX_SIZE_BYTES


# Structured fields callers may attach with ``extra=``; copied into JSON output.
_EXTRA_FIELDS: tuple[str, ...] = ("event", "client_id", "path", "status_code", "duration_ms")


class _JSONFormatter(logging.Formatter):
    """Produces one JSON object per log record for file output."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False)


class _ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter with timestamp and level."""

    FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self.FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


_setup_done: bool = False


def setup_logging(
    log_dir: Optional[str | Path] = "logs",
    level: int = logging.INFO,
    max_bytes: int = LOG_MAX_SIZE_BYTES,
    backup_count: int = LOG_BACKUP_COUNT,
) -> None:
    """Configure the root logger with console and rotating file handlers.

    Passing ``log_dir=None`` keeps console output only.  Safe to call
    multiple times; subsequent calls are no-ops.
    """
    global _setup_done
    if _setup_done:
        return
    _setup_done = True

    root = logging.getLogger()
    root.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(_ConsoleFormatter())
    root.addHandler(console_handler)

    if log_dir is None:
        return

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    # Rotating file handler (JSON)
    file_handler = RotatingFileHandler(
        filename=str(log_path / "bistro.log"),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(_JSONFormatter())
    root.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Return a logger with the given name."""
    return logging.getLogger(name)


def token_prefix(token: Optional[str], keep: int = 8) -> str:
    """Loggable stand-in for a secret token: its first *keep* characters."""
    if not token:
        return "<none>"
    return f"{token[:keep]}..."
