"""Logging setup for applications embedding the wallet core.

The library itself only uses module-level loggers; call
:func:`setup_logging` once from the host application to attach handlers.

Usage::

    from ecash_wallet.logging_config import setup_logging
    setup_logging(level="DEBUG", fmt="json", log_file="wallet.log")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecash_wallet.config.settings import LoggingConfig


class _JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


class _HumanFormatter(logging.Formatter):
    """Concise single-line format."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{ts} [{record.levelname:<7}] {record.name}: {record.getMessage()}"
        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    fmt: str = "human",
    log_file: str | None = None,
) -> None:
    """Configure the ``ecash_wallet`` logger hierarchy.

    Args:
        level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
        fmt: ``"human"`` for single-line output, ``"json"`` for
            newline-delimited JSON.
        log_file: If provided, records are also appended to this file
            (always JSON).
    """
    root = logging.getLogger("ecash_wallet")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    root.propagate = False

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_JSONFormatter() if fmt == "json" else _HumanFormatter())
    root.addHandler(console)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path))
        fh.setFormatter(_JSONFormatter())
        root.addHandler(fh)


def setup_logging_from_config(config: LoggingConfig) -> None:
    """Apply a :class:`LoggingConfig` via :func:`setup_logging`."""
    setup_logging(level=config.level, fmt=str(config.format), log_file=config.file or None)
