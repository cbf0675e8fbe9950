"""
Process-wide logging setup for femtolab scripts.

Library modules only ever call ``logging.getLogger(__name__)``; an
application calls :func:`init_logging` once at startup to send those
records to a timestamped file (and optionally the console).
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

from .constants import DEFAULT_LOG_DIR

logger = logging.getLogger(__name__)

_ROOT_LOGGER = "femtolab"
_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_DATE_FORMAT = "%Y/%m/%d %H:%M:%S.%f"

_installed: list[logging.Handler] = []


class _MicrosecondFormatter(logging.Formatter):
    """Formatter whose ``asctime`` carries microseconds (``%f``)."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return datetime.fromtimestamp(record.created).strftime(datefmt or _DATE_FORMAT)


def init_logging(
    log_dir: str | Path = DEFAULT_LOG_DIR,
    enable_console: bool = False,
    level: int = logging.INFO,
) -> Path:
    """Create ``log_dir/log_<YYYYmmdd_HHMMSS>.log`` and route femtolab logs to it.

    Calling this again replaces the handlers a previous call installed.

    Args:
        log_dir: Directory for log files (created if missing).
        enable_console: Also echo records to stdout.
        level: Level for the ``femtolab`` logger.

    Returns:
        Path of the new log file.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"log_{datetime.now():%Y%m%d_%H%M%S}.log"

    root = logging.getLogger(_ROOT_LOGGER)
    for handler in _installed:
        root.removeHandler(handler)
        handler.close()
    _installed.clear()

    formatter = _MicrosecondFormatter(_FORMAT, datefmt=_DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.FileHandler(log_file, encoding="utf-8")]
    if enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
        _installed.append(handler)
    root.setLevel(level)

    logger.info("Logger initialised. Log file: %s", log_file)
    return log_file
