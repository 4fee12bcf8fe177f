"""Logging setup: one shared logger writing to the console and a log file."""

from __future__ import annotations

import logging
import sys
import threading
from datetime import datetime
from pathlib import Path

LOGGER_NAME = "orderdesk"
DEFAULT_LOG_PATH = "app.log"

_RESET = "\033[0m"
_COLORS = {
    logging.DEBUG: "\033[34m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
}
_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_lock = threading.Lock()
_initialized = False
_file_handler: logging.FileHandler | None = None
_file_path: Path | None = None


def shorten_level(level: str) -> str:
    """Shorten a lower-case level name: ``warning`` becomes ``warn``."""
    return "warn" if level == "warning" else level


def _line(record: logging.LogRecord) -> str:
    when = datetime.fromtimestamp(record.created)
    level = shorten_level(record.levelname.lower()).upper()
    return (
        f"[{level:<5}] {when:%Y-%m-%d} {when:%H:%M:%S} "
        f"{record.filename}:{record.lineno} {record.getMessage()}"
    )


class ConsoleFormatter(logging.Formatter):
    """Coloured one-line format for terminals."""

    def format(self, record: logging.LogRecord) -> str:
        color = _COLORS.get(record.levelno, _RESET)
        return f"{color}{_line(record)} {_RESET} "


class FileFormatter(logging.Formatter):
    """Plain one-line format for log files."""

    def format(self, record: logging.LogRecord) -> str:
        return f"{_line(record)} "


def init_log(path: str | Path | None = None) -> logging.Logger:
    """Set up the shared logger once; a new ``path`` moves the file output there."""
    global _initialized, _file_handler, _file_path
    logger = logging.getLogger(LOGGER_NAME)
    with _lock:
        if not _initialized:
            logger.setLevel(logging.DEBUG)
            logger.propagate = False
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(ConsoleFormatter())
            logger.addHandler(console)
            _initialized = True
            if path is None:
                path = DEFAULT_LOG_PATH
        if path is None:
            return logger
        target = Path(path).resolve()
        if _file_handler is not None and _file_path == target:
            return logger
        if _file_handler is not None:
            logger.removeHandler(_file_handler)
            _file_handler.close()
            _file_handler = None
            _file_path = None
        try:
            handler = logging.FileHandler(target, mode="a", encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to open log file: %s", exc)
            return logger
        handler.setFormatter(FileFormatter())
        logger.addHandler(handler)
        _file_handler = handler
        _file_path = target
    return logger


def get_logger() -> logging.Logger:
    """Return the shared logger, setting it up on first use."""
    if not _initialized:
        return init_log()
    return logging.getLogger(LOGGER_NAME)


def set_level(name: str) -> int:
    """Set the level from ``debug``, ``info``, ``warn`` or ``error``; anything else means info."""
    level = _LEVELS.get(name, logging.INFO)
    get_logger().setLevel(level)
    return level