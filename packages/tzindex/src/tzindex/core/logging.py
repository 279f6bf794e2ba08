"""Logging helpers for tzindex.

The library itself only calls ``logging.getLogger(__name__)``. The CLI calls
:func:`configure_logging` to attach a console handler to the ``tzindex``
package logger, and :func:`add_file_handler` to mirror it into a file.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

PACKAGE_LOGGER = "tzindex"

_CONSOLE_HANDLER: logging.Handler | None = None
_FILE_HANDLERS: dict[str, logging.Handler] = {}
_LOG_FORMAT = "%(asctime)s,%(msecs)03d [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is when a record is emitted."""

    def __init__(self) -> None:
        super().__init__(sys.stderr)

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value) -> None:
        pass


def _formatter() -> logging.Formatter:
    return logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach a stderr handler to the package logger once; later calls only adjust the level."""
    global _CONSOLE_HANDLER
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    if _CONSOLE_HANDLER is None:
        _CONSOLE_HANDLER = _StderrHandler()
        _CONSOLE_HANDLER.setFormatter(_formatter())
        logger.addHandler(_CONSOLE_HANDLER)
        logger.propagate = False
    _CONSOLE_HANDLER.setLevel(level)
    return logger


def add_file_handler(path: Path, level: int = logging.INFO) -> None:
    """Add a file handler for run-scoped logs once per path."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    if logger.getEffectiveLevel() > level:
        logger.setLevel(level)
    resolved = str(path.resolve())
    if resolved in _FILE_HANDLERS:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(_formatter())
    logger.addHandler(handler)
    _FILE_HANDLERS[resolved] = handler


def parse_level(value: str | int) -> int:
    """Translate a level name such as ``"debug"`` into a logging constant."""
    if isinstance(value, int):
        return value
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level '{value}'")
    return level
