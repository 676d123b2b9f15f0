"""Logging for activeshell.

Every module logs through a child of the ``activeshell`` logger named after
its component (``session``, ``executor``, ``process``, ``tools.bash``), and
lines carry that component:

    14:02:11 info [session] Started session 'default': /bin/bash (pid 4121)
    14:02:41 warning [executor] One-off command timed out after 30000ms: make

Lifecycle events (spawn, close, tree kills) log at info/warning, command text
at debug, and per-command exit codes at TRACE. Output goes to the file named
by ``logging.file`` (or ``ACTIVESHELL_LOG``), otherwise to stderr only when
it is a terminal, since a host driving us over pipes owns its stdio.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from activeshell.config.schema import LoggingConfig

# Below DEBUG: one line per command round-trip
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

logger = logging.getLogger("activeshell")

_handlers: list[logging.Handler] = []
_initialized = False


class _ComponentFormatter(logging.Formatter):
    """``HH:MM:SS level [component] message`` with the package prefix dropped."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s [%(component)s] %(message)s", datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        prefix = logger.name + "."
        record.component = (
            record.name[len(prefix):] if record.name.startswith(prefix) else record.name
        )
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Numeric level for ``config.level``; INFO when unset or unknown."""
    if config is None or not config.level:
        return logging.INFO
    level = logging.getLevelName(config.level.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Attach handlers to the ``activeshell`` logger. Later calls are no-ops.

    Args:
        config: Level and log file, usually ``get_config().logging`` (which
            already folds in ACTIVESHELL_LOG and ACTIVESHELL_LOG_LEVEL).
    """
    global _initialized
    if _initialized:
        return
    _initialized = True

    level = resolve_level(config)
    logger.setLevel(level)

    if config is not None and config.file:
        path = os.path.expanduser(config.file)
        try:
            _attach(logging.FileHandler(path, mode="a", encoding="utf-8"), level)
            return
        except OSError as e:
            if not sys.stderr.isatty():
                return
            print(f"[activeshell] Failed to open log file {path}: {e}", file=sys.stderr)

    if sys.stderr.isatty():
        _attach(logging.StreamHandler(sys.stderr), level)


def reset_logging() -> None:
    """Detach and close the handlers setup_logging added, allowing a new setup."""
    global _initialized
    for handler in _handlers:
        logger.removeHandler(handler)
        handler.close()
    _handlers.clear()
    logger.setLevel(logging.NOTSET)
    _initialized = False


def _attach(handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(_ComponentFormatter())
    logger.addHandler(handler)
    _handlers.append(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """Child logger for a component, or the package logger if ``name`` is None."""
    if name:
        return logger.getChild(name)
    return logger
