################################################################################
# DMR
#
# @file:        logging.py
# @module:      dmr.helpers.logging
# @description: Console + file logging with timestamped, structured records.
# @author:      DMR Contributors
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
# ==============================================================================
# Hinweise:
# - Every record goes to the console (coloured) and to the durable log file
# - Context passed via extra={...} is rendered as key=value pairs
# - configure() is idempotent; it replaces handlers it installed earlier
################################################################################

"""
Logging setup for DMR.

All modules obtain their logger through :func:`get_logger`, which places them
under the ``dmr`` namespace. :data:`log_manager` owns the handlers.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

from .constants import LOG_DATE_FORMAT, LOG_FORMAT

ROOT_LOGGER_NAME = "dmr"

# Attributes every LogRecord carries; anything else came in via extra={...}
_STANDARD_ATTRS = set(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


class Colors:
    """ANSI colour codes for console output."""

    RESET = "\033[0m"
    RED = "\033[0;31m"
    GREEN = "\033[0;32m"
    YELLOW = "\033[0;33m"
    BLUE = "\033[0;34m"
    GREY = "\033[0;90m"

    LEVELS = {
        logging.DEBUG: GREY,
        logging.INFO: BLUE,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: RED,
    }


class StructuredFormatter(logging.Formatter):
    """
    Formatter that appends ``extra`` context to the message.

    ``logger.warning("Volume missing", extra={"volume": "db"})`` renders as
    ``2025-01-01 12:00:00 [WARNING] dmr.x: Volume missing | volume=db``.
    """

    def __init__(self, use_colors: bool = False):
        super().__init__(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)

        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        if context:
            pairs = " ".join(f"{k}={v}" for k, v in sorted(context.items()))
            text = f"{text} | {pairs}"

        if self.use_colors:
            color = Colors.LEVELS.get(record.levelno, "")
            if color:
                text = f"{color}{text}{Colors.RESET}"
        return text


class LogManager:
    """Owns the console and file handlers of the ``dmr`` logger tree."""

    def __init__(self):
        self._handlers: list[logging.Handler] = []
        self.log_file: Optional[Path] = None

    def configure(
        self,
        level: Union[str, int] = "INFO",
        log_file: Optional[Path] = None,
        console: bool = True,
    ) -> None:
        """
        (Re)install handlers on the ``dmr`` root logger.

        Args:
            level: Log level name or number
            log_file: Durable log file (appended to); parent dirs are created
            console: Also log to stderr
        """
        root = logging.getLogger(ROOT_LOGGER_NAME)
        for handler in self._handlers:
            root.removeHandler(handler)
            handler.close()
        self._handlers = []

        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                level = logging.INFO
        root.setLevel(level)
        root.propagate = False

        if console:
            stream = logging.StreamHandler(sys.stderr)
            stream.setFormatter(StructuredFormatter(use_colors=sys.stderr.isatty()))
            self._add(root, stream)

        self.log_file = None
        if log_file:
            log_file = Path(log_file)
            try:
                log_file.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
            except OSError as e:
                root.warning(f"Cannot open log file {log_file}: {e}")
            else:
                file_handler.setFormatter(StructuredFormatter(use_colors=False))
                self._add(root, file_handler)
                self.log_file = log_file

    def _add(self, root: logging.Logger, handler: logging.Handler) -> None:
        root.addHandler(handler)
        self._handlers.append(handler)


log_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the ``dmr`` namespace."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logging(level: Union[str, int] = "INFO", log_file: Optional[Path] = None) -> None:
    """Shortcut for ``log_manager.configure``."""
    log_manager.configure(level=level, log_file=log_file)
