"""Logging utilities for clau.

Library modules log through :func:`get_logger`. Records go to stderr at the
level named by ``CLAU_LOG_LEVEL`` (WARNING by default); :func:`init_logger`
can additionally mirror everything down to DEBUG into a file, where the
``extra=`` context of each record is appended as JSON.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

LOGGER_NAME = "clau"
LEVEL_ENV_VAR = "CLAU_LOG_LEVEL"

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.NOTSET, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def _console_level() -> int:
    level = logging.getLevelName(os.getenv(LEVEL_ENV_VAR, "WARNING").upper())
    return level if isinstance(level, int) else logging.WARNING


class StructuredFormatter(logging.Formatter):
    """Formatter with UTC ISO timestamps and the record's ``extra`` context."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not context:
            return message
        return f"{message} | {json.dumps(context, sort_keys=True, default=str)}"


class ClauLogger:
    """Thin wrapper around the ``clau`` logger."""

    def __init__(self, log_file: Optional[Path] = None):
        self.logger = logging.getLogger(LOGGER_NAME)
        # Handlers filter by level; the logger itself lets everything through.
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

        if not any(getattr(h, "_clau_console", False) for h in self.logger.handlers):
            console = logging.StreamHandler(sys.stderr)
            console.setLevel(_console_level())
            console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
            console._clau_console = True  # type: ignore[attr-defined]
            self.logger.addHandler(console)

        self._file_handler: Optional[logging.FileHandler] = None
        if log_file:
            self.attach_file_handler(log_file)

    def attach_file_handler(self, log_file: Path) -> Path:
        """Mirror DEBUG and above into ``log_file``, replacing any earlier file."""
        log_file = Path(log_file)
        if self._file_handler is not None:
            if self._file_handler.baseFilename == os.path.abspath(log_file):
                return log_file
            self.logger.removeHandler(self._file_handler)
            self._file_handler.close()

        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(StructuredFormatter("%(asctime)s [%(levelname)s] %(message)s"))
        self.logger.addHandler(handler)
        self._file_handler = handler
        return log_file

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.warning(message, *args, **kwargs)


_logger: Optional[ClauLogger] = None


def get_logger() -> ClauLogger:
    """Return the shared logger, creating it on first use."""
    global _logger
    if _logger is None:
        _logger = ClauLogger()
    return _logger


def init_logger(log_file: Optional[Path] = None) -> ClauLogger:
    """Attach a log file to the shared logger."""
    logger = get_logger()
    if log_file is not None:
        logger.attach_file_handler(log_file)
    return logger
