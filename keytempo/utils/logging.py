"""
Logging setup for keytempo.

Records from a pipeline run carry its run identity, the file being
analyzed and, on failures, the phase that failed. The JSON formatter
groups those under "context"; text output appends them in brackets.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional, Tuple

# Record attributes set by run-scoped adapters
CONTEXT_FIELDS = ("run_id", "file", "phase")

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s%(run_context)s"
TEXT_DATEFMT = "%H:%M:%S"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024


def _record_context(record: logging.LogRecord) -> Dict[str, Any]:
    return {name: getattr(record, name) for name in CONTEXT_FIELDS if hasattr(record, name)}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, run context nested under "context"."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        context = _record_context(record)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Plain text with the run context appended as ``[run_id=.. file=..]``."""

    def __init__(self, fmt: str = TEXT_FORMAT, datefmt: str = TEXT_DATEFMT):
        super().__init__(fmt, datefmt)

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so other handlers see the record unchanged
        record = logging.makeLogRecord(record.__dict__)
        context = _record_context(record)
        record.run_context = (
            " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]" if context else ""
        )
        self._decorate(record)
        return super().format(record)

    def _decorate(self, record: logging.LogRecord) -> None:
        pass


class ColoredFormatter(TextFormatter):
    """TextFormatter with ANSI-colored level names for terminals."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def _decorate(self, record: logging.LogRecord) -> None:
        color = self.COLORS.get(record.levelname)
        if color:
            record.levelname = f"{color}{record.levelname}{self.RESET}"


def _console_handler(log_format: str, colored: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    elif colored and sys.stdout.isatty():
        handler.setFormatter(ColoredFormatter())
    else:
        handler.setFormatter(TextFormatter())
    return handler


def _file_handler(log_file: str, max_bytes: int, backup_count: int) -> logging.Handler:
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
    # Log files are always machine-readable
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = 5,
    console_enabled: bool = True,
    colored: bool = True,
) -> None:
    """
    Replace the root logger's handlers.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Console format, "json" or "text"
        log_file: Also write JSON lines to this rotating file
        max_bytes: Rotate the file at this size
        backup_count: Rotated files to keep
        console_enabled: Log to stdout
        colored: Color level names on a text console that is a TTY
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    if console_enabled:
        root.addHandler(_console_handler(log_format, colored))
    if log_file:
        root.addHandler(_file_handler(log_file, max_bytes, backup_count))


def setup_logging_from_config(config: Mapping[str, Any]) -> None:
    """Apply the "logging" section of a config from load_config()."""
    section = config.get("logging", {}) or {}
    setup_logging(
        level=section.get("level", "INFO"),
        log_format=section.get("format", "json"),
        log_file=section.get("file"),
        max_bytes=section.get("max_bytes", DEFAULT_MAX_BYTES),
        backup_count=section.get("backup_count", 5),
        console_enabled=section.get("console", True),
        colored=section.get("colored", True),
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LoggerAdapter(logging.LoggerAdapter):
    """
    Adapter that adds persistent context to every record.

    Per-call ``extra`` (e.g. ``phase``) is merged on top of the persistent
    values rather than discarded as the stdlib adapter does.
    """

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> Tuple[str, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def create_logger_with_context(name: str, context: Dict[str, Any]) -> LoggerAdapter:
    """
    Wrap logger ``name`` so every record carries ``context``.

    Example:
        log = create_logger_with_context("pipeline", {"run_id": 7, "file": "song.flac"})
        log.error("Decode failed", extra={"phase": "decode"})
    """
    return LoggerAdapter(get_logger(name), context)
