"""
EntityForge Logging Configuration

Provides structured logging with support for:
- Console output with colors
- JSON format for CI pipelines that post-process parser warnings
- Per-statement and per-table context carried on every record
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOGGER_NAME = "entityforge"

# LogRecord attributes promoted to structured context, with the short label
# the text formatter prints for each
CONTEXT_FIELDS: Dict[str, str] = {
    "table_name": "table",
    "operation": "op",
    "statement_type": "stmt",
    "statement_index": "at",
    "file_path": "file",
}


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Returns the context attributes set on a record, in CONTEXT_FIELDS order."""
    return {
        attr: getattr(record, attr)
        for attr in CONTEXT_FIELDS
        if getattr(record, attr, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = record_context(record)
        if context:
            log_entry["context"] = context

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


class ColoredFormatter(logging.Formatter):
    """Format log records with ANSI colors for console output."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        message = record.getMessage()

        context = record_context(record)
        context_str = ""
        if context:
            parts = [f"{CONTEXT_FIELDS[attr]}={value}" for attr, value in context.items()]
            context_str = f" [{', '.join(parts)}]"

        if self.use_color and level in self.COLORS:
            return f"{self.COLORS[level]}[{level}]{self.RESET} {message}{context_str}"
        return f"[{level}] {message}{context_str}"


class ContextAdapter(logging.LoggerAdapter):
    """
    Logger adapter that stamps fixed context (a table, a statement) on every
    record. Per-call ``extra`` values are merged over the fixed ones.
    """

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def bind(self, **context) -> "ContextAdapter":
        return ContextAdapter(self.logger, {**self.extra, **context})


def setup_logging(
    verbose: int = 0,
    log_format: str = "text",
    no_color: bool = False,
    stream=None,
) -> logging.Logger:
    """
    Configure and return the EntityForge logger.

    Args:
        verbose: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG)
        log_format: Output format - "text" or "json"
        no_color: Disable ANSI colors in text output
        stream: Output stream, stderr by default

    Returns:
        Configured logger instance
    """
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    stream = stream if stream is not None else sys.stderr

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream)
    handler.setLevel(level)

    if log_format == "json":
        formatter = JSONFormatter()
    else:
        use_color = not no_color and hasattr(stream, "isatty") and stream.isatty()
        formatter = ColoredFormatter(use_color=use_color)

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


def get_logger(name: Optional[str] = None, **context) -> ContextAdapter:
    """
    Get a logger for a module, optionally bound to fixed context.

    Args:
        name: Optional module name to append to 'entityforge'
        **context: Context attributes (see CONTEXT_FIELDS) added to every record

    Returns:
        ContextAdapter wrapping the module logger
    """
    logger = logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)
    return ContextAdapter(logger, context)
