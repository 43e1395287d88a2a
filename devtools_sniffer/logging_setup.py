"""Structured logging setup for the devtools-sniffer CLI.

Provides JSON and text log formats with support for --quiet and --verbose.
Logs go to stderr so that stdout stays free for command output.

Note: Named logging_setup.py to avoid conflicts with Python's built-in logging module.
"""

import sys
import json
import logging
from typing import Optional, Dict, Any, Union
from datetime import datetime

PACKAGE_LOGGER = "devtools_sniffer"


class JSONFormatter(logging.Formatter):
    """Formats log records as one JSON object per line.

    Example output:
        {"timestamp": "2026-10-19T10:30:00.123Z", "level": "INFO",
         "logger": "devtools_sniffer.trigger",
         "message": "Start action triggered after 3 attempt(s)"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra") and isinstance(record.extra, dict):
            log_data["extra"] = record.extra

        if record.levelno == logging.DEBUG:
            log_data["location"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Formats log records as human-readable text.

    Example output:
        2026-10-19 10:30:00 [INFO] devtools_sniffer.runner: Inspector target found
    """

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging(
    format_type: str = "text",
    level: Optional[str] = None,
    quiet: bool = False,
    verbose: bool = False,
) -> None:
    """Configure root logging with the given format and level.

    Args:
        format_type: "json" or "text" (default: "text")
        level: "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL";
               if None, determined by quiet/verbose flags
        quiet: Only errors (takes precedence over verbose)
        verbose: Debug output, including every trigger attempt
    """
    if quiet:
        log_level = logging.ERROR
    elif verbose:
        log_level = logging.DEBUG
    elif level:
        log_level = getattr(logging, level.upper(), logging.INFO)
    else:
        log_level = logging.INFO

    formatter: Union[JSONFormatter, TextFormatter]
    if format_type == "json":
        formatter = JSONFormatter()
    else:
        formatter = TextFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logging.getLogger(PACKAGE_LOGGER).setLevel(log_level)
    # Frame-level websocket logging drowns out the trigger loop.
    logging.getLogger("websockets").setLevel(max(log_level, logging.INFO))


def log_with_context(
    logger: logging.Logger, level: int, message: str, **extra_fields
) -> None:
    """Log message with extra context fields (rendered by JSONFormatter).

    Example:
        log_with_context(
            logger, logging.INFO, "Report captured",
            output_path="latest-run/lhr.json", attempts=3
        )
    """
    if not logger.isEnabledFor(level):
        return
    if extra_fields:
        record = logger.makeRecord(
            logger.name, level, "(log_with_context)", 0, message, (), None
        )
        record.extra = extra_fields
        logger.handle(record)
    else:
        logger.log(level, message)
