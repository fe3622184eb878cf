"""Logging configuration for pdfturn."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Package-level logger name
LOGGER_NAME = "pdfturn"

# Loggers that report per-render chatter; quietened unless -vv is given
RENDER_LOGGERS = ("pdfturn.renderer", "pdfturn.resize", "pdfturn.engine")


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger for a pdfturn module.

    Args:
        name: Module name (e.g., __name__). If None, returns root pdfturn logger.

    Returns:
        Logger instance
    """
    if name is None:
        return logging.getLogger(LOGGER_NAME)
    if name == LOGGER_NAME or name.startswith(f"{LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


class ConsoleFormatter(logging.Formatter):
    """Console formatter that prefixes by level instead of printing metadata.

    Plan corrections arrive at WARNING and print as "Notice: ...".
    """

    PREFIXES = {
        logging.DEBUG: "[debug] ",
        logging.WARNING: "Notice: ",
        logging.ERROR: "Error: ",
        logging.CRITICAL: "Error: ",
    }

    def format(self, record: logging.LogRecord) -> str:
        prefix = self.PREFIXES.get(record.levelno, "")
        message = record.getMessage()
        if record.exc_info and record.levelno >= logging.ERROR:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return f"{prefix}{message}"


class InfoFilter(logging.Filter):
    """Filter that only allows records below WARNING level."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.WARNING


def setup_logging(
    verbosity: int = 0,
    quiet: bool = False,
    log_file: Path | None = None,
) -> None:
    """Configure logging for the pdft CLI.

    Args:
        verbosity: 0=normal, 1=verbose (-v), 2=debug including render chatter (-vv)
        quiet: If True, suppress all output except errors
        log_file: Optional file path that receives every record
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.DEBUG)

    if quiet:
        console_level = logging.ERROR
    elif verbosity >= 1:
        console_level = logging.DEBUG
    else:
        console_level = logging.INFO

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(console_level)
    stdout_handler.setFormatter(ConsoleFormatter())
    stdout_handler.addFilter(InfoFilter())
    logger.addHandler(stdout_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.ERROR if quiet else logging.WARNING)
    stderr_handler.setFormatter(ConsoleFormatter())
    logger.addHandler(stderr_handler)

    render_level = logging.DEBUG if verbosity >= 2 else logging.INFO
    for name in RENDER_LOGGERS:
        logging.getLogger(name).setLevel(render_level)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(file_handler)
