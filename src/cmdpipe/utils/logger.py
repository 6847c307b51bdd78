"""
Centralized logging configuration for cmdpipe.
"""

# Standard library imports
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# ANSI color codes for console output
COLORS = {
    "DEBUG": "\033[36m",  # Cyan
    "INFO": "\033[32m",  # Green
    "WARNING": "\033[33m",  # Yellow
    "ERROR": "\033[31m",  # Red
    "CRITICAL": "\033[35m",  # Magenta
    "RESET": "\033[0m",  # Reset
}

_managed_handlers = []


class ColoredFormatter(logging.Formatter):
    """Formatter adding colors to console output."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with color."""
        orig_levelname = record.levelname
        if record.levelname in COLORS:
            record.levelname = (
                f"{COLORS[record.levelname]}{record.levelname}{COLORS['RESET']}"
            )

        result = super().format(record)

        record.levelname = orig_levelname
        return result


def set_logger(
    log_file: Optional[Path] = None,
    max_bytes: int = 10_000_000,
    backup_count: int = 5,
    verbose: bool = False,
    debug: bool = False,
) -> logging.Logger:
    """Configure the root logger and return it.

    Calling this again replaces the handlers installed by the previous call,
    so the CLI can be invoked repeatedly in one interpreter.
    """
    logger = logging.getLogger()

    base_level = (
        logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    )
    logger.setLevel(base_level)

    for handler in _managed_handlers:
        logger.removeHandler(handler)
        handler.close()
    _managed_handlers.clear()

    console_formatter = ColoredFormatter(
        "%(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_formatter = logging.Formatter(
        (
            "%(asctime)s - %(name)s - %(levelname)s - "
            "%(filename)s:%(lineno)d - %(message)s"
        ),
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # stderr keeps captured command output on stdout clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)
    _managed_handlers.append(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)
        _managed_handlers.append(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
