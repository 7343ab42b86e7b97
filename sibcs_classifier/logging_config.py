"""
Centralized logging configuration for sibcs-classifier.

Console output goes to stderr so that JSON written to stdout by the CLI
stays machine readable. File output is optional and rotates.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path

DEFAULT_LOG_FILE = "sibcs_classifier.log"

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - %(pathname)s:%(lineno)d - %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    enable_file_logging: bool = False,
) -> logging.Logger:
    """
    Set up centralized logging with console and optional file output.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (defaults to sibcs_classifier.log)
        enable_file_logging: Whether to enable file logging

    Returns:
        Configured root logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console_handler)

    if enable_file_logging:
        log_path = Path(log_file or DEFAULT_LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # max 10MB, keep 5 backups
        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=10 * 1024 * 1024, backupCount=5
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def setup_cli_logging(verbose: bool) -> logging.Logger:
    """Console-only logging for CLI commands (DEBUG when verbose, else WARNING)."""
    return setup_logging(level="DEBUG" if verbose else "WARNING")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def configure_from_env() -> logging.Logger:
    """
    Configure logging from environment variables.

    Environment variables:
        SIBCS_LOG_LEVEL: Logging level (default: INFO)
        SIBCS_LOG_FILE: Log file path; file logging is enabled when set

    Returns:
        Configured logger
    """
    log_level = os.getenv("SIBCS_LOG_LEVEL", "INFO")
    log_file = os.getenv("SIBCS_LOG_FILE")

    return setup_logging(
        level=log_level, log_file=log_file, enable_file_logging=bool(log_file)
    )
